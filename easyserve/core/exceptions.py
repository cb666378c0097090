"""
core/exceptions.py

Description:
Defines a standard error response format for the API and one error class
per failure kind surfaced by the marketplace core.

Every error renders as: {"detail": {"error": <message>, "code": <KIND>}}
"""

from typing import Any

from fastapi import HTTPException, status


class APIError(HTTPException):
    """Custom exception with standardized error response."""

    code: str = "ERROR"
    default_status: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        headers: dict[str, Any] | None = None,
    ):
        self.message = message
        super().__init__(
            status_code=status_code or self.default_status,
            detail={"error": message, "code": self.code},
            headers=headers,
        )


class NotFoundError(APIError):
    """Referenced request, bid, booking or wallet does not exist."""

    code = "NOT_FOUND"
    default_status = status.HTTP_404_NOT_FOUND


class InvalidStateError(APIError):
    """Entity status forbids the attempted operation."""

    code = "INVALID_STATE"
    default_status = status.HTTP_409_CONFLICT


class ConflictError(APIError):
    """A uniqueness invariant would be violated (e.g. second booking for a bid)."""

    code = "CONFLICT"
    default_status = status.HTTP_409_CONFLICT


class DuplicateError(ConflictError):
    code = "DUPLICATE"


class ForbiddenError(APIError):
    code = "FORBIDDEN"
    default_status = status.HTTP_403_FORBIDDEN


class UnauthorizedError(APIError):
    code = "UNAUTHORIZED"
    default_status = status.HTTP_401_UNAUTHORIZED


class InvalidAmountError(APIError):
    code = "INVALID_AMOUNT"


class InsufficientFundsError(APIError):
    code = "INSUFFICIENT_FUNDS"


class ValidationError(APIError):
    """Missing or malformed input detected by business rules (not by pydantic)."""

    code = "VALIDATION"
