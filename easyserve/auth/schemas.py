"""
auth/schemas.py

Defines Pydantic models for authentication flows:
- Login & registration request payloads
- JWT token payload and response structure
- Authenticated user response schema
- Profile updates for requester and provider accounts
- Caller identities handed to the marketplace services
"""

from datetime import datetime
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from easyserve.catalog.schemas import ProviderRead
from easyserve.core.schemas import CamelModel, MoneyInput
from easyserve.database.enums import UserRole


# --------------------------------------------------
# AUTH REQUEST SCHEMAS
# --------------------------------------------------


class LoginRequest(BaseModel):
    """
    Request schema for user login using JSON payload.
    """

    email: EmailStr = Field(..., description="Account email address")
    password: str = Field(..., min_length=1, max_length=128, description="Account password")


class RegisterRequest(CamelModel):
    """
    Request schema for new account registration. Admin accounts are not self-service.
    """

    email: EmailStr = Field(..., description="Email address for new account")
    password: str = Field(..., min_length=8, max_length=128, description="Account password")
    name: str = Field(..., min_length=1, max_length=120, description="Display name")
    phone: str | None = Field(default=None, max_length=20, description="Contact phone number")
    role: Literal[UserRole.USER, UserRole.PROVIDER] = Field(
        default=UserRole.USER, description="Account role: user or provider"
    )


# --------------------------------------------------
# AUTH TOKEN SCHEMAS
# --------------------------------------------------


class TokenPayload(BaseModel):
    """
    Decoded JWT payload structure.
    """

    sub: UUID = Field(..., description="Subject (user ID)")
    role: UserRole = Field(..., description="User role encoded in the token")
    exp: int = Field(..., description="Expiration timestamp of the token")
    jti: str = Field(..., description="JWT ID (used for logout revocation)")


# --------------------------------------------------
# AUTH RESPONSE SCHEMAS
# --------------------------------------------------


class AuthUserResponse(CamelModel):
    """
    Response schema representing authenticated user data.
    """

    id: UUID
    email: EmailStr
    name: str
    phone: str | None = None
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime


class AuthSuccessResponse(CamelModel):
    """
    Response schema after successful login.
    """

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Type of the token")
    user: AuthUserResponse = Field(..., description="Details of the authenticated user")


# --------------------------------------------------
# PROFILE SCHEMAS
# --------------------------------------------------


class ProfileUpdate(CamelModel):
    """
    Partial profile update. Listing fields (category, area, price, description,
    image) are accepted from provider accounts only.
    """

    name: str | None = Field(default=None, min_length=1, max_length=120)
    phone: str | None = Field(default=None, max_length=20)
    category_id: UUID | None = Field(default=None, description="Category the provider works in")
    area: str | None = Field(default=None, max_length=120, description="Service area")
    price: MoneyInput | None = Field(default=None, description="Advertised starting price")
    description: str | None = Field(default=None, max_length=2000)
    image: str | None = Field(default=None, max_length=255, description="Profile image reference")


class ProfileRead(CamelModel):
    """
    The updated account, plus the provider listing for provider accounts.
    """

    account: AuthUserResponse
    provider: ProviderRead | None = None


# --------------------------------------------------
# CALLER IDENTITIES
# --------------------------------------------------


class RequesterIdentity(BaseModel):
    """A requester acting on their own service requests."""

    role: Literal[UserRole.USER] = UserRole.USER
    id: UUID
    name: str


class ProviderIdentity(BaseModel):
    """A provider bidding on or working a request."""

    role: Literal[UserRole.PROVIDER] = UserRole.PROVIDER
    id: UUID
    name: str


CallerIdentity = Annotated[
    Union[RequesterIdentity, ProviderIdentity], Field(discriminator="role")
]
