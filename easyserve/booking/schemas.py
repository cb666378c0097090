"""
booking/schemas.py

Pydantic schemas for bookings and their message threads.
"""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from pydantic import Field, model_validator

from easyserve.booking.models import BookingStatus
from easyserve.core.schemas import CamelModel, Money
from easyserve.database.enums import UserRole


class BookingRead(CamelModel):
    id: UUID
    service_request_id: UUID
    bid_id: UUID | None = None
    requester_id: UUID
    requester_name: str
    provider_id: UUID
    provider_name: str
    agreed_price: Money
    status: BookingStatus
    is_paid: bool
    transaction_id: UUID | None = None
    completed_by_provider: bool
    completed_by_user: bool
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    rating: int | None = None
    review: str | None = None
    created_at: datetime
    updated_at: datetime


class BookingCreate(CamelModel):
    """Exactly one of `bid_id` (requester) or `request_id` (provider)."""

    bid_id: UUID | None = None
    request_id: UUID | None = None

    @model_validator(mode="after")
    def check_one_origin(self) -> "BookingCreate":
        if (self.bid_id is None) == (self.request_id is None):
            raise ValueError("Provide exactly one of bidId or requestId")
        return self


class BookingStatusUpdate(CamelModel):
    status: BookingStatus


class ConfirmReleaseRequest(CamelModel):
    booking_id: UUID | None = None
    rating: int | None = Field(default=None, ge=1, le=5)
    review: str | None = Field(default=None, max_length=2000)


@dataclass
class BookingFilters:
    """Explicit filter structure for listing bookings."""

    requester_id: UUID | None = None
    provider_id: UUID | None = None
    statuses: set[BookingStatus] = field(default_factory=set)


# ---------------------------------------------------
# Messages
# ---------------------------------------------------
class MessageCreate(CamelModel):
    text: str = Field(..., max_length=4000)


class MessageRead(CamelModel):
    id: UUID
    booking_id: UUID
    sender_role: UserRole
    sender_id: UUID
    text: str
    created_at: datetime
