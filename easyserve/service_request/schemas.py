"""
service_request/schemas.py

Pydantic schemas for the request ledger:
- Service request creation and read models
- Bid placement, attachments and read models
- Acceptance payloads and the combined acceptance result
- RequestFilters: explicit filter structure for request listings
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import Field

from easyserve.booking.schemas import BookingRead
from easyserve.core.schemas import CamelModel, Money, MoneyInput
from easyserve.service_request.models import BidStatus, RequestStatus, RequestType


# ---------------------------------------------------
# Service Requests
# ---------------------------------------------------
class ServiceRequestCreate(CamelModel):
    """
    Payload for posting a new service request.

    Fixed requests carry `fixed_amount`; bidding requests carry
    `bidding_end_date` and optionally a min/max bid range.
    """

    category_id: UUID = Field(..., description="Catalog category of the requested service")
    description: str = Field(..., min_length=1, max_length=5000)
    address: str = Field(..., min_length=1, max_length=500, description="Service address")
    request_type: RequestType = Field(..., description="fixed or bidding")
    fixed_amount: MoneyInput | None = Field(default=None, description="Required for fixed requests")
    bidding_end_date: datetime | None = Field(
        default=None, description="Required for bidding requests"
    )
    min_bid_amount: MoneyInput | None = None
    max_bid_amount: MoneyInput | None = None
    images: list[str] = Field(default_factory=list, description="Image references")


class ServiceRequestRead(CamelModel):
    id: UUID
    requester_id: UUID
    requester_name: str
    category_id: UUID
    category_name: str
    description: str
    address: str
    images: list[str]
    request_type: RequestType
    fixed_amount: Money | None = None
    bidding_end_date: datetime | None = None
    min_bid_amount: Money | None = None
    max_bid_amount: Money | None = None
    status: RequestStatus
    assigned_provider_id: UUID | None = None
    assigned_provider_name: str | None = None
    accepted_bid_id: UUID | None = None
    final_amount: Money | None = None
    created_at: datetime
    updated_at: datetime


@dataclass
class RequestFilters:
    """Explicit filter structure for listing service requests."""

    requester_id: UUID | None = None
    statuses: set[RequestStatus] = field(default_factory=set)
    request_type: RequestType | None = None


# ---------------------------------------------------
# Bids
# ---------------------------------------------------
class BidAttachment(CamelModel):
    uri: str = Field(..., min_length=1)
    type: Literal["image", "video"]
    name: str | None = None
    size: int | None = Field(default=None, ge=0)


class BidCreate(CamelModel):
    service_request_id: UUID
    proposed_amount: MoneyInput = Field(..., description="Offered price; must be positive")
    note: str | None = Field(default=None, max_length=2000)
    estimated_time: str | None = Field(default=None, max_length=100)
    attachments: list[BidAttachment] = Field(default_factory=list)


class BidRead(CamelModel):
    id: UUID
    service_request_id: UUID
    provider_id: UUID
    provider_name: str
    proposed_amount: Money
    note: str | None = None
    estimated_time: str | None = None
    attachments: list[dict[str, Any]]
    status: BidStatus
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------
# Acceptance
# ---------------------------------------------------
class AcceptBidRequest(CamelModel):
    bid_id: UUID


class AcceptFixedRequest(CamelModel):
    request_id: UUID


class AcceptanceResult(CamelModel):
    """The assigned request together with the booking created for it."""

    request: ServiceRequestRead
    booking: BookingRead
