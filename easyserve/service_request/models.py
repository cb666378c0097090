"""
service_request/models.py

Defines the ServiceRequest and Bid models with their status enums.
- ServiceRequest: a requester's posted job, fixed-price or open for bidding
- Bid: a provider's competitive offer against a bidding-type request
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from easyserve.database.base import MONEY, Base, utcnow


# ENUM: Request Type
class RequestType(str, enum.Enum):
    FIXED = "fixed"
    BIDDING = "bidding"


# ENUM: Request Status (declaration order is lifecycle order)
class RequestStatus(str, enum.Enum):
    OPEN = "open"
    BIDDING = "bidding"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ENUM: Bid Status
class BidStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


# MODEL: ServiceRequest
class ServiceRequest(Base):
    __tablename__ = "service_requests"

    # Identifiers & Parties
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier for the service request",
    )
    requester_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", name="fk_service_requests_requester_id"),
        nullable=False,
        index=True,
        comment="Requester who posted the request",
    )
    requester_name: Mapped[str] = mapped_column(String(120), nullable=False)
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("categories.id", name="fk_service_requests_category_id"),
        nullable=False,
        comment="Catalog category of the requested service",
    )
    category_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Job Description
    description: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False, comment="Service address")
    images: Mapped[list[str]] = mapped_column(
        JSON, default=list, nullable=False, comment="Attached image references"
    )

    # Pricing
    request_type: Mapped[RequestType] = mapped_column(
        Enum(RequestType), nullable=False, comment="FIXED or BIDDING"
    )
    fixed_amount: Mapped[Decimal | None] = mapped_column(
        MONEY, nullable=True, comment="Set iff request_type is FIXED"
    )
    bidding_end_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="End of the bidding window"
    )
    min_bid_amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    max_bid_amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)

    # Lifecycle & Assignment
    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus),
        default=RequestStatus.OPEN,
        nullable=False,
        index=True,
        comment="Current status of the request",
    )
    assigned_provider_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    assigned_provider_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    accepted_bid_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, nullable=True, comment="Winning bid (bidding path only)"
    )
    final_amount: Mapped[Decimal | None] = mapped_column(
        MONEY, nullable=True, comment="Agreed amount once assigned"
    )

    # Audit Fields
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="Timestamp when the request was created",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        comment="Timestamp when the request was last updated",
    )


# MODEL: Bid
class Bid(Base):
    __tablename__ = "bids"
    __table_args__ = (
        UniqueConstraint("service_request_id", "provider_id", name="uq_bids_request_provider"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier for the bid",
    )
    service_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("service_requests.id", name="fk_bids_service_request_id"),
        nullable=False,
        index=True,
    )
    provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", name="fk_bids_provider_id"),
        nullable=False,
        index=True,
    )
    provider_name: Mapped[str] = mapped_column(String(120), nullable=False)
    proposed_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    estimated_time: Mapped[str | None] = mapped_column(String(100), nullable=True)
    attachments: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, default=list, nullable=False, comment="Image/video attachments (max 5)"
    )
    status: Mapped[BidStatus] = mapped_column(
        Enum(BidStatus),
        default=BidStatus.PENDING,
        nullable=False,
        comment="PENDING until the requester picks a winner",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
