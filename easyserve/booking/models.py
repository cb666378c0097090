"""
booking/models.py

Defines the Booking and BookingMessage models and the BookingStatus enum.
- Booking: the working agreement created once a bid or fixed offer is accepted
- BookingMessage: append-only conversation between requester and provider
- ALLOWED_TRANSITIONS: the booking status state machine
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from easyserve.database.base import MONEY, Base, utcnow
from easyserve.database.enums import UserRole


# ENUM: Booking Status
class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    PAYMENT_RELEASED = "payment-released"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"


ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED, BookingStatus.DISPUTED}
    ),
    BookingStatus.IN_PROGRESS: frozenset(
        {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.DISPUTED}
    ),
    BookingStatus.COMPLETED: frozenset({BookingStatus.PAYMENT_RELEASED, BookingStatus.DISPUTED}),
    BookingStatus.PAYMENT_RELEASED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.DISPUTED: frozenset(),
}


def can_transition(current: BookingStatus, new: BookingStatus) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


# MODEL: BookingMessage
class BookingMessage(Base):
    __tablename__ = "booking_messages"
    __table_args__ = (
        UniqueConstraint("booking_id", "sequence", name="uq_booking_messages_booking_sequence"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier for the message",
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", name="fk_booking_messages_booking_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(
        Integer, nullable=False, comment="Position of the message within its booking thread"
    )
    sender_role: Mapped[UserRole] = mapped_column(Enum(UserRole), nullable=False)
    sender_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="Timestamp when the message was sent",
    )


# MODEL: Booking
class Booking(Base):
    __tablename__ = "bookings"

    # Identifiers & Origin
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier for the booking",
    )
    service_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("service_requests.id", name="fk_bookings_service_request_id"),
        nullable=False,
        unique=True,
        comment="Originating service request (one booking per request)",
    )
    bid_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("bids.id", name="fk_bookings_bid_id"),
        nullable=True,
        unique=True,
        comment="Originating bid; NULL for fixed-price acceptance",
    )

    # Parties
    requester_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    requester_name: Mapped[str] = mapped_column(String(120), nullable=False)
    provider_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    provider_name: Mapped[str] = mapped_column(String(120), nullable=False)

    # Terms & Status
    agreed_price: Mapped[Decimal] = mapped_column(
        MONEY, nullable=False, comment="Copied from bid or fixed amount; never updated"
    )
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus),
        default=BookingStatus.CONFIRMED,
        nullable=False,
        comment="Current status of the booking",
    )
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    transaction_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    # Completion
    completed_by_provider: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_by_user: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Feedback (stored only)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    review: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Audit Fields
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def involves(self, user_id: uuid.UUID) -> bool:
        """True when the account is this booking's requester or provider."""
        return user_id in (self.requester_id, self.provider_id)
