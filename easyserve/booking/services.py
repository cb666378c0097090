"""
booking/services.py

Booking Ledger Service Layer
Owns the booking status state machine and the booking message thread:
- Start, provider completion, requester confirmation (with payment release)
- Cancellation by either party (with refund of a held payment)
- Booking retrieval scoped to the booking's parties
- Append-only messages between requester and provider

Every transition is checked against ALLOWED_TRANSITIONS and mirrored onto
the originating service request (forward-only).
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from easyserve.auth.schemas import ProviderIdentity, RequesterIdentity
from easyserve.booking import schemas
from easyserve.booking.models import Booking, BookingMessage, BookingStatus, can_transition
from easyserve.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from easyserve.payment.services import PaymentService
from easyserve.service_request.models import RequestStatus, ServiceRequest
from easyserve.service_request.services import ServiceRequestService, advance_request_status

logger = logging.getLogger(__name__)

Party = RequesterIdentity | ProviderIdentity

MESSAGE_POST_ATTEMPTS = 3


class BookingService:
    """Service class for booking lifecycle and messaging."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ---------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------
    async def _get_booking_or_404(self, booking_id: UUID) -> Booking:
        booking = await self.db.get(Booking, booking_id)
        if not booking:
            logger.warning(f"Booking not found: booking_id={booking_id}")
            raise NotFoundError("Booking not found")
        return booking

    async def _get_party_booking(self, booking_id: UUID, caller: Party) -> Booking:
        booking = await self._get_booking_or_404(booking_id)
        if not booking.involves(caller.id):
            logger.warning(f"[BOOKING] {caller.id} is not a party to booking {booking_id}")
            raise ForbiddenError("You are not a party to this booking")
        return booking

    @staticmethod
    def _ensure_transition(booking: Booking, target: BookingStatus) -> None:
        if not can_transition(booking.status, target):
            raise InvalidStateError(
                f"Cannot move booking from {booking.status.value} to {target.value}"
            )

    async def _sync_request(self, booking: Booking, target: RequestStatus) -> None:
        request = await self.db.get(ServiceRequest, booking.service_request_id)
        if request and advance_request_status(request, target):
            logger.debug(f"[BOOKING] Request {request.id} advanced to {target.value}")

    async def _save(self, booking: Booking) -> Booking:
        await self.db.commit()
        await self.db.refresh(booking)
        return booking

    # ---------------------------------------------------
    # Service lifecycle
    # ---------------------------------------------------
    async def start_service(self, provider: ProviderIdentity, booking_id: UUID) -> Booking:
        """Assigned provider starts work on a confirmed booking."""
        booking = await self._get_booking_or_404(booking_id)
        if booking.provider_id != provider.id:
            raise ForbiddenError("Only the assigned provider can start this booking")
        self._ensure_transition(booking, BookingStatus.IN_PROGRESS)

        booking.status = BookingStatus.IN_PROGRESS
        booking.started_at = datetime.now(timezone.utc)
        await self._sync_request(booking, RequestStatus.IN_PROGRESS)
        await self._save(booking)
        logger.info(f"[BOOKING] Service started: booking_id={booking.id}")
        return booking

    async def provider_complete_service(
        self, provider: ProviderIdentity, booking_id: UUID
    ) -> Booking:
        """Assigned provider marks the work as done."""
        booking = await self._get_booking_or_404(booking_id)
        if booking.provider_id != provider.id:
            raise ForbiddenError("Only the assigned provider can complete this booking")
        self._ensure_transition(booking, BookingStatus.COMPLETED)

        booking.completed_by_provider = True
        booking.status = BookingStatus.COMPLETED
        await self._sync_request(booking, RequestStatus.COMPLETED)
        await self._save(booking)
        logger.info(f"[BOOKING] Service completed by provider: booking_id={booking.id}")
        return booking

    async def confirm_and_release(
        self,
        requester: RequesterIdentity,
        booking_id: UUID,
        rating: int | None = None,
        review: str | None = None,
    ) -> Booking:
        """
        Requester confirms completion and releases the held payment.

        The confirmation fields and the escrow release commit together.
        """
        booking = await self._get_booking_or_404(booking_id)
        if booking.requester_id != requester.id:
            raise ForbiddenError("Only the requester can confirm this booking")
        if not booking.completed_by_provider:
            raise InvalidStateError("The provider has not marked this booking as completed")
        if rating is not None and not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5")

        booking.completed_by_user = True
        booking.completed_at = datetime.now(timezone.utc)
        if rating is not None:
            booking.rating = rating
        if review is not None:
            booking.review = review

        await PaymentService(self.db).release_payment(booking.id, commit=False)
        await self._save(booking)
        logger.info(f"[BOOKING] Booking confirmed and payment released: booking_id={booking.id}")
        return booking

    async def cancel_booking(self, party: Party, booking_id: UUID) -> Booking:
        """Either party cancels before completion; a held payment is refunded."""
        booking = await self._get_party_booking(booking_id, party)
        self._ensure_transition(booking, BookingStatus.CANCELLED)

        booking.status = BookingStatus.CANCELLED
        booking.cancelled_at = datetime.now(timezone.utc)
        await PaymentService(self.db).refund_payment(booking)
        await self._sync_request(booking, RequestStatus.CANCELLED)
        await self._save(booking)
        logger.info(f"[BOOKING] Booking cancelled by {party.role.value} {party.id}: booking_id={booking.id}")
        return booking

    async def update_status(self, caller: Party, booking_id: UUID, status: BookingStatus) -> Booking:
        """Dispatches a requested target status to the matching lifecycle operation."""
        if status == BookingStatus.CANCELLED:
            return await self.cancel_booking(caller, booking_id)
        if status in (BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED):
            if not isinstance(caller, ProviderIdentity):
                raise ForbiddenError("Only the assigned provider can change the service status")
            if status == BookingStatus.IN_PROGRESS:
                return await self.start_service(caller, booking_id)
            return await self.provider_complete_service(caller, booking_id)
        raise InvalidStateError(f"Status '{status.value}' cannot be set directly")

    # ---------------------------------------------------
    # Creation (compatibility entry point)
    # ---------------------------------------------------
    async def create_booking(
        self, caller: Party, payload: schemas.BookingCreate
    ) -> Booking:
        """Creates a booking through bid acceptance (requester) or fixed acceptance (provider)."""
        requests = ServiceRequestService(self.db)
        if payload.bid_id is not None:
            if not isinstance(caller, RequesterIdentity):
                raise ForbiddenError("Only requesters can book through a bid")
            _, booking = await requests.accept_bid(caller, payload.bid_id)
            return booking

        if not isinstance(caller, ProviderIdentity):
            raise ForbiddenError("Only providers can accept a fixed-price request")
        _, booking = await requests.accept_fixed_request(caller, payload.request_id)
        return booking

    # ---------------------------------------------------
    # Retrieval
    # ---------------------------------------------------
    async def get_booking(self, caller: Party, booking_id: UUID) -> Booking:
        return await self._get_party_booking(booking_id, caller)

    async def list_bookings(
        self, caller: Party, filters: schemas.BookingFilters
    ) -> list[Booking]:
        """Bookings the caller is a party to, newest first."""
        stmt = select(Booking).filter(
            or_(Booking.requester_id == caller.id, Booking.provider_id == caller.id)
        )
        if filters.requester_id is not None:
            stmt = stmt.filter(Booking.requester_id == filters.requester_id)
        if filters.provider_id is not None:
            stmt = stmt.filter(Booking.provider_id == filters.provider_id)
        if filters.statuses:
            stmt = stmt.filter(Booking.status.in_(filters.statuses))
        result = await self.db.execute(stmt.order_by(Booking.created_at.desc()))
        return list(result.scalars().all())

    # ---------------------------------------------------
    # Messages
    # ---------------------------------------------------
    async def post_message(self, sender: Party, booking_id: UUID, text: str) -> BookingMessage:
        booking = await self._get_party_booking(booking_id, sender)
        body = text.strip()
        if not body:
            raise ValidationError("Message text cannot be empty")

        booking_id = booking.id
        for attempt in range(1, MESSAGE_POST_ATTEMPTS + 1):
            last = await self.db.execute(
                select(func.max(BookingMessage.sequence)).filter(
                    BookingMessage.booking_id == booking_id
                )
            )
            message = BookingMessage(
                booking_id=booking_id,
                sequence=(last.scalar_one_or_none() or 0) + 1,
                sender_role=sender.role,
                sender_id=sender.id,
                text=body,
            )
            self.db.add(message)
            try:
                await self.db.commit()
            except IntegrityError:
                # Another message took this position
                await self.db.rollback()
                logger.warning(f"[BOOKING] Message sequence clash on booking {booking_id} (attempt {attempt})")
                continue

            await self.db.refresh(message)
            logger.info(f"[BOOKING] Message {message.id} posted on booking {booking_id} by {sender.id}")
            return message

        raise ConflictError("The conversation is busy; please resend the message")

    async def get_messages(self, caller: Party, booking_id: UUID) -> list[BookingMessage]:
        """The booking's thread in insertion order."""
        await self._get_party_booking(booking_id, caller)
        result = await self.db.execute(
            select(BookingMessage)
            .filter(BookingMessage.booking_id == booking_id)
            .order_by(BookingMessage.sequence.asc())
        )
        return list(result.scalars().all())
