"""
service_request/services.py

Request Ledger Service Layer
Handles service request creation, bidding, bid/fixed acceptance, cancellation
and retrieval. Acceptance assigns the request, settles every bid and creates
the single Booking for the request inside one database transaction.
"""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from easyserve.auth.schemas import ProviderIdentity, RequesterIdentity
from easyserve.booking.models import Booking, BookingStatus
from easyserve.catalog.models import Category
from easyserve.core.config import settings
from easyserve.core.exceptions import (
    ConflictError,
    DuplicateError,
    ForbiddenError,
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from easyserve.database.base import to_money
from easyserve.service_request import schemas
from easyserve.service_request.models import (
    Bid,
    BidStatus,
    RequestStatus,
    RequestType,
    ServiceRequest,
)

logger = logging.getLogger(__name__)

BIDDABLE_STATUSES = frozenset({RequestStatus.OPEN, RequestStatus.BIDDING})
TERMINAL_REQUEST_STATUSES = frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED})
_LIFECYCLE = list(RequestStatus)


# ---------------------------------------------------
# Helpers
# ---------------------------------------------------
def as_utc(value: datetime) -> datetime:
    """Treats naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def advance_request_status(request: ServiceRequest, target: RequestStatus) -> bool:
    """
    Moves a request forward along its lifecycle. Backward moves and moves out
    of a terminal status are ignored. Returns True when the status changed.
    """
    if request.status in TERMINAL_REQUEST_STATUSES:
        return False
    if _LIFECYCLE.index(target) <= _LIFECYCLE.index(request.status):
        return False
    request.status = target
    return True


class ServiceRequestService:
    """Service class for the request ledger (requests, bids, acceptance)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _get_request_or_404(self, request_id: UUID) -> ServiceRequest:
        request = await self.db.get(ServiceRequest, request_id)
        if not request:
            logger.warning(f"Service request not found: request_id={request_id}")
            raise NotFoundError("Service request not found")
        return request

    async def _get_bid_or_404(self, bid_id: UUID) -> Bid:
        bid = await self.db.get(Bid, bid_id)
        if not bid:
            logger.warning(f"Bid not found: bid_id={bid_id}")
            raise NotFoundError("Bid not found")
        return bid

    async def _commit_acceptance(self, request: ServiceRequest, booking: Booking) -> None:
        """Commits an acceptance; a concurrent acceptance surfaces as a conflict."""
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"[ACCEPT] Concurrent acceptance for request {request.id}: {e.orig}")
            raise ConflictError("A booking already exists for this request")

        await self.db.refresh(request)
        await self.db.refresh(booking)

    async def _move_request(
        self, request: ServiceRequest, from_statuses: frozenset[RequestStatus], **values: Any
    ) -> bool:
        """
        Conditionally updates the request row while it is still in one of
        `from_statuses`. Returns False when another writer moved it first.
        """
        result = await self.db.execute(
            update(ServiceRequest)
            .execution_options(synchronize_session=False)
            .where(ServiceRequest.id == request.id, ServiceRequest.status.in_(from_statuses))
            .values(**values)
        )
        if result.rowcount != 1:
            logger.warning(f"Request {request.id} left {sorted(s.value for s in from_statuses)} concurrently")
            return False
        for key, value in values.items():
            setattr(request, key, value)
        return True

    # ---------------------------------------------------
    # Request Creation
    # ---------------------------------------------------
    @staticmethod
    def _validate_pricing(payload: schemas.ServiceRequestCreate) -> None:
        if payload.request_type == RequestType.FIXED:
            if payload.fixed_amount is None:
                raise ValidationError("fixedAmount is required for fixed-price requests")
            if to_money(payload.fixed_amount) <= 0:
                raise ValidationError("fixedAmount must be at least 0.01")
            return

        if payload.bidding_end_date is None:
            raise ValidationError("biddingEndDate is required for bidding requests")
        if as_utc(payload.bidding_end_date) <= datetime.now(timezone.utc):
            raise ValidationError("biddingEndDate must be in the future")
        for bound in (payload.min_bid_amount, payload.max_bid_amount):
            if bound is not None and to_money(bound) <= 0:
                raise ValidationError("Bid range bounds must be at least 0.01")
        if (
            payload.min_bid_amount is not None
            and payload.max_bid_amount is not None
            and to_money(payload.min_bid_amount) > to_money(payload.max_bid_amount)
        ):
            raise ValidationError("minBidAmount cannot exceed maxBidAmount")

    async def create_request(
        self, requester: RequesterIdentity, payload: schemas.ServiceRequestCreate
    ) -> ServiceRequest:
        """Requester posts a new request; it always starts OPEN."""
        logger.info(
            f"Requester {requester.id} creating {payload.request_type.value} request in category {payload.category_id}"
        )
        self._validate_pricing(payload)

        category = await self.db.get(Category, payload.category_id)
        if not category:
            raise NotFoundError("Category not found")

        is_fixed = payload.request_type == RequestType.FIXED
        request = ServiceRequest(
            requester_id=requester.id,
            requester_name=requester.name,
            category_id=category.id,
            category_name=category.name,
            description=payload.description,
            address=payload.address,
            images=list(payload.images),
            request_type=payload.request_type,
            fixed_amount=to_money(payload.fixed_amount) if is_fixed else None,
            bidding_end_date=None if is_fixed else as_utc(payload.bidding_end_date),
            min_bid_amount=(
                to_money(payload.min_bid_amount)
                if not is_fixed and payload.min_bid_amount is not None
                else None
            ),
            max_bid_amount=(
                to_money(payload.max_bid_amount)
                if not is_fixed and payload.max_bid_amount is not None
                else None
            ),
            status=RequestStatus.OPEN,
        )
        self.db.add(request)
        await self.db.commit()
        await self.db.refresh(request)
        logger.info(f"Service request created: request_id={request.id}")
        return request

    # ---------------------------------------------------
    # Bidding
    # ---------------------------------------------------
    async def place_bid(self, provider: ProviderIdentity, payload: schemas.BidCreate) -> Bid:
        """Provider places a single bid on a bidding request."""
        logger.info(f"[BID] Provider {provider.id} bidding on request {payload.service_request_id}")
        request = await self._get_request_or_404(payload.service_request_id)

        if request.request_type != RequestType.BIDDING:
            raise InvalidStateError("This request is not open for bidding")
        if request.status not in BIDDABLE_STATUSES:
            raise InvalidStateError("Bidding is closed for this request")
        if (
            settings.ENFORCE_BIDDING_WINDOW
            and request.bidding_end_date is not None
            and as_utc(request.bidding_end_date) <= datetime.now(timezone.utc)
        ):
            raise InvalidStateError("The bidding window for this request has closed")

        existing = await self.db.execute(
            select(Bid.id).filter(
                Bid.service_request_id == request.id, Bid.provider_id == provider.id
            )
        )
        if existing.scalar_one_or_none():
            logger.warning(f"[BID] Duplicate bid by provider {provider.id} on request {request.id}")
            raise DuplicateError("You have already placed a bid on this request")

        # Stored in whole cents; anything that rounds to zero is not a price
        amount = to_money(payload.proposed_amount)
        if amount <= 0:
            raise InvalidAmountError("Bid amount must be at least 0.01")
        if request.min_bid_amount is not None and amount < request.min_bid_amount:
            raise InvalidAmountError(f"Bid amount must be at least {request.min_bid_amount}")
        if request.max_bid_amount is not None and amount > request.max_bid_amount:
            raise InvalidAmountError(f"Bid amount must not exceed {request.max_bid_amount}")
        if len(payload.attachments) > settings.MAX_BID_ATTACHMENTS:
            raise ValidationError(
                f"A bid may carry at most {settings.MAX_BID_ATTACHMENTS} attachments"
            )

        bid = Bid(
            service_request_id=request.id,
            provider_id=provider.id,
            provider_name=provider.name,
            proposed_amount=amount,
            note=payload.note,
            estimated_time=payload.estimated_time,
            attachments=[a.model_dump(exclude_none=True) for a in payload.attachments],
            status=BidStatus.PENDING,
        )
        self.db.add(bid)
        if request.status == RequestStatus.OPEN:
            request.status = RequestStatus.BIDDING

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.warning(f"[BID] Concurrent duplicate bid by provider {provider.id}")
            raise DuplicateError("You have already placed a bid on this request")

        await self.db.refresh(bid)
        logger.info(f"[BID] Bid placed: bid_id={bid.id} amount={bid.proposed_amount}")
        return bid

    async def list_bids_for_request(self, request_id: UUID) -> list[Bid]:
        """All bids on a request, cheapest first."""
        await self._get_request_or_404(request_id)
        result = await self.db.execute(
            select(Bid)
            .filter(Bid.service_request_id == request_id)
            .order_by(Bid.proposed_amount.asc(), Bid.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_provider_bids(
        self, caller: RequesterIdentity | ProviderIdentity, provider_id: UUID
    ) -> list[Bid]:
        """A provider's bids, newest first. Providers may only read their own."""
        if isinstance(caller, ProviderIdentity) and caller.id != provider_id:
            raise ForbiddenError("Providers may only view their own bids")
        result = await self.db.execute(
            select(Bid).filter(Bid.provider_id == provider_id).order_by(Bid.created_at.desc())
        )
        return list(result.scalars().all())

    # ---------------------------------------------------
    # Acceptance
    # ---------------------------------------------------
    async def accept_bid(
        self, requester: RequesterIdentity, bid_id: UUID
    ) -> tuple[ServiceRequest, Booking]:
        """Requester picks the winning bid; siblings are rejected and a booking is created."""
        logger.info(f"[ACCEPT] Requester {requester.id} accepting bid {bid_id}")
        bid = await self._get_bid_or_404(bid_id)
        request = await self._get_request_or_404(bid.service_request_id)

        if request.requester_id != requester.id:
            raise ForbiddenError("Only the requester can accept bids on this request")

        existing = await self.db.execute(select(Booking.id).filter(Booking.bid_id == bid.id))
        if existing.scalar_one_or_none():
            raise ConflictError("A booking already exists for this bid")

        if request.status not in BIDDABLE_STATUSES:
            raise InvalidStateError(f"Cannot accept a bid on a request that is {request.status.value}")
        if bid.status != BidStatus.PENDING:
            raise InvalidStateError(f"Bid is already {bid.status.value}")

        assigned = await self._move_request(
            request,
            BIDDABLE_STATUSES,
            assigned_provider_id=bid.provider_id,
            assigned_provider_name=bid.provider_name,
            accepted_bid_id=bid.id,
            final_amount=bid.proposed_amount,
            status=RequestStatus.ASSIGNED,
        )
        if not assigned:
            await self.db.rollback()
            raise ConflictError("This request was assigned or cancelled meanwhile")

        bid.status = BidStatus.ACCEPTED
        await self.db.execute(
            update(Bid)
            .where(
                Bid.service_request_id == request.id,
                Bid.id != bid.id,
                Bid.status == BidStatus.PENDING,
            )
            .values(status=BidStatus.REJECTED)
        )

        booking = Booking(
            service_request_id=request.id,
            bid_id=bid.id,
            requester_id=request.requester_id,
            requester_name=request.requester_name,
            provider_id=bid.provider_id,
            provider_name=bid.provider_name,
            agreed_price=bid.proposed_amount,
            status=BookingStatus.CONFIRMED,
        )
        self.db.add(booking)
        await self._commit_acceptance(request, booking)

        logger.info(
            f"[ACCEPT] Bid {bid.id} accepted: request={request.id} booking={booking.id} price={booking.agreed_price}"
        )
        return request, booking

    async def accept_fixed_request(
        self, provider: ProviderIdentity, request_id: UUID
    ) -> tuple[ServiceRequest, Booking]:
        """Provider takes a fixed-price request at its listed amount."""
        logger.info(f"[ACCEPT] Provider {provider.id} accepting fixed request {request_id}")
        request = await self._get_request_or_404(request_id)

        if request.request_type != RequestType.FIXED:
            raise InvalidStateError("Only fixed-price requests can be accepted directly")

        existing = await self.db.execute(
            select(Booking.id).filter(
                Booking.service_request_id == request.id, Booking.provider_id == provider.id
            )
        )
        if existing.scalar_one_or_none():
            raise ConflictError("You have already accepted this request")

        if request.status != RequestStatus.OPEN:
            raise InvalidStateError("Request already assigned")

        assigned = await self._move_request(
            request,
            frozenset({RequestStatus.OPEN}),
            assigned_provider_id=provider.id,
            assigned_provider_name=provider.name,
            final_amount=request.fixed_amount,
            status=RequestStatus.ASSIGNED,
        )
        if not assigned:
            await self.db.rollback()
            raise ConflictError("This request was assigned or cancelled meanwhile")

        booking = Booking(
            service_request_id=request.id,
            bid_id=None,
            requester_id=request.requester_id,
            requester_name=request.requester_name,
            provider_id=provider.id,
            provider_name=provider.name,
            agreed_price=request.fixed_amount,
            status=BookingStatus.CONFIRMED,
        )
        self.db.add(booking)
        await self._commit_acceptance(request, booking)

        logger.info(f"[ACCEPT] Fixed request {request.id} assigned: booking={booking.id}")
        return request, booking

    # ---------------------------------------------------
    # Cancellation
    # ---------------------------------------------------
    async def cancel_request(
        self, requester: RequesterIdentity, request_id: UUID
    ) -> ServiceRequest:
        """Requester withdraws a request that has not been assigned yet."""
        request = await self._get_request_or_404(request_id)
        if request.requester_id != requester.id:
            raise ForbiddenError("Only the requester can cancel this request")
        if request.status not in BIDDABLE_STATUSES:
            raise InvalidStateError(f"Cannot cancel a request that is {request.status.value}")

        if not await self._move_request(
            request, BIDDABLE_STATUSES, status=RequestStatus.CANCELLED
        ):
            await self.db.rollback()
            raise InvalidStateError("Request was assigned before it could be cancelled")
        await self.db.execute(
            update(Bid)
            .where(Bid.service_request_id == request.id, Bid.status == BidStatus.PENDING)
            .values(status=BidStatus.REJECTED)
        )
        await self.db.commit()
        await self.db.refresh(request)
        logger.info(f"Service request cancelled: request_id={request.id}")
        return request

    # ---------------------------------------------------
    # Retrieval
    # ---------------------------------------------------
    async def get_request(self, request_id: UUID) -> ServiceRequest:
        return await self._get_request_or_404(request_id)

    async def list_requests(self, filters: schemas.RequestFilters) -> list[ServiceRequest]:
        """Requests matching the filters, newest first."""
        stmt = select(ServiceRequest)
        if filters.requester_id is not None:
            stmt = stmt.filter(ServiceRequest.requester_id == filters.requester_id)
        if filters.statuses:
            stmt = stmt.filter(ServiceRequest.status.in_(filters.statuses))
        if filters.request_type is not None:
            stmt = stmt.filter(ServiceRequest.request_type == filters.request_type)
        result = await self.db.execute(stmt.order_by(ServiceRequest.created_at.desc()))
        return list(result.scalars().all())
