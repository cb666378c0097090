"""
booking/routes.py

Booking Routes
Defines booking endpoints for both parties:
- Create a booking from a bid (Requester) or a fixed-price request (Provider)
- Update service status (start / complete / cancel)
- List and retrieve own bookings
- Read and post booking messages

All endpoints require authentication.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from easyserve.auth.schemas import ProviderIdentity, RequesterIdentity
from easyserve.booking import schemas
from easyserve.booking.models import BookingStatus
from easyserve.booking.services import BookingService
from easyserve.core.dependencies import get_current_party
from easyserve.core.exceptions import ValidationError
from easyserve.core.limiter import limiter
from easyserve.database.session import get_db

router = APIRouter(prefix="/bookings", tags=["Bookings"])

DBDep = Annotated[AsyncSession, Depends(get_db)]
PartyDep = Annotated[RequesterIdentity | ProviderIdentity, Depends(get_current_party)]


def parse_statuses(raw: str | None) -> set[BookingStatus]:
    """Parses a comma-separated `status` query parameter."""
    if not raw:
        return set()
    try:
        return {BookingStatus(part.strip()) for part in raw.split(",") if part.strip()}
    except ValueError:
        raise ValidationError(f"Unknown booking status in '{raw}'")


@router.get(
    "",
    response_model=list[schemas.BookingRead],
    status_code=status.HTTP_200_OK,
    summary="List My Bookings",
)
async def list_bookings(
    db: DBDep,
    caller: PartyDep,
    user_id: Annotated[UUID | None, Query(alias="userId")] = None,
    provider_id: Annotated[UUID | None, Query(alias="providerId")] = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> list[schemas.BookingRead]:
    filters = schemas.BookingFilters(
        requester_id=user_id,
        provider_id=provider_id,
        statuses=parse_statuses(status_filter),
    )
    bookings = await BookingService(db).list_bookings(caller, filters)
    return [schemas.BookingRead.model_validate(b) for b in bookings]


@router.post(
    "",
    response_model=schemas.BookingRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Booking",
    description="Books through a bid (requester, `bidId`) or a fixed-price request (provider, `requestId`).",
)
@limiter.limit("10/minute")
async def create_booking(
    request: Request,
    payload: schemas.BookingCreate,
    db: DBDep,
    caller: PartyDep,
) -> schemas.BookingRead:
    booking = await BookingService(db).create_booking(caller, payload)
    return schemas.BookingRead.model_validate(booking)


@router.put(
    "/{booking_id}/status",
    response_model=schemas.BookingRead,
    status_code=status.HTTP_200_OK,
    summary="Update Booking Status",
    description="Provider starts or completes the service; either party may cancel.",
)
@limiter.limit("20/minute")
async def update_booking_status(
    request: Request,
    booking_id: UUID,
    payload: schemas.BookingStatusUpdate,
    db: DBDep,
    caller: PartyDep,
) -> schemas.BookingRead:
    booking = await BookingService(db).update_status(caller, booking_id, payload.status)
    return schemas.BookingRead.model_validate(booking)


@router.get(
    "/{booking_id}",
    response_model=schemas.BookingRead,
    status_code=status.HTTP_200_OK,
    summary="Get Booking",
)
async def get_booking(booking_id: UUID, db: DBDep, caller: PartyDep) -> schemas.BookingRead:
    booking = await BookingService(db).get_booking(caller, booking_id)
    return schemas.BookingRead.model_validate(booking)


# ---------------------------------------------------
# Messages
# ---------------------------------------------------
@router.get(
    "/{booking_id}/messages",
    response_model=list[schemas.MessageRead],
    status_code=status.HTTP_200_OK,
    summary="Get Booking Messages",
)
async def get_messages(
    booking_id: UUID, db: DBDep, caller: PartyDep
) -> list[schemas.MessageRead]:
    messages = await BookingService(db).get_messages(caller, booking_id)
    return [schemas.MessageRead.model_validate(m) for m in messages]


@router.post(
    "/{booking_id}/messages",
    response_model=schemas.MessageRead,
    status_code=status.HTTP_201_CREATED,
    summary="Post Booking Message",
)
@limiter.limit("30/minute")
async def post_message(
    request: Request,
    booking_id: UUID,
    payload: schemas.MessageCreate,
    db: DBDep,
    caller: PartyDep,
) -> schemas.MessageRead:
    message = await BookingService(db).post_message(caller, booking_id, payload.text)
    return schemas.MessageRead.model_validate(message)
