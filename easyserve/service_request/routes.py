"""
service_request/routes.py

Service Request Routes
Defines request-ledger endpoints:
- Create / cancel a service request (Authenticated Requester)
- Accept a bid (Authenticated Requester)
- Place a bid, accept a fixed-price request (Authenticated Provider)
- List / retrieve requests and bids (Authenticated Requester/Provider)
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from easyserve.auth.schemas import ProviderIdentity, RequesterIdentity
from easyserve.booking.schemas import BookingRead
from easyserve.core.dependencies import (
    get_current_party,
    get_current_provider,
    get_current_requester,
)
from easyserve.core.exceptions import ValidationError
from easyserve.core.limiter import limiter
from easyserve.database.session import get_db
from easyserve.service_request import schemas
from easyserve.service_request.models import RequestStatus, RequestType
from easyserve.service_request.services import ServiceRequestService

router = APIRouter(prefix="/service-requests", tags=["Service Requests"])

DBDep = Annotated[AsyncSession, Depends(get_db)]

RequesterDep = Annotated[RequesterIdentity, Depends(get_current_requester)]
ProviderDep = Annotated[ProviderIdentity, Depends(get_current_provider)]
PartyDep = Annotated[RequesterIdentity | ProviderIdentity, Depends(get_current_party)]


def parse_statuses(raw: str | None) -> set[RequestStatus]:
    """Parses a comma-separated `status` query parameter."""
    if not raw:
        return set()
    try:
        return {RequestStatus(part.strip()) for part in raw.split(",") if part.strip()}
    except ValueError:
        raise ValidationError(f"Unknown request status in '{raw}'")


def _acceptance(request, booking) -> schemas.AcceptanceResult:
    return schemas.AcceptanceResult(
        request=schemas.ServiceRequestRead.model_validate(request),
        booking=BookingRead.model_validate(booking),
    )


# ---------------------------------------------------
# Requester Endpoints
# ---------------------------------------------------
@router.post(
    "",
    response_model=schemas.ServiceRequestRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Service Request",
    description="Requester posts a fixed-price or bidding request. Requires User role.",
)
@limiter.limit("10/minute")
async def create_request(
    request: Request,
    payload: schemas.ServiceRequestCreate,
    db: DBDep,
    requester: RequesterDep,
) -> schemas.ServiceRequestRead:
    service_request = await ServiceRequestService(db).create_request(requester, payload)
    return schemas.ServiceRequestRead.model_validate(service_request)


@router.post(
    "/accept-bid",
    response_model=schemas.AcceptanceResult,
    status_code=status.HTTP_200_OK,
    summary="Accept Bid",
    description="Requester accepts a bid; other bids are rejected and a booking is created.",
)
@limiter.limit("10/minute")
async def accept_bid(
    request: Request,
    payload: schemas.AcceptBidRequest,
    db: DBDep,
    requester: RequesterDep,
) -> schemas.AcceptanceResult:
    service_request, booking = await ServiceRequestService(db).accept_bid(requester, payload.bid_id)
    return _acceptance(service_request, booking)


@router.post(
    "/{request_id}/cancel",
    response_model=schemas.ServiceRequestRead,
    status_code=status.HTTP_200_OK,
    summary="Cancel Service Request",
)
@limiter.limit("10/minute")
async def cancel_request(
    request: Request,
    request_id: UUID,
    db: DBDep,
    requester: RequesterDep,
) -> schemas.ServiceRequestRead:
    service_request = await ServiceRequestService(db).cancel_request(requester, request_id)
    return schemas.ServiceRequestRead.model_validate(service_request)


# ---------------------------------------------------
# Provider Endpoints
# ---------------------------------------------------
@router.post(
    "/bid",
    response_model=schemas.BidRead,
    status_code=status.HTTP_201_CREATED,
    summary="Place Bid",
    description="Provider places one bid on a bidding request. Requires Provider role.",
)
@limiter.limit("10/minute")
async def place_bid(
    request: Request,
    payload: schemas.BidCreate,
    db: DBDep,
    provider: ProviderDep,
) -> schemas.BidRead:
    bid = await ServiceRequestService(db).place_bid(provider, payload)
    return schemas.BidRead.model_validate(bid)


@router.post(
    "/accept-fixed",
    response_model=schemas.AcceptanceResult,
    status_code=status.HTTP_200_OK,
    summary="Accept Fixed-Price Request",
)
@limiter.limit("10/minute")
async def accept_fixed(
    request: Request,
    payload: schemas.AcceptFixedRequest,
    db: DBDep,
    provider: ProviderDep,
) -> schemas.AcceptanceResult:
    service_request, booking = await ServiceRequestService(db).accept_fixed_request(
        provider, payload.request_id
    )
    return _acceptance(service_request, booking)


@router.get(
    "/provider-bids/{provider_id}",
    response_model=list[schemas.BidRead],
    status_code=status.HTTP_200_OK,
    summary="List Provider Bids",
)
async def list_provider_bids(
    provider_id: UUID,
    db: DBDep,
    caller: PartyDep,
) -> list[schemas.BidRead]:
    bids = await ServiceRequestService(db).list_provider_bids(caller, provider_id)
    return [schemas.BidRead.model_validate(b) for b in bids]


# ---------------------------------------------------
# Shared Endpoints (Requester or Provider)
# ---------------------------------------------------
@router.get(
    "",
    response_model=list[schemas.ServiceRequestRead],
    status_code=status.HTTP_200_OK,
    summary="List Service Requests",
)
async def list_requests(
    db: DBDep,
    caller: PartyDep,
    user_id: Annotated[UUID | None, Query(alias="userId")] = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    request_type: Annotated[RequestType | None, Query(alias="requestType")] = None,
) -> list[schemas.ServiceRequestRead]:
    filters = schemas.RequestFilters(
        requester_id=user_id,
        statuses=parse_statuses(status_filter),
        request_type=request_type,
    )
    requests = await ServiceRequestService(db).list_requests(filters)
    return [schemas.ServiceRequestRead.model_validate(r) for r in requests]


@router.get(
    "/{request_id}",
    response_model=schemas.ServiceRequestRead,
    status_code=status.HTTP_200_OK,
    summary="Get Service Request",
)
async def get_request(
    request_id: UUID,
    db: DBDep,
    caller: PartyDep,
) -> schemas.ServiceRequestRead:
    service_request = await ServiceRequestService(db).get_request(request_id)
    return schemas.ServiceRequestRead.model_validate(service_request)


@router.get(
    "/{request_id}/bids",
    response_model=list[schemas.BidRead],
    status_code=status.HTTP_200_OK,
    summary="List Bids For Request",
)
async def list_bids(
    request_id: UUID,
    db: DBDep,
    caller: PartyDep,
) -> list[schemas.BidRead]:
    bids = await ServiceRequestService(db).list_bids_for_request(request_id)
    return [schemas.BidRead.model_validate(b) for b in bids]
