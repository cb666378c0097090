"""
payment/routes.py

Payment Routes
Defines escrow and wallet endpoints:
- Initiate payment, confirm completion & release (Authenticated Requester)
- Mark service completed, withdraw (Authenticated Provider)
- Wallet, transaction history, disputes, bank details (Requester/Provider)
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from easyserve.auth.schemas import ProviderIdentity, RequesterIdentity
from easyserve.booking.schemas import BookingRead, ConfirmReleaseRequest
from easyserve.booking.services import BookingService
from easyserve.core.dependencies import (
    get_current_party,
    get_current_provider,
    get_current_requester,
)
from easyserve.core.exceptions import ValidationError
from easyserve.core.limiter import limiter
from easyserve.database.session import get_db
from easyserve.payment import schemas
from easyserve.payment.services import PaymentService, owner_type_for

router = APIRouter(prefix="/payments", tags=["Payments"])

DBDep = Annotated[AsyncSession, Depends(get_db)]

RequesterDep = Annotated[RequesterIdentity, Depends(get_current_requester)]
ProviderDep = Annotated[ProviderIdentity, Depends(get_current_provider)]
PartyDep = Annotated[RequesterIdentity | ProviderIdentity, Depends(get_current_party)]


# ---------------------------------------------------
# Requester Endpoints
# ---------------------------------------------------
@router.post(
    "/initiate",
    response_model=schemas.TransactionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Initiate Payment",
    description="Requester pays for a booking; the provider's share is held in escrow.",
)
@limiter.limit("5/minute")
async def initiate_payment(
    request: Request,
    payload: schemas.InitiatePaymentRequest,
    db: DBDep,
    requester: RequesterDep,
) -> schemas.TransactionRead:
    transaction = await PaymentService(db).initiate_payment(
        requester, payload.booking_id, payload.payment_method
    )
    return schemas.TransactionRead.model_validate(transaction)


@router.post(
    "/confirm-release",
    response_model=BookingRead,
    status_code=status.HTTP_200_OK,
    summary="Confirm Completion & Release Payment",
)
@limiter.limit("5/minute")
async def confirm_release(
    request: Request,
    payload: ConfirmReleaseRequest,
    db: DBDep,
    requester: RequesterDep,
) -> BookingRead:
    if payload.booking_id is None:
        raise ValidationError("bookingId is required")
    booking = await BookingService(db).confirm_and_release(
        requester, payload.booking_id, rating=payload.rating, review=payload.review
    )
    return BookingRead.model_validate(booking)


@router.post(
    "/{booking_id}/confirm-release",
    response_model=BookingRead,
    status_code=status.HTTP_200_OK,
    summary="Confirm Completion & Release Payment (by path)",
)
@limiter.limit("5/minute")
async def confirm_release_by_path(
    request: Request,
    booking_id: UUID,
    db: DBDep,
    requester: RequesterDep,
    payload: ConfirmReleaseRequest | None = None,
) -> BookingRead:
    rating = payload.rating if payload else None
    review = payload.review if payload else None
    booking = await BookingService(db).confirm_and_release(
        requester, booking_id, rating=rating, review=review
    )
    return BookingRead.model_validate(booking)


# ---------------------------------------------------
# Provider Endpoints
# ---------------------------------------------------
@router.post(
    "/mark-completed",
    response_model=BookingRead,
    status_code=status.HTTP_200_OK,
    summary="Mark Service Completed",
)
@limiter.limit("10/minute")
async def mark_completed(
    request: Request,
    payload: schemas.BookingActionRequest,
    db: DBDep,
    provider: ProviderDep,
) -> BookingRead:
    booking = await BookingService(db).provider_complete_service(provider, payload.booking_id)
    return BookingRead.model_validate(booking)


@router.post(
    "/withdraw",
    response_model=schemas.WalletRead,
    status_code=status.HTTP_200_OK,
    summary="Withdraw Funds",
)
@limiter.limit("5/minute")
async def withdraw(
    request: Request,
    payload: schemas.WithdrawRequest,
    db: DBDep,
    provider: ProviderDep,
) -> schemas.WalletRead:
    return await PaymentService(db).withdraw(provider, payload.amount)


# ---------------------------------------------------
# Shared Endpoints (Requester or Provider)
# ---------------------------------------------------
@router.get(
    "/wallet",
    response_model=schemas.WalletRead,
    status_code=status.HTTP_200_OK,
    summary="Get My Wallet",
)
async def get_wallet(db: DBDep, caller: PartyDep) -> schemas.WalletRead:
    return await PaymentService(db).get_wallet(caller.id, owner_type_for(caller))


@router.get(
    "/transactions",
    response_model=list[schemas.TransactionRead],
    status_code=status.HTTP_200_OK,
    summary="Transaction History",
)
async def get_transactions(db: DBDep, caller: PartyDep) -> list[schemas.TransactionRead]:
    transactions = await PaymentService(db).get_transactions(caller)
    return [schemas.TransactionRead.model_validate(t) for t in transactions]


@router.post(
    "/dispute",
    response_model=BookingRead,
    status_code=status.HTTP_200_OK,
    summary="Raise Dispute",
)
@limiter.limit("5/minute")
async def raise_dispute(
    request: Request,
    payload: schemas.DisputeRequest,
    db: DBDep,
    caller: PartyDep,
) -> BookingRead:
    booking = await PaymentService(db).raise_dispute(caller, payload.booking_id, payload.reason)
    return BookingRead.model_validate(booking)


@router.post(
    "/bank-details",
    response_model=schemas.WalletRead,
    status_code=status.HTTP_200_OK,
    summary="Add Bank Details",
)
@limiter.limit("5/minute")
async def add_bank_details(
    request: Request,
    payload: schemas.BankDetailsRequest,
    db: DBDep,
    caller: PartyDep,
) -> schemas.WalletRead:
    return await PaymentService(db).add_bank_details(caller, payload)
