"""
payment/schemas.py

Pydantic schemas for the escrow engine: payment initiation, release,
withdrawal, disputes, bank details, and wallet/transaction read models.
"""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from easyserve.core.schemas import CamelModel, Money, MoneyInput
from easyserve.payment.models import (
    EntryType,
    PaymentMethod,
    TransactionStatus,
    WalletOwnerType,
)


# ---------------------------------------------------
# Requests
# ---------------------------------------------------
class InitiatePaymentRequest(CamelModel):
    booking_id: UUID
    payment_method: PaymentMethod = PaymentMethod.CARD


class BookingActionRequest(CamelModel):
    booking_id: UUID


class WithdrawRequest(CamelModel):
    amount: MoneyInput = Field(..., description="Amount to move out of the available balance")


class DisputeRequest(CamelModel):
    booking_id: UUID
    reason: str = Field(..., min_length=1, max_length=2000)


class BankDetailsRequest(CamelModel):
    bank_account_name: str = Field(..., min_length=1, max_length=120)
    bank_account_number: str = Field(..., min_length=1, max_length=50)
    bank_name: str = Field(..., min_length=1, max_length=120)
    iban: str | None = Field(default=None, max_length=50)


# ---------------------------------------------------
# Responses
# ---------------------------------------------------
class TransactionRead(CamelModel):
    id: UUID
    booking_id: UUID
    payer_id: UUID
    payee_id: UUID
    amount: Money
    platform_fee: Money
    provider_amount: Money
    status: TransactionStatus
    payment_method: PaymentMethod
    payment_gateway_id: str | None = None
    dispute_reason: str | None = None
    paid_at: datetime | None = None
    held_at: datetime | None = None
    released_at: datetime | None = None
    refunded_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class WalletEntryRead(CamelModel):
    id: UUID
    entry_type: EntryType
    amount: Money
    reference: str
    status: str
    created_at: datetime


class WalletRead(CamelModel):
    id: UUID
    owner_id: UUID
    owner_type: WalletOwnerType
    balance: Money
    held_balance: Money
    total_earned: Money
    total_spent: Money
    last_withdrawal_at: datetime | None = None
    bank_account_name: str | None = None
    bank_account_number: str | None = None
    bank_name: str | None = None
    iban: str | None = None
    entries: list[WalletEntryRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
