"""
payment/models.py

Defines the escrow models:
- Transaction: one payment per booking, held until the requester releases it
- Wallet: per-owner balances (available, held, lifetime totals) and bank details
- WalletEntry: append-only credit/debit sub-ledger backing the wallet balance
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from easyserve.database.base import MONEY, ZERO, Base, utcnow


# ENUM: Transaction Status
class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    HELD = "held"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    DISPUTED = "disputed"


# ENUM: Payment Method
class PaymentMethod(str, enum.Enum):
    CARD = "card"
    JAZZCASH = "jazzcash"
    EASYPAISA = "easypaisa"
    CASH_ON_SERVICE = "cash on service"


# ENUM: Wallet Owner Type
class WalletOwnerType(str, enum.Enum):
    USER = "user"
    PROVIDER = "provider"


# ENUM: Wallet Entry Type
class EntryType(str, enum.Enum):
    CREDIT = "credit"
    DEBIT = "debit"


# MODEL: Transaction
class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier for the transaction",
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", name="fk_transactions_booking_id"),
        nullable=False,
        unique=True,
        comment="Booking being paid for (one transaction per booking)",
    )
    payer_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    payee_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    # Amounts: amount == platform_fee + provider_amount
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    platform_fee: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    provider_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus),
        default=TransactionStatus.PENDING,
        nullable=False,
        comment="pending -> held -> completed, or held -> refunded/disputed",
    )
    payment_method: Mapped[PaymentMethod] = mapped_column(Enum(PaymentMethod), nullable=False)
    payment_gateway_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True, comment="Simulated gateway reference"
    )
    dispute_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Lifecycle timestamps
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    held_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    released_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


# MODEL: WalletEntry
class WalletEntry(Base):
    __tablename__ = "wallet_entries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    wallet_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("wallets.id", name="fk_wallet_entries_wallet_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    entry_type: Mapped[EntryType] = mapped_column(Enum(EntryType), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    reference: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, comment="'completed' for releases, 'withdrawn' for withdrawals"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


# MODEL: Wallet
class Wallet(Base):
    __tablename__ = "wallets"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_wallets_balance_non_negative"),
        CheckConstraint("held_balance >= 0", name="ck_wallets_held_balance_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier for the wallet",
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", name="fk_wallets_owner_id"),
        unique=True,
        nullable=False,
        comment="Owning account (one wallet per account)",
    )
    owner_type: Mapped[WalletOwnerType] = mapped_column(Enum(WalletOwnerType), nullable=False)

    # Balances
    balance: Mapped[Decimal] = mapped_column(MONEY, default=ZERO, nullable=False)
    held_balance: Mapped[Decimal] = mapped_column(MONEY, default=ZERO, nullable=False)
    total_earned: Mapped[Decimal] = mapped_column(MONEY, default=ZERO, nullable=False)
    total_spent: Mapped[Decimal] = mapped_column(MONEY, default=ZERO, nullable=False)
    last_withdrawal_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Bank details (optional)
    bank_account_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    bank_account_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    bank_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    iban: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    @property
    def has_bank_details(self) -> bool:
        return bool(self.bank_account_number or self.iban)
