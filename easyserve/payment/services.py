"""
payment/services.py

Escrow Engine Service Layer
Moves money for bookings through the escrow lifecycle:
- initiate: transaction created and held; payee held balance raised
- release: held funds move to the payee's available balance (credit entry)
- refund: held funds returned on cancellation; nothing reaches the balance
- withdraw: available balance paid out (debit entry)

Wallet balances are only changed through single UPDATE statements
(`x = x + :delta`); decrements carry a `>=` guard so balances never go negative
and concurrent withdrawals serialize on the row.
Transaction status moves are conditional UPDATEs on the expected status, so a
held payment is released, refunded or disputed at most once.
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from easyserve.auth.schemas import ProviderIdentity, RequesterIdentity
from easyserve.booking.models import Booking, BookingStatus, can_transition
from easyserve.core.config import settings
from easyserve.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from easyserve.database.base import CENT, ZERO, to_money
from easyserve.payment import schemas
from easyserve.payment.models import (
    EntryType,
    PaymentMethod,
    Transaction,
    TransactionStatus,
    Wallet,
    WalletEntry,
    WalletOwnerType,
)

logger = logging.getLogger(__name__)

RELEASE_ENTRY_STATUS = "completed"
WITHDRAWAL_ENTRY_STATUS = "withdrawn"
WITHDRAWAL_REFERENCE = "Withdrawal"
UNPAYABLE_BOOKING_STATUSES = frozenset(
    {BookingStatus.CANCELLED, BookingStatus.DISPUTED, BookingStatus.PAYMENT_RELEASED}
)


def split_amount(amount: Decimal, rate: Decimal | None = None) -> tuple[Decimal, Decimal]:
    """
    Splits a booking price into (platform_fee, provider_amount).

    The fee is rounded half-up to cents and the provider amount is the
    remainder, so the two always add back to the original amount.
    """
    fee_rate = settings.PLATFORM_FEE_RATE if rate is None else rate
    platform_fee = (amount * fee_rate).quantize(CENT, rounding=ROUND_HALF_UP)
    return platform_fee, amount - platform_fee


def owner_type_for(identity: RequesterIdentity | ProviderIdentity) -> WalletOwnerType:
    if isinstance(identity, ProviderIdentity):
        return WalletOwnerType.PROVIDER
    return WalletOwnerType.USER


class PaymentService:
    """Service class for escrow payments and wallets."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ---------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------
    async def _get_booking_or_404(self, booking_id: UUID) -> Booking:
        booking = await self.db.get(Booking, booking_id)
        if not booking:
            logger.warning(f"[ESCROW] Booking not found: booking_id={booking_id}")
            raise NotFoundError("Booking not found")
        return booking

    async def _find_wallet(self, owner_id: UUID) -> Wallet | None:
        result = await self.db.execute(
            select(Wallet).filter(Wallet.owner_id == owner_id).execution_options(
                populate_existing=True
            )
        )
        return result.scalar_one_or_none()

    async def _get_or_create_wallet(self, owner_id: UUID, owner_type: WalletOwnerType) -> Wallet:
        """Returns the owner's wallet, creating an empty one on first access."""
        wallet = await self._find_wallet(owner_id)
        if wallet:
            return wallet

        try:
            async with self.db.begin_nested():
                wallet = Wallet(
                    owner_id=owner_id,
                    owner_type=owner_type,
                    balance=ZERO,
                    held_balance=ZERO,
                    total_earned=ZERO,
                    total_spent=ZERO,
                )
                self.db.add(wallet)
            logger.info(f"[WALLET] Created {owner_type.value} wallet for owner {owner_id}")
            return wallet
        except IntegrityError:
            # Another request created it first
            logger.info(f"[WALLET] Wallet for owner {owner_id} created concurrently; re-reading")
            wallet = await self._find_wallet(owner_id)
            if wallet is None:
                raise
            return wallet

    async def _held_transaction(self, booking_id: UUID) -> Transaction | None:
        result = await self.db.execute(
            select(Transaction).filter(
                Transaction.booking_id == booking_id,
                Transaction.status == TransactionStatus.HELD,
            )
        )
        return result.scalar_one_or_none()

    async def _move_transaction(
        self, transaction: Transaction, from_status: TransactionStatus, **values: Any
    ) -> bool:
        """
        Conditionally updates the transaction row while it is still in
        `from_status`. Returns False when another writer moved it first.
        """
        result = await self.db.execute(
            update(Transaction)
            .execution_options(synchronize_session=False)
            .where(Transaction.id == transaction.id, Transaction.status == from_status)
            .values(**values)
        )
        if result.rowcount != 1:
            logger.warning(f"[ESCROW] Transaction {transaction.id} left {from_status.value} concurrently")
            return False
        for key, value in values.items():
            setattr(transaction, key, value)
        return True

    async def _wallet_read(self, wallet: Wallet) -> schemas.WalletRead:
        entries = await self.db.execute(
            select(WalletEntry)
            .filter(WalletEntry.wallet_id == wallet.id)
            .order_by(WalletEntry.created_at.asc())
        )
        wallet_read = schemas.WalletRead.model_validate(wallet)
        wallet_read.entries = [schemas.WalletEntryRead.model_validate(e) for e in entries.scalars()]
        return wallet_read

    # ---------------------------------------------------
    # Payment Initiation
    # ---------------------------------------------------
    async def initiate_payment(
        self, payer: RequesterIdentity, booking_id: UUID, method: PaymentMethod
    ) -> Transaction:
        """Requester pays for a booking; funds are held for the provider."""
        logger.info(f"[ESCROW] Requester {payer.id} initiating {method.value} payment for booking {booking_id}")
        booking = await self._get_booking_or_404(booking_id)

        if booking.requester_id != payer.id:
            raise ForbiddenError("Only the requester can pay for this booking")
        if booking.is_paid:
            raise ConflictError("Booking already paid")
        if booking.status in UNPAYABLE_BOOKING_STATUSES:
            raise InvalidStateError(f"Cannot pay for a booking that is {booking.status.value}")

        amount = booking.agreed_price
        platform_fee, provider_amount = split_amount(amount)

        transaction = Transaction(
            booking_id=booking.id,
            payer_id=booking.requester_id,
            payee_id=booking.provider_id,
            amount=amount,
            platform_fee=platform_fee,
            provider_amount=provider_amount,
            status=TransactionStatus.PENDING,
            payment_method=method,
        )
        self.db.add(transaction)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"[ESCROW] Booking {booking_id} was paid concurrently: {e.orig}")
            raise ConflictError("Booking already paid")

        # Gateway success is simulated
        now = datetime.now(timezone.utc)
        transaction.status = TransactionStatus.HELD
        transaction.payment_gateway_id = f"SIM-{uuid.uuid4().hex[:16].upper()}"
        transaction.paid_at = now
        transaction.held_at = now

        booking.is_paid = True
        booking.transaction_id = transaction.id

        payee_wallet = await self._get_or_create_wallet(booking.provider_id, WalletOwnerType.PROVIDER)
        await self.db.execute(
            update(Wallet)
            .execution_options(synchronize_session=False)
            .where(Wallet.id == payee_wallet.id)
            .values(held_balance=Wallet.held_balance + provider_amount)
        )
        payer_wallet = await self._get_or_create_wallet(booking.requester_id, WalletOwnerType.USER)
        await self.db.execute(
            update(Wallet)
            .execution_options(synchronize_session=False)
            .where(Wallet.id == payer_wallet.id)
            .values(total_spent=Wallet.total_spent + amount)
        )

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"[ESCROW] Concurrent payment for booking {booking_id}: {e.orig}")
            raise ConflictError("Booking already paid")

        await self.db.refresh(transaction)
        await self.db.refresh(booking)
        logger.info(
            f"[ESCROW] Payment held: tx={transaction.id} amount={amount} fee={platform_fee} provider_amount={provider_amount}"
        )
        return transaction

    # ---------------------------------------------------
    # Release & Refund
    # ---------------------------------------------------
    async def release_payment(self, booking_id: UUID, *, commit: bool = True) -> Transaction:
        """
        Moves the held provider amount into the payee's available balance.

        Called as part of requester confirmation; with `commit=False` the caller
        owns the surrounding transaction.
        """
        booking = await self._get_booking_or_404(booking_id)
        transaction = await self._held_transaction(booking.id)
        if transaction is None:
            raise InvalidStateError("No held payment exists for this booking")
        if not can_transition(booking.status, BookingStatus.PAYMENT_RELEASED):
            raise InvalidStateError(
                f"Cannot release payment for a booking that is {booking.status.value}"
            )

        wallet = await self._find_wallet(transaction.payee_id)
        if wallet is None:
            raise NotFoundError("Provider wallet not found")

        # Claim the transaction before any money moves
        now = datetime.now(timezone.utc)
        if not await self._move_transaction(
            transaction, TransactionStatus.HELD, status=TransactionStatus.COMPLETED, released_at=now
        ):
            raise InvalidStateError("This payment is no longer held")

        amount = transaction.provider_amount
        result = await self.db.execute(
            update(Wallet)
            .execution_options(synchronize_session=False)
            .where(Wallet.id == wallet.id, Wallet.held_balance >= amount)
            .values(
                held_balance=Wallet.held_balance - amount,
                balance=Wallet.balance + amount,
                total_earned=Wallet.total_earned + amount,
            )
        )
        if result.rowcount != 1:
            logger.error(f"[ESCROW] Held balance of wallet {wallet.id} does not cover release of {amount}")
            raise InvalidStateError("Held balance does not cover this release")

        self.db.add(
            WalletEntry(
                wallet_id=wallet.id,
                entry_type=EntryType.CREDIT,
                amount=amount,
                reference=str(booking.id),
                status=RELEASE_ENTRY_STATUS,
            )
        )
        booking.status = BookingStatus.PAYMENT_RELEASED

        if commit:
            await self.db.commit()
            await self.db.refresh(transaction)

        logger.info(f"[ESCROW] Released {amount} to provider {transaction.payee_id} for booking {booking.id}")
        return transaction

    async def refund_payment(self, booking: Booking) -> Transaction | None:
        """
        Returns a held payment on cancellation. Does not commit.

        The payee's held balance and the payer's spend total are reversed;
        nothing reaches any available balance.
        """
        transaction = await self._held_transaction(booking.id)
        if transaction is None:
            return None
        if not await self._move_transaction(
            transaction,
            TransactionStatus.HELD,
            status=TransactionStatus.REFUNDED,
            refunded_at=datetime.now(timezone.utc),
        ):
            raise InvalidStateError("This payment is no longer held")

        payee_result = await self.db.execute(
            update(Wallet)
            .execution_options(synchronize_session=False)
            .where(
                Wallet.owner_id == transaction.payee_id,
                Wallet.held_balance >= transaction.provider_amount,
            )
            .values(held_balance=Wallet.held_balance - transaction.provider_amount)
        )
        if payee_result.rowcount != 1:
            raise InvalidStateError("Held balance does not cover this refund")

        await self.db.execute(
            update(Wallet)
            .execution_options(synchronize_session=False)
            .where(
                Wallet.owner_id == transaction.payer_id,
                Wallet.total_spent >= transaction.amount,
            )
            .values(total_spent=Wallet.total_spent - transaction.amount)
        )

        logger.info(f"[ESCROW] Refunded tx={transaction.id} amount={transaction.amount} for booking {booking.id}")
        return transaction

    # ---------------------------------------------------
    # Withdrawal
    # ---------------------------------------------------
    async def withdraw(self, provider: ProviderIdentity, amount: Decimal) -> schemas.WalletRead:
        """Provider pays out part of the available balance."""
        logger.info(f"[WALLET] Provider {provider.id} requesting withdrawal of {amount}")
        amount = to_money(amount)
        if amount <= 0:
            raise InvalidAmountError("Withdrawal amount must be at least 0.01")

        wallet = await self._get_or_create_wallet(provider.id, WalletOwnerType.PROVIDER)
        if settings.WITHDRAWAL_REQUIRES_BANK_DETAILS and not wallet.has_bank_details:
            raise ValidationError("Add bank details before withdrawing")

        now = datetime.now(timezone.utc)
        result = await self.db.execute(
            update(Wallet)
            .execution_options(synchronize_session=False)
            .where(Wallet.id == wallet.id, Wallet.balance >= amount)
            .values(balance=Wallet.balance - amount, last_withdrawal_at=now)
        )
        if result.rowcount != 1:
            logger.warning(f"[WALLET] Insufficient balance for withdrawal of {amount} by {provider.id}")
            raise InsufficientFundsError("Insufficient balance")

        self.db.add(
            WalletEntry(
                wallet_id=wallet.id,
                entry_type=EntryType.DEBIT,
                amount=amount,
                reference=WITHDRAWAL_REFERENCE,
                status=WITHDRAWAL_ENTRY_STATUS,
            )
        )
        await self.db.commit()
        await self.db.refresh(wallet)
        logger.info(f"[WALLET] Withdrawal of {amount} completed for provider {provider.id}")
        return await self._wallet_read(wallet)

    # ---------------------------------------------------
    # Wallet & History
    # ---------------------------------------------------
    async def get_wallet(self, owner_id: UUID, owner_type: WalletOwnerType) -> schemas.WalletRead:
        """Returns the owner's wallet with its ledger, creating it on first access."""
        wallet = await self._find_wallet(owner_id)
        if wallet is None:
            wallet = await self._get_or_create_wallet(owner_id, owner_type)
            await self.db.commit()
            await self.db.refresh(wallet)
        return await self._wallet_read(wallet)

    async def get_transactions(
        self, caller: RequesterIdentity | ProviderIdentity
    ) -> list[Transaction]:
        """Transactions where the caller is payer or payee, newest first."""
        result = await self.db.execute(
            select(Transaction)
            .filter(or_(Transaction.payer_id == caller.id, Transaction.payee_id == caller.id))
            .order_by(Transaction.created_at.desc())
        )
        return list(result.scalars().all())

    async def add_bank_details(
        self,
        owner: RequesterIdentity | ProviderIdentity,
        details: schemas.BankDetailsRequest,
    ) -> schemas.WalletRead:
        wallet = await self._get_or_create_wallet(owner.id, owner_type_for(owner))
        wallet.bank_account_name = details.bank_account_name
        wallet.bank_account_number = details.bank_account_number
        wallet.bank_name = details.bank_name
        wallet.iban = details.iban
        await self.db.commit()
        await self.db.refresh(wallet)
        logger.info(f"[WALLET] Bank details updated for owner {owner.id}")
        return await self._wallet_read(wallet)

    # ---------------------------------------------------
    # Disputes
    # ---------------------------------------------------
    async def raise_dispute(
        self, party: RequesterIdentity | ProviderIdentity, booking_id: UUID, reason: str
    ) -> Booking:
        """Either party freezes a booking; a held payment stays held as disputed."""
        booking = await self._get_booking_or_404(booking_id)
        if not booking.involves(party.id):
            raise ForbiddenError("Only the booking's parties can raise a dispute")
        if not can_transition(booking.status, BookingStatus.DISPUTED):
            raise InvalidStateError(f"Cannot dispute a booking that is {booking.status.value}")

        transaction = await self._held_transaction(booking.id)
        if transaction is not None and not await self._move_transaction(
            transaction,
            TransactionStatus.HELD,
            status=TransactionStatus.DISPUTED,
            dispute_reason=reason,
        ):
            raise InvalidStateError("This payment is no longer held")
        booking.status = BookingStatus.DISPUTED

        await self.db.commit()
        await self.db.refresh(booking)
        logger.warning(f"[ESCROW] Booking {booking.id} disputed by {party.role.value} {party.id}: {reason}")
        return booking
