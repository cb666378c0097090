"""
easyserve/database/models.py

Core SQLAlchemy ORM Models

Defines:
- User: Authenticated accounts with role-based access (requester, provider, admin)

Domain models live next to their services (service_request, booking,
payment, catalog) and are re-exported here so that metadata consumers
(init_db, Alembic) see every table through one import.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from easyserve.database.base import Base, utcnow
from easyserve.database.enums import UserRole

# ---------------------------------------------------
# User Model: Authenticated Platform Account
# ---------------------------------------------------


class User(Base):
    __tablename__ = "users"

    # -------------------------------------
    # Fields
    # -------------------------------------
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier for the account",
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, comment="Account email address"
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False, comment="Display name")
    phone: Mapped[str | None] = mapped_column(
        String(20), nullable=True, comment="Contact phone number (optional)"
    )
    hashed_password: Mapped[str] = mapped_column(
        String, nullable=False, comment="Hashed password for authentication"
    )
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole), nullable=False, comment="Account role (USER, PROVIDER, ADMIN)"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False, comment="Whether the account is active"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="Timestamp when the account was created",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        comment="Timestamp when the account was last updated",
    )


# ---------------------------------------------------
# Model registry (import side effect registers tables on Base.metadata)
# ---------------------------------------------------
from easyserve.catalog.models import Category, ProviderProfile  # noqa: E402
from easyserve.service_request.models import Bid, ServiceRequest  # noqa: E402
from easyserve.booking.models import Booking, BookingMessage  # noqa: E402
from easyserve.payment.models import Transaction, Wallet, WalletEntry  # noqa: E402

__all__ = [
    "Base",
    "User",
    "Category",
    "ProviderProfile",
    "ServiceRequest",
    "Bid",
    "Booking",
    "BookingMessage",
    "Transaction",
    "Wallet",
    "WalletEntry",
]
