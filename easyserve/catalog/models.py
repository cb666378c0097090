"""
catalog/models.py

Defines the catalog models.
- Category: read-mostly reference data a ServiceRequest is filed under
- ProviderProfile: the public listing of a provider account (category, area, price)
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from easyserve.database.base import MONEY, Base, utcnow


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier for the category",
    )
    name: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False, comment="Category display name"
    )
    icon: Mapped[str | None] = mapped_column(
        String(255), nullable=True, comment="Icon reference (optional)"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="Timestamp when the category was created",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        comment="Timestamp when the category was last updated",
    )


class ProviderProfile(Base):
    """
    Listing details for an account with the PROVIDER role.
    Created on the provider's first profile update.
    """

    __tablename__ = "provider_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", name="fk_provider_profiles_user_id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        comment="Provider account this listing belongs to",
    )
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("categories.id", name="fk_provider_profiles_category_id"),
        nullable=True,
        index=True,
    )
    category_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    price: Mapped[Decimal | None] = mapped_column(
        MONEY, nullable=True, comment="Advertised starting price"
    )
    area: Mapped[str | None] = mapped_column(
        String(120), nullable=True, index=True, comment="Service area (city or district)"
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
