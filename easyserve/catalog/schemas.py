"""
catalog/schemas.py

Pydantic schemas for the catalog:
- Service categories
- Provider listings and their explicit filter structure
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import EmailStr, Field

from easyserve.core.schemas import CamelModel, Money


class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100, description="Category display name")
    icon: str | None = Field(default=None, max_length=255, description="Icon reference")


class CategoryRead(CamelModel):
    id: UUID
    name: str
    icon: str | None = None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------
# Providers
# ---------------------------------------------------
class ProviderRead(CamelModel):
    """A provider account merged with its listing and its average rating."""

    id: UUID = Field(..., description="Provider account ID")
    name: str
    email: EmailStr
    phone: str | None = None
    category_id: UUID | None = None
    category_name: str | None = None
    price: Money | None = None
    area: str | None = None
    description: str | None = None
    image: str | None = None
    rating: float | None = Field(default=None, description="Average rating left on bookings")
    review_count: int = 0
    created_at: datetime


@dataclass
class ProviderFilters:
    """Explicit filter structure for the provider listing."""

    category_id: UUID | None = None
    area: str | None = None
    max_price: Decimal | None = None
