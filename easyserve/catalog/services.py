"""
catalog/services.py

Catalog service layer:
- Categories: read-mostly reference data that service requests are filed under
- Providers: public listings of provider accounts, filterable by category,
  area and price, with the average rating left on their bookings
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from easyserve.booking.models import Booking
from easyserve.catalog import schemas
from easyserve.catalog.models import Category, ProviderProfile
from easyserve.core.exceptions import ConflictError, InvalidAmountError, NotFoundError
from easyserve.database.base import to_money
from easyserve.database.enums import UserRole
from easyserve.database.models import User

logger = logging.getLogger(__name__)


class CategoryService:
    """Service class for the category catalog."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_categories(self) -> list[Category]:
        result = await self.db.execute(select(Category).order_by(Category.name.asc()))
        return list(result.scalars().all())

    async def get_category(self, category_id: UUID) -> Category:
        category = await self.db.get(Category, category_id)
        if not category:
            logger.warning(f"[CATALOG] Category not found: category_id={category_id}")
            raise NotFoundError("Category not found")
        return category

    async def create_category(self, payload: schemas.CategoryCreate) -> Category:
        """Admin adds a category; names are unique case-insensitively."""
        name = payload.name.strip()
        existing = await self.db.execute(
            select(Category).filter(func.lower(Category.name) == name.lower())
        )
        if existing.scalar_one_or_none():
            raise ConflictError(f"Category '{name}' already exists")

        category = Category(name=name, icon=payload.icon)
        self.db.add(category)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(f"Category '{name}' already exists")

        await self.db.refresh(category)
        logger.info(f"[CATALOG] Category created: id={category.id} name={category.name}")
        return category


class ProviderService:
    """Service class for provider listings."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ---------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------
    @staticmethod
    def _listing_query() -> Select[Any]:
        ratings = (
            select(
                Booking.provider_id.label("provider_id"),
                func.avg(Booking.rating).label("rating"),
                func.count(Booking.rating).label("review_count"),
            )
            .filter(Booking.rating.is_not(None))
            .group_by(Booking.provider_id)
            .subquery()
        )
        return (
            select(User, ProviderProfile, ratings.c.rating, ratings.c.review_count)
            .outerjoin(ProviderProfile, ProviderProfile.user_id == User.id)
            .outerjoin(ratings, ratings.c.provider_id == User.id)
            .filter(User.role == UserRole.PROVIDER, User.is_active.is_(True))
        )

    @staticmethod
    def _to_read(
        user: User, profile: ProviderProfile | None, rating: Any, review_count: int | None
    ) -> schemas.ProviderRead:
        return schemas.ProviderRead(
            id=user.id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            category_id=profile.category_id if profile else None,
            category_name=profile.category_name if profile else None,
            price=profile.price if profile else None,
            area=profile.area if profile else None,
            description=profile.description if profile else None,
            image=profile.image if profile else None,
            rating=round(float(rating), 2) if rating is not None else None,
            review_count=review_count or 0,
            created_at=user.created_at,
        )

    # ---------------------------------------------------
    # Listing & Detail
    # ---------------------------------------------------
    async def list_providers(self, filters: schemas.ProviderFilters) -> list[schemas.ProviderRead]:
        """Active providers matching the filters, by name. Price filters on the advertised price."""
        stmt = self._listing_query()
        if filters.category_id is not None:
            stmt = stmt.filter(ProviderProfile.category_id == filters.category_id)
        if filters.area:
            stmt = stmt.filter(func.lower(ProviderProfile.area) == filters.area.strip().lower())
        if filters.max_price is not None:
            stmt = stmt.filter(ProviderProfile.price <= filters.max_price)

        result = await self.db.execute(stmt.order_by(User.name.asc()))
        return [self._to_read(*row) for row in result.all()]

    async def get_provider(self, provider_id: UUID) -> schemas.ProviderRead:
        result = await self.db.execute(self._listing_query().filter(User.id == provider_id))
        row = result.first()
        if row is None:
            logger.warning(f"[CATALOG] Provider not found: provider_id={provider_id}")
            raise NotFoundError("Provider not found")
        return self._to_read(*row)

    # ---------------------------------------------------
    # Listing Updates
    # ---------------------------------------------------
    async def apply_profile(self, provider_id: UUID, changes: dict[str, Any]) -> ProviderProfile:
        """Creates or updates the provider's listing from the given fields. Does not commit."""
        result = await self.db.execute(
            select(ProviderProfile).filter(ProviderProfile.user_id == provider_id)
        )
        profile = result.scalar_one_or_none()
        if profile is None:
            profile = ProviderProfile(user_id=provider_id)
            self.db.add(profile)
            logger.info(f"[CATALOG] Creating listing for provider {provider_id}")

        changes = dict(changes)
        if "category_id" in changes:
            category_id = changes.pop("category_id")
            category = await self.db.get(Category, category_id) if category_id else None
            if category_id and not category:
                raise NotFoundError("Category not found")
            profile.category_id = category.id if category else None
            profile.category_name = category.name if category else None

        if changes.get("price") is not None:
            price = to_money(changes["price"])
            if price <= 0:
                raise InvalidAmountError("price must be at least 0.01")
            changes["price"] = price

        for key, value in changes.items():
            setattr(profile, key, value)
        await self.db.flush()
        return profile
