"""
admin/services.py

Admin service layer: platform-wide counts for the dashboard.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from easyserve.admin import schemas
from easyserve.booking.models import Booking
from easyserve.catalog.models import Category
from easyserve.database.enums import UserRole
from easyserve.database.models import User

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _count_users(self, role: UserRole) -> int:
        return (
            await self.db.execute(select(func.count(User.id)).filter(User.role == role))
        ).scalar_one()

    async def get_stats(self) -> schemas.PlatformStats:
        stats = schemas.PlatformStats(
            users=await self._count_users(UserRole.USER),
            providers=await self._count_users(UserRole.PROVIDER),
            bookings=(await self.db.execute(select(func.count(Booking.id)))).scalar_one(),
            categories=(await self.db.execute(select(func.count(Category.id)))).scalar_one(),
        )
        logger.info(f"[ADMIN] Stats computed: {stats.model_dump()}")
        return stats
