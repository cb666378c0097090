"""
admin/routes.py

Admin dashboard endpoints. All endpoints require Admin authentication.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from easyserve.admin.schemas import PlatformStats
from easyserve.admin.services import AdminService
from easyserve.core.dependencies import get_current_user_with_role
from easyserve.database.enums import UserRole
from easyserve.database.models import User
from easyserve.database.session import get_db

router = APIRouter(tags=["Admin"])

DBDep = Annotated[AsyncSession, Depends(get_db)]
AuthenticatedAdminDep = Annotated[User, Depends(get_current_user_with_role(UserRole.ADMIN))]


@router.get(
    "/stats",
    response_model=PlatformStats,
    status_code=status.HTTP_200_OK,
    summary="Platform Stats",
    description="Counts of requesters, providers, bookings and categories. Requires Admin role.",
)
async def get_stats(db: DBDep, current_user: AuthenticatedAdminDep) -> PlatformStats:
    return await AdminService(db).get_stats()
