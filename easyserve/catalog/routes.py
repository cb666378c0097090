"""
catalog/routes.py

Catalog endpoints:
- List categories (public)
- Retrieve a category (public)
- Create a category (Admin)
- Browse provider listings by category, area and price (authenticated)
- Retrieve a provider listing (authenticated)
"""

from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from easyserve.catalog import schemas
from easyserve.catalog.services import CategoryService, ProviderService
from easyserve.core.dependencies import get_current_user, get_current_user_with_role
from easyserve.core.limiter import limiter
from easyserve.database.enums import UserRole
from easyserve.database.models import User
from easyserve.database.session import get_db

router = APIRouter(prefix="/categories", tags=["Categories"])
providers_router = APIRouter(prefix="/providers", tags=["Providers"])

DBDep = Annotated[AsyncSession, Depends(get_db)]
AuthenticatedAdminDep = Annotated[User, Depends(get_current_user_with_role(UserRole.ADMIN))]
AuthenticatedUserDep = Annotated[User, Depends(get_current_user)]


@router.get(
    "",
    response_model=list[schemas.CategoryRead],
    status_code=status.HTTP_200_OK,
    summary="List Categories",
)
async def list_categories(db: DBDep) -> list[schemas.CategoryRead]:
    categories = await CategoryService(db).list_categories()
    return [schemas.CategoryRead.model_validate(c) for c in categories]


@router.post(
    "",
    response_model=schemas.CategoryRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Category",
    description="Adds a service category. Requires Admin role.",
)
@limiter.limit("10/minute")
async def create_category(
    request: Request,
    payload: schemas.CategoryCreate,
    db: DBDep,
    current_user: AuthenticatedAdminDep,
) -> schemas.CategoryRead:
    category = await CategoryService(db).create_category(payload)
    return schemas.CategoryRead.model_validate(category)


@router.get(
    "/{category_id}",
    response_model=schemas.CategoryRead,
    status_code=status.HTTP_200_OK,
    summary="Get Category",
)
async def get_category(category_id: UUID, db: DBDep) -> schemas.CategoryRead:
    category = await CategoryService(db).get_category(category_id)
    return schemas.CategoryRead.model_validate(category)


# ---------------------------------------------------
# Providers
# ---------------------------------------------------
@providers_router.get(
    "",
    response_model=list[schemas.ProviderRead],
    status_code=status.HTTP_200_OK,
    summary="List Providers",
    description="Active providers, optionally filtered by category, area and maximum price.",
)
async def list_providers(
    db: DBDep,
    current_user: AuthenticatedUserDep,
    category_id: Annotated[UUID | None, Query(alias="categoryId")] = None,
    area: Annotated[str | None, Query(max_length=120)] = None,
    price: Annotated[Decimal | None, Query(gt=0, description="Maximum advertised price")] = None,
) -> list[schemas.ProviderRead]:
    filters = schemas.ProviderFilters(category_id=category_id, area=area, max_price=price)
    return await ProviderService(db).list_providers(filters)


@providers_router.get(
    "/{provider_id}",
    response_model=schemas.ProviderRead,
    status_code=status.HTTP_200_OK,
    summary="Get Provider",
)
async def get_provider(
    provider_id: UUID, db: DBDep, current_user: AuthenticatedUserDep
) -> schemas.ProviderRead:
    return await ProviderService(db).get_provider(provider_id)
