"""
tests/catalog/test_catalog_routes.py

Route tests for catalog/routes.py (categories and provider listings)
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi import status
from httpx import AsyncClient
from unittest.mock import AsyncMock, patch

from easyserve.catalog.models import Category
from easyserve.catalog.schemas import CategoryCreate, ProviderFilters, ProviderRead
from easyserve.catalog.services import CategoryService, ProviderService
from easyserve.core.exceptions import ConflictError, NotFoundError
from easyserve.database.models import User


def create_db_category(name: str) -> Category:
    now = datetime.now(timezone.utc)
    return Category(id=uuid4(), name=name, icon=None, created_at=now, updated_at=now)


@pytest.mark.asyncio
@patch.object(CategoryService, "list_categories", new_callable=AsyncMock)
async def test_list_categories_public(
    mock_list: AsyncMock, async_client: AsyncClient, override_get_db: None
) -> None:
    mock_list.return_value = [create_db_category("Electrician"), create_db_category("Plumbing")]

    response = await async_client.get("/categories")

    assert response.status_code == status.HTTP_200_OK
    assert [c["name"] for c in response.json()] == ["Electrician", "Plumbing"]


@pytest.mark.asyncio
@patch.object(CategoryService, "create_category", new_callable=AsyncMock)
async def test_create_category_admin(
    mock_create: AsyncMock,
    mock_current_admin_user: User,
    async_client: AsyncClient,
    override_get_db: None,
) -> None:
    mock_create.return_value = create_db_category("Carpentry")

    response = await async_client.post("/categories", json={"name": "Carpentry"})

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["name"] == "Carpentry"
    mock_create.assert_awaited_once_with(CategoryCreate(name="Carpentry"))


@pytest.mark.asyncio
@patch.object(CategoryService, "create_category", new_callable=AsyncMock)
async def test_create_category_duplicate(
    mock_create: AsyncMock,
    mock_current_admin_user: User,
    async_client: AsyncClient,
    override_get_db: None,
) -> None:
    mock_create.side_effect = ConflictError("Category already exists")
    response = await async_client.post("/categories", json={"name": "plumbing"})
    assert response.status_code == status.HTTP_409_CONFLICT


@pytest.mark.asyncio
async def test_create_category_forbidden_for_provider(
    mock_current_provider_user: User, async_client: AsyncClient, override_get_db: None
) -> None:
    response = await async_client.post("/categories", json={"name": "Carpentry"})
    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.asyncio
@patch.object(CategoryService, "get_category", new_callable=AsyncMock)
async def test_get_category_not_found(
    mock_get: AsyncMock, async_client: AsyncClient, override_get_db: None
) -> None:
    mock_get.side_effect = NotFoundError("Category not found")
    response = await async_client.get(f"/categories/{uuid4()}")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"]["code"] == "NOT_FOUND"


# --- Providers ---


def provider_read(name: str, price: str | None = None) -> ProviderRead:
    return ProviderRead(
        id=uuid4(),
        name=name,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        price=Decimal(price) if price else None,
        area="Gulberg",
        rating=4.5,
        review_count=2,
        created_at=datetime.now(timezone.utc),
    )


@pytest.mark.asyncio
@patch.object(ProviderService, "list_providers", new_callable=AsyncMock)
async def test_list_providers_parses_filters(
    mock_list: AsyncMock,
    mock_current_requester_user: User,
    async_client: AsyncClient,
    override_get_db: None,
) -> None:
    mock_list.return_value = [provider_read("Provider A", "1500")]
    category_id = uuid4()

    response = await async_client.get(
        "/providers", params={"categoryId": str(category_id), "area": "Gulberg", "price": "2000"}
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data[0]["name"] == "Provider A"
    assert data[0]["price"] == 1500.0
    assert data[0]["reviewCount"] == 2
    mock_list.assert_awaited_once_with(
        ProviderFilters(category_id=category_id, area="Gulberg", max_price=Decimal("2000"))
    )


@pytest.mark.asyncio
async def test_list_providers_rejects_non_positive_price(
    mock_current_requester_user: User, async_client: AsyncClient, override_get_db: None
) -> None:
    response = await async_client.get("/providers", params={"price": "0"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_providers_requires_authentication(
    async_client: AsyncClient, override_get_db: None
) -> None:
    response = await async_client.get("/providers")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.asyncio
@patch.object(ProviderService, "get_provider", new_callable=AsyncMock)
async def test_get_provider_not_found(
    mock_get: AsyncMock,
    mock_current_requester_user: User,
    async_client: AsyncClient,
    override_get_db: None,
) -> None:
    mock_get.side_effect = NotFoundError("Provider not found")
    response = await async_client.get(f"/providers/{uuid4()}")
    assert response.status_code == status.HTTP_404_NOT_FOUND
