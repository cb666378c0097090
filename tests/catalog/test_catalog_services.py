"""
tests/catalog/test_catalog_services.py

Service-layer tests for the catalog:
- Category creation and lookup
- Provider listings: filters, ratings and detail lookup
- Provider listing updates
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from easyserve.booking.models import Booking, BookingStatus
from easyserve.catalog.schemas import CategoryCreate, ProviderFilters
from easyserve.catalog.services import CategoryService, ProviderService
from easyserve.core.exceptions import ConflictError, InvalidAmountError, NotFoundError


async def list_provider(db, provider_id, **fields):
    profile = await ProviderService(db).apply_profile(provider_id, fields)
    await db.commit()
    return profile


def rated_booking(requester, provider, rating: int | None) -> Booking:
    return Booking(
        service_request_id=uuid4(),
        requester_id=requester.id,
        requester_name=requester.name,
        provider_id=provider.id,
        provider_name=provider.name,
        agreed_price=Decimal("1000.00"),
        status=BookingStatus.PAYMENT_RELEASED,
        rating=rating,
    )


# --- Categories ---


@pytest.mark.asyncio
async def test_category_names_unique_ignoring_case(db_session, category):
    service = CategoryService(db_session)
    with pytest.raises(ConflictError):
        await service.create_category(CategoryCreate(name="  plumbing "))

    created = await service.create_category(CategoryCreate(name="Electrician"))
    assert [c.name for c in await service.list_categories()] == ["Electrician", "Plumbing"]
    assert (await service.get_category(created.id)).name == "Electrician"


@pytest.mark.asyncio
async def test_unknown_category(db_session):
    with pytest.raises(NotFoundError):
        await CategoryService(db_session).get_category(uuid4())


# --- Provider listings ---


@pytest.mark.asyncio
async def test_providers_listed_by_name_with_listing(db_session, provider_user, other_provider_user, category):
    await list_provider(
        db_session, provider_user.id, category_id=category.id, area="Gulberg", price=Decimal("1500")
    )

    providers = await ProviderService(db_session).list_providers(ProviderFilters())

    assert [p.name for p in providers] == ["Provider A", "Provider B"]
    listed, bare = providers
    assert listed.category_id == category.id
    assert listed.category_name == "Plumbing"
    assert listed.area == "Gulberg"
    assert listed.price == Decimal("1500.00")
    assert bare.category_id is None
    assert bare.price is None
    assert bare.rating is None
    assert bare.review_count == 0


@pytest.mark.asyncio
async def test_provider_filters(db_session, provider_user, other_provider_user, category):
    await list_provider(
        db_session, provider_user.id, category_id=category.id, area="Gulberg", price=Decimal("1500")
    )
    await list_provider(db_session, other_provider_user.id, area="DHA", price=Decimal("800"))
    service = ProviderService(db_session)

    by_category = await service.list_providers(ProviderFilters(category_id=category.id))
    assert [p.id for p in by_category] == [provider_user.id]

    by_area = await service.list_providers(ProviderFilters(area=" gulberg "))
    assert [p.id for p in by_area] == [provider_user.id]

    by_price = await service.list_providers(ProviderFilters(max_price=Decimal("1000")))
    assert [p.id for p in by_price] == [other_provider_user.id]

    assert await service.list_providers(ProviderFilters(category_id=uuid4())) == []


@pytest.mark.asyncio
async def test_provider_listing_excludes_other_roles(db_session, requester_user, provider_user):
    providers = await ProviderService(db_session).list_providers(ProviderFilters())
    assert [p.id for p in providers] == [provider_user.id]

    with pytest.raises(NotFoundError):
        await ProviderService(db_session).get_provider(requester_user.id)


@pytest.mark.asyncio
async def test_provider_rating_averages_rated_bookings(db_session, requester, provider_user):
    db_session.add_all(
        [
            rated_booking(requester, provider_user, 5),
            rated_booking(requester, provider_user, 4),
            rated_booking(requester, provider_user, None),
        ]
    )
    await db_session.commit()

    provider = await ProviderService(db_session).get_provider(provider_user.id)

    assert provider.rating == 4.5
    assert provider.review_count == 2


@pytest.mark.asyncio
async def test_unknown_provider(db_session):
    with pytest.raises(NotFoundError):
        await ProviderService(db_session).get_provider(uuid4())


# --- Listing updates ---


@pytest.mark.asyncio
async def test_apply_profile_updates_existing_listing(db_session, provider_user, category):
    first = await list_provider(db_session, provider_user.id, category_id=category.id, area="DHA")
    second = await list_provider(db_session, provider_user.id, area="Clifton", category_id=None)

    assert second.id == first.id
    assert second.area == "Clifton"
    assert second.category_id is None
    assert second.category_name is None


@pytest.mark.asyncio
async def test_apply_profile_rejects_unknown_category(db_session, provider_user):
    with pytest.raises(NotFoundError):
        await ProviderService(db_session).apply_profile(provider_user.id, {"category_id": uuid4()})


@pytest.mark.asyncio
@pytest.mark.parametrize("price", ["0", "0.004", "-10"])
async def test_apply_profile_rejects_non_positive_price(db_session, provider_user, price):
    with pytest.raises(InvalidAmountError):
        await ProviderService(db_session).apply_profile(provider_user.id, {"price": Decimal(price)})


@pytest.mark.asyncio
async def test_apply_profile_rounds_price(db_session, provider_user):
    profile = await list_provider(db_session, provider_user.id, price=Decimal("999.995"))
    assert profile.price == Decimal("1000.00")
