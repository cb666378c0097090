"""
tests/auth/test_auth_services.py

Service-layer tests for auth/services.py against an in-memory database:
- Registration and login
- Profile updates for requesters and providers
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from easyserve.auth.schemas import LoginRequest, ProfileUpdate, RegisterRequest
from easyserve.auth.services import login_user, register_user, update_profile
from easyserve.core.exceptions import (
    ConflictError,
    InvalidAmountError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from easyserve.core.security import decode_access_token
from easyserve.database.enums import UserRole
from easyserve.database.models import User


# --- Registration & login ---


@pytest.mark.asyncio
async def test_register_then_login(db_session):
    user = await register_user(
        RegisterRequest(email="Sana@Example.com", password="Secret123!", name="Sana", role=UserRole.PROVIDER),
        db_session,
    )
    assert user.email == "sana@example.com"
    assert user.hashed_password != "Secret123!"

    result = await login_user(LoginRequest(email="sana@example.com", password="Secret123!"), db_session)
    payload = decode_access_token(result.access_token)
    assert payload["sub"] == str(user.id)
    assert payload["role"] == "provider"
    assert payload["jti"]

    with pytest.raises(ConflictError):
        await register_user(
            RegisterRequest(email="sana@example.com", password="Another123!", name="Other"), db_session
        )
    with pytest.raises(UnauthorizedError):
        await login_user(LoginRequest(email="sana@example.com", password="wrong"), db_session)


# --- Profile ---


@pytest.mark.asyncio
async def test_requester_updates_account_fields(db_session, requester_user):
    user = await db_session.get(User, requester_user.id)

    result = await update_profile(user, ProfileUpdate(name="Ayesha K.", phone="03111111111"), db_session)

    assert result.account.name == "Ayesha K."
    assert result.account.phone == "03111111111"
    assert result.provider is None


@pytest.mark.asyncio
async def test_requester_cannot_set_listing_fields(db_session, requester_user):
    user = await db_session.get(User, requester_user.id)
    with pytest.raises(ValidationError):
        await update_profile(user, ProfileUpdate(area="DHA"), db_session)


@pytest.mark.asyncio
async def test_provider_updates_listing(db_session, provider_user, category):
    user = await db_session.get(User, provider_user.id)

    result = await update_profile(
        user,
        ProfileUpdate(
            phone="03222222222",
            category_id=category.id,
            area="Gulberg",
            price=Decimal("1500"),
            description="Licensed plumber",
        ),
        db_session,
    )

    assert result.account.phone == "03222222222"
    assert result.provider.id == provider_user.id
    assert result.provider.category_name == "Plumbing"
    assert result.provider.area == "Gulberg"
    assert result.provider.price == Decimal("1500.00")
    assert result.provider.description == "Licensed plumber"

    # Fields left out keep their values; a null name is ignored
    result = await update_profile(user, ProfileUpdate(name=None, area="DHA"), db_session)
    assert result.account.name == "Provider A"
    assert result.provider.area == "DHA"
    assert result.provider.price == Decimal("1500.00")


@pytest.mark.asyncio
async def test_provider_listing_rejects_unknown_category(db_session, provider_user):
    user = await db_session.get(User, provider_user.id)
    with pytest.raises(NotFoundError):
        await update_profile(user, ProfileUpdate(category_id=uuid4()), db_session)


@pytest.mark.asyncio
async def test_provider_price_rounding_to_zero_is_rejected(db_session, provider_user):
    user = await db_session.get(User, provider_user.id)
    with pytest.raises(InvalidAmountError):
        await update_profile(user, ProfileUpdate(price=Decimal("0.001")), db_session)
