"""
tests/auth/test_revocation.py

Unit tests for auth/revocation.py using a mocked Redis client.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis

from easyserve.auth.revocation import KEY_PREFIX, TokenRevocationList


def expires_in(seconds: int) -> float:
    return (datetime.now(timezone.utc) + timedelta(seconds=seconds)).timestamp()


def test_remaining_lifetime_never_negative():
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert TokenRevocationList.remaining_lifetime(now.timestamp() + 90, now) == 90
    assert TokenRevocationList.remaining_lifetime(now.timestamp() - 5, now) == 0


@pytest.mark.asyncio
async def test_revoke_stores_jti_until_expiry():
    client = AsyncMock()
    revocations = TokenRevocationList(client)

    ttl = await revocations.revoke("abc", expires_in(600))

    assert 590 <= ttl <= 600
    client.setex.assert_awaited_once_with(f"{KEY_PREFIX}abc", ttl, "1")


@pytest.mark.asyncio
async def test_revoke_expired_token_stores_nothing():
    client = AsyncMock()
    assert await TokenRevocationList(client).revoke("abc", expires_in(-60)) == 0
    client.setex.assert_not_awaited()


@pytest.mark.asyncio
async def test_revoke_survives_redis_errors():
    client = AsyncMock()
    client.setex.side_effect = redis.ConnectionError("down")
    assert await TokenRevocationList(client).revoke("abc", expires_in(600)) == 0


@pytest.mark.asyncio
async def test_is_revoked():
    client = AsyncMock()
    client.exists.return_value = 1
    revocations = TokenRevocationList(client)

    assert await revocations.is_revoked("abc") is True
    client.exists.assert_awaited_once_with(f"{KEY_PREFIX}abc")

    client.exists.return_value = 0
    assert await revocations.is_revoked("other") is False


@pytest.mark.asyncio
async def test_is_revoked_treats_redis_errors_as_live():
    client = AsyncMock()
    client.exists.side_effect = redis.ConnectionError("down")
    assert await TokenRevocationList(client).is_revoked("abc") is False


@pytest.mark.asyncio
async def test_without_redis_nothing_is_revoked():
    revocations = TokenRevocationList(None)
    assert await revocations.revoke("abc", expires_in(600)) == 0
    assert await revocations.is_revoked("abc") is False


def test_from_settings_without_redis():
    # The test environment disables Redis
    assert TokenRevocationList.from_settings().client is None
