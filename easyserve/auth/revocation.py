"""
auth/revocation.py

Access-token revocation for logout.

A logged-out token's `jti` is kept in Redis until the moment the token
would have expired anyway, so the key set never outgrows the live tokens.
When Redis is disabled or unreachable, revocation is skipped and every
token is treated as live.
"""

import logging
from datetime import datetime, timezone

import redis.asyncio as redis

from easyserve.core.config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "easyserve:revoked-jti:"


class TokenRevocationList:
    """Revoked JWT IDs, each stored with the remaining lifetime of its token."""

    def __init__(self, client: redis.Redis | None) -> None:  # type: ignore[type-arg]
        self.client = client

    @classmethod
    def from_settings(cls) -> "TokenRevocationList":
        if not settings.REDIS_ENABLED:
            logger.info("[REVOCATION] Redis disabled by configuration; logout will not revoke tokens.")
            return cls(None)
        logger.info(f"[REVOCATION] Using Redis at {settings.redis_url}")
        return cls(redis.from_url(settings.redis_url, decode_responses=True))

    @staticmethod
    def remaining_lifetime(expires_at: float, now: datetime | None = None) -> int:
        """Whole seconds until `expires_at` (a JWT `exp` timestamp); never negative."""
        current = (now or datetime.now(timezone.utc)).timestamp()
        return max(0, int(expires_at - current))

    async def revoke(self, jti: str, expires_at: float) -> int:
        """
        Revokes the token until its own expiry.
        Returns the number of seconds the revocation is kept, 0 when nothing was stored.
        """
        ttl = self.remaining_lifetime(expires_at)
        if ttl == 0:
            logger.info(f"[REVOCATION] Token already expired (jti={jti}); nothing to revoke.")
            return 0
        if self.client is None:
            logger.warning(f"[REVOCATION] Redis unavailable; token jti={jti} stays valid until expiry.")
            return 0

        try:
            await self.client.setex(f"{KEY_PREFIX}{jti}", ttl, "1")
        except redis.RedisError as e:
            logger.error(f"[REVOCATION] Failed to revoke jti={jti}: {e}")
            return 0
        logger.info(f"[REVOCATION] Token revoked (jti={jti}) for {ttl}s")
        return ttl

    async def is_revoked(self, jti: str) -> bool:
        if self.client is None:
            return False
        try:
            return await self.client.exists(f"{KEY_PREFIX}{jti}") == 1
        except redis.RedisError as e:
            logger.error(f"[REVOCATION] Failed to check jti={jti}: {e}")
            return False


revocation_list = TokenRevocationList.from_settings()
