"""
easyserve/core/dependencies.py

Authentication and Authorization Dependencies

Provides authentication and role-based access control (RBAC) for FastAPI routes:
- Validates JWT tokens from Bearer header OR HttpOnly cookie
- Checks against revoked tokens (logout protection)
- Retrieves authenticated user from the database
- Restricts access based on user roles
- Converts the authenticated user into the explicit caller identity
  (RequesterIdentity / ProviderIdentity) passed to the marketplace services
"""

import logging
from collections.abc import Callable, Coroutine
from typing import Annotated, Any

from fastapi import Cookie, Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from easyserve.auth.revocation import revocation_list
from easyserve.auth.schemas import ProviderIdentity, RequesterIdentity, TokenPayload
from easyserve.core.exceptions import ForbiddenError, UnauthorizedError
from easyserve.core.security import decode_access_token
from easyserve.database.enums import UserRole
from easyserve.database.models import User
from easyserve.database.session import get_db

# ---------------------------------------------------
# Logger Configuration
# ---------------------------------------------------
logger = logging.getLogger(__name__)

# ---------------------------------------------------
# OAuth2 Configuration
# ---------------------------------------------------
# auto_error=False so a missing header falls through to the cookie check
oauth2_scheme: OAuth2PasswordBearer = OAuth2PasswordBearer(
    tokenUrl="/auth/login", auto_error=False
)


# ---------------------------------------------------
# Authentication Functions
# ---------------------------------------------------
async def get_current_user(
    token_header: Annotated[str | None, Depends(oauth2_scheme)] = None,
    token_cookie: Annotated[str | None, Cookie(alias="access_token")] = None,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Authenticate the current user based on the provided JWT access token,
    checking Bearer header first, then HttpOnly cookie.

    Raises:
        UnauthorizedError: 401 if authentication fails.
    """
    token = token_header or token_cookie

    if token is None:
        logger.debug("[AUTH] No token found in Authorization header or access_token cookie.")
        raise UnauthorizedError(
            "Could not validate credentials", headers={"WWW-Authenticate": "Bearer"}
        )

    try:
        payload = decode_access_token(token)
        token_data = TokenPayload(**payload)
    except (JWTError, PydanticValidationError) as e:
        logger.warning(f"[AUTH] JWT decoding/validation failed: {e}")
        raise UnauthorizedError("Could not validate credentials")

    if await revocation_list.is_revoked(token_data.jti):
        logger.warning(f"[AUTH] Revoked token detected: jti={token_data.jti}")
        raise UnauthorizedError("Could not validate credentials")

    result = await db.execute(select(User).filter(User.id == token_data.sub))
    user = result.unique().scalar_one_or_none()

    if not user:
        logger.warning(f"[AUTH] JWT valid but no matching user found: user_id={token_data.sub}")
        raise UnauthorizedError("Could not validate credentials")

    if not user.is_active:
        logger.warning(f"[AUTH] Authentication attempt by inactive user: {user.id}")
        raise UnauthorizedError("Could not validate credentials")

    logger.debug(
        f"[AUTH] User {user.id} authenticated successfully via {'Header' if token_header else 'Cookie'}."
    )
    return user


# ---------------------------------------------------
# Authorization Functions (Role-Based)
# ---------------------------------------------------
def get_current_user_with_role(required_role: UserRole) -> Callable[..., Coroutine[Any, Any, User]]:
    """
    Dependency to restrict access to users with a specific role.
    """

    async def role_dependency(user: User = Depends(get_current_user)) -> User:
        if user.role != required_role:
            logger.warning(
                f"[RBAC] Access denied: User {user.id} role={user.role}, required={required_role}"
            )
            raise ForbiddenError(f"Access denied for role: {user.role.value}")
        return user

    return role_dependency


def require_roles(*roles: UserRole) -> Callable[..., Coroutine[Any, Any, User]]:
    """
    Dependency to restrict access to users having any of the specified roles.
    """

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            logger.warning(
                f"[RBAC] Access denied: User {user.id} with role {user.role} attempted access (allowed roles: {roles})"
            )
            raise ForbiddenError(f"Access denied for role: {user.role.value}")
        return user

    return checker


# ---------------------------------------------------
# Caller Identities
# ---------------------------------------------------
def to_identity(user: User) -> RequesterIdentity | ProviderIdentity:
    """Builds the explicit caller identity for a requester or provider account."""
    if user.role == UserRole.USER:
        return RequesterIdentity(id=user.id, name=user.name)
    if user.role == UserRole.PROVIDER:
        return ProviderIdentity(id=user.id, name=user.name)
    raise ForbiddenError(f"Access denied for role: {user.role.value}")


async def get_current_requester(
    user: User = Depends(get_current_user_with_role(UserRole.USER)),
) -> RequesterIdentity:
    return RequesterIdentity(id=user.id, name=user.name)


async def get_current_provider(
    user: User = Depends(get_current_user_with_role(UserRole.PROVIDER)),
) -> ProviderIdentity:
    return ProviderIdentity(id=user.id, name=user.name)


async def get_current_party(
    user: User = Depends(require_roles(UserRole.USER, UserRole.PROVIDER)),
) -> RequesterIdentity | ProviderIdentity:
    return to_identity(user)
