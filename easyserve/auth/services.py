"""
auth/services.py

Authentication service functions:
- Account registration with hashed passwords
- Email/password login issuing JWT access tokens
- Logout by revoking the token's JTI for its remaining lifetime
- Profile updates, including the provider listing for provider accounts
"""

import logging

from jose import JWTError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from easyserve.auth.schemas import (
    AuthSuccessResponse,
    AuthUserResponse,
    LoginRequest,
    ProfileRead,
    ProfileUpdate,
    RegisterRequest,
)
from easyserve.auth.revocation import revocation_list
from easyserve.catalog.services import ProviderService
from easyserve.core.exceptions import ConflictError, UnauthorizedError, ValidationError
from easyserve.core.schemas import MessageResponse
from easyserve.core.security import (
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)
from easyserve.database.enums import UserRole
from easyserve.database.models import User

logger = logging.getLogger(__name__)

LISTING_FIELDS = frozenset({"category_id", "area", "price", "description", "image"})


# ------------------------------------------------
# Registration
# ------------------------------------------------
async def register_user(payload: RegisterRequest, db: AsyncSession) -> User:
    """Creates a new requester or provider account."""
    email = payload.email.lower()
    existing = (
        (await db.execute(select(User).filter(User.email == email))).unique().scalar_one_or_none()
    )
    if existing:
        logger.warning(f"Registration attempt with existing email: {email}")
        raise ConflictError("Email already registered")

    new_user = User(
        email=email,
        name=payload.name,
        phone=payload.phone,
        hashed_password=get_password_hash(payload.password),
        role=payload.role,
    )
    db.add(new_user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(f"Concurrent registration for email: {email}")
        raise ConflictError("Email already registered")

    await db.refresh(new_user)
    logger.info(f"New user registered: {new_user.email} (ID: {new_user.id}, role={new_user.role})")
    return new_user


# ------------------------------------------------
# Login
# ------------------------------------------------
async def authenticate_user(email: str, password: str, db: AsyncSession) -> User:
    """Fetches the account and validates its credentials."""
    user = (
        (await db.execute(select(User).filter(User.email == email.lower())))
        .unique()
        .scalar_one_or_none()
    )
    if not user or not verify_password(password, user.hashed_password):
        logger.warning(f"Failed login attempt for email: {email}")
        raise UnauthorizedError("Invalid credentials", headers={"WWW-Authenticate": "Bearer"})

    if not user.is_active:
        logger.warning(f"Login attempt by inactive user: {user.email}")
        raise UnauthorizedError("Account is inactive")

    return user


async def login_user(payload: LoginRequest, db: AsyncSession) -> AuthSuccessResponse:
    """Authenticates a user via JSON email/password."""
    user = await authenticate_user(payload.email, payload.password, db)
    access_token = create_access_token({"sub": str(user.id), "role": user.role.value})
    logger.info(f"User logged in successfully: {user.email}")
    return AuthSuccessResponse(
        access_token=access_token, user=AuthUserResponse.model_validate(user)
    )


# ------------------------------------------------
# Logout
# ------------------------------------------------
async def logout_user_token(token: str) -> MessageResponse:
    """Revokes the provided JWT access token for the rest of its lifetime."""
    try:
        payload = decode_access_token(token, verify_exp=False)
        jti = payload.get("jti")
        exp = payload.get("exp")

        if jti and exp:
            await revocation_list.revoke(jti, exp)
        else:
            logger.warning("Attempted logout with token missing 'jti' or 'exp'.")

    except JWTError as e:
        # An undecodable token is unusable anyway
        logger.warning(f"Error decoding token during logout: {e}")

    return MessageResponse(detail="Logout successful")


# ------------------------------------------------
# Profile
# ------------------------------------------------
async def update_profile(user: User, payload: ProfileUpdate, db: AsyncSession) -> ProfileRead:
    """
    Applies a partial profile update. Account fields go on the user row;
    listing fields go on the provider's listing, created on first use.
    """
    changes = payload.model_dump(exclude_unset=True)
    listing_changes = {key: changes.pop(key) for key in LISTING_FIELDS & changes.keys()}
    if listing_changes and user.role != UserRole.PROVIDER:
        logger.warning(f"Non-provider {user.id} tried to set listing fields: {sorted(listing_changes)}")
        raise ValidationError("Only provider accounts have a listing to update")

    # A name can be changed but not cleared
    if changes.get("name", ...) is None:
        changes.pop("name")
    for key, value in changes.items():
        setattr(user, key, value)

    providers = ProviderService(db)
    if listing_changes:
        await providers.apply_profile(user.id, listing_changes)

    await db.commit()
    await db.refresh(user)
    logger.info(f"Profile updated for user {user.id}: {sorted(changes) + sorted(listing_changes)}")

    provider = await providers.get_provider(user.id) if user.role == UserRole.PROVIDER else None
    return ProfileRead(account=AuthUserResponse.model_validate(user), provider=provider)
