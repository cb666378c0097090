"""
auth/routes.py

Handles authentication routes:
- Account registration
- Email/password login issuing a JWT (also set as an HttpOnly cookie)
- Logout (token revocation)
- Current account lookup and profile update
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from easyserve.auth.schemas import (
    AuthSuccessResponse,
    AuthUserResponse,
    LoginRequest,
    ProfileRead,
    ProfileUpdate,
    RegisterRequest,
)
from easyserve.auth.services import login_user, logout_user_token, register_user, update_profile
from easyserve.core.config import settings
from easyserve.core.dependencies import get_current_user, oauth2_scheme
from easyserve.core.exceptions import UnauthorizedError
from easyserve.core.limiter import limiter
from easyserve.core.schemas import MessageResponse
from easyserve.database.models import User
from easyserve.database.session import get_db

# ---------------------------------------------------
# Router Configuration
# ---------------------------------------------------
router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------
# Registration
# ---------------------------------------------------
@router.post(
    "/register",
    response_model=AuthUserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register New Account",
    description="Registers a new requester or provider account.",
)
@limiter.limit("5/minute")
async def register(
    request: Request,
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthUserResponse:
    user = await register_user(payload, db)
    return AuthUserResponse.model_validate(user)


# ---------------------------------------------------
# Login
# ---------------------------------------------------
@router.post(
    "/login",
    response_model=AuthSuccessResponse,
    status_code=status.HTTP_200_OK,
    summary="Login",
    description="Authenticates with email and password and returns an access token.",
)
@limiter.limit("10/minute")
async def login(
    request: Request,
    response: Response,
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthSuccessResponse:
    """
    Issues a JWT and mirrors it into an HttpOnly `access_token` cookie.
    """
    result = await login_user(payload, db)
    response.set_cookie(
        key="access_token",
        value=result.access_token,
        httponly=True,
        secure=not settings.DEBUG,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return result


# ---------------------------------------------------
# Logout
# ---------------------------------------------------
@router.post(
    "/logout",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Logout",
    description="Revokes the current access token and clears the auth cookie.",
)
async def logout(
    request: Request,
    response: Response,
    token: str | None = Depends(oauth2_scheme),
) -> MessageResponse:
    token = token or request.cookies.get("access_token")
    if not token:
        raise UnauthorizedError("Not authenticated", headers={"WWW-Authenticate": "Bearer"})
    response.delete_cookie("access_token")
    return await logout_user_token(token)


# ---------------------------------------------------
# Current Account
# ---------------------------------------------------
@router.get(
    "/me",
    response_model=AuthUserResponse,
    status_code=status.HTTP_200_OK,
    summary="Current Account",
)
async def me(current_user: User = Depends(get_current_user)) -> AuthUserResponse:
    return AuthUserResponse.model_validate(current_user)


@router.put(
    "/profile",
    response_model=ProfileRead,
    status_code=status.HTTP_200_OK,
    summary="Update Profile",
    description="Updates account details; providers may also update their listing.",
)
@limiter.limit("20/minute")
async def put_profile(
    request: Request,
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProfileRead:
    return await update_profile(current_user, payload, db)
