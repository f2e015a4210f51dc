"""Authentication router: all /api/auth/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from roadbook.auth.dependencies import Identity, get_current_identity, get_current_user
from roadbook.auth.schemas import (
    IdentityResponse,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    UserResponse,
    VerifyResponse,
)
from roadbook.auth.service import login, refresh_access_token, register_user, revoke_refresh_token
from roadbook.config import get_settings
from roadbook.database import get_session
from roadbook.db.models import User
from roadbook.errors import InvalidCredentials, MissingToken
from roadbook.schemas import MessageResponse

logger = structlog.get_logger()

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _set_refresh_cookie(response: Response, refresh_token: str) -> None:
    """httpOnly refresh cookie; ``secure`` only in production."""
    settings = get_settings()
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=refresh_token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.jwt_refresh_token_expire_days * 24 * 60 * 60,
    )


def _clear_refresh_cookie(response: Response) -> None:
    settings = get_settings()
    response.delete_cookie(
        key=settings.refresh_cookie_name,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


async def _presented_refresh_token(request: Request) -> str | None:
    """Refresh token from the cookie, falling back to a JSON body ``refreshToken``."""
    token = request.cookies.get(get_settings().refresh_cookie_name)
    if token:
        return token
    try:
        body = RefreshRequest.model_validate(await request.json())
    except ValueError:
        return None
    return body.refresh_token


@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> LoginResponse:
    """Create an account and log it in."""
    await register_user(
        db,
        email=body.email,
        password=body.password,
        display_name=body.display_name,
        role=body.role,
    )
    result = await login(db, body.email, body.password)
    await db.commit()

    _set_refresh_cookie(response, result.refresh_token)
    response.headers["Authorization"] = f"Bearer {result.access_token}"
    return LoginResponse(
        message="User registered successfully",
        user=UserResponse.model_validate(result.user),
        access_token=result.access_token,
    )


@router.post("/login", response_model=LoginResponse)
async def login_endpoint(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> LoginResponse:
    """Login with email + password."""
    try:
        result = await login(db, body.email, body.password)
    except InvalidCredentials as e:
        raise InvalidCredentials("Invalid email or password") from e
    await db.commit()

    _set_refresh_cookie(response, result.refresh_token)
    response.headers["Authorization"] = f"Bearer {result.access_token}"
    return LoginResponse(
        user=UserResponse.model_validate(result.user),
        access_token=result.access_token,
    )


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> RefreshResponse:
    """Issue a new access token. The refresh token is not rotated."""
    token = await _presented_refresh_token(request)
    if not token:
        msg = "Refresh token is required"
        raise MissingToken(msg)

    access_token = await refresh_access_token(db, token)
    response.headers["Authorization"] = f"Bearer {access_token}"
    return RefreshResponse(access_token=access_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Revoke the presented refresh token and clear the cookie. Always 200."""
    token = await _presented_refresh_token(request)
    if token:
        try:
            if await revoke_refresh_token(db, token):
                await db.commit()
        except Exception:
            # Logout must succeed client-side even if revocation fails.
            logger.exception("logout_revoke_failed")
            await db.rollback()

    _clear_refresh_cookie(response)
    return MessageResponse(message="Logout successful")


@router.get("/verify", response_model=VerifyResponse)
async def verify(identity: Identity = Depends(get_current_identity)) -> VerifyResponse:
    """Validate the presented access token."""
    return VerifyResponse(
        valid=True,
        user=IdentityResponse(user_id=identity.user_id, role=identity.role),
    )


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    """Current user's profile."""
    return UserResponse.model_validate(user)
