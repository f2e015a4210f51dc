"""
Authentication business logic.

Handles registration, login, refresh-token storage/revocation and access-token
refresh. Every failure is raised as a ``roadbook.errors`` type; nothing here
falls back to a default identity.
"""

from __future__ import annotations

import hashlib
import hmac
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import jwt as pyjwt
import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from roadbook.auth.jwt import create_access_token, create_refresh_token, verify_token
from roadbook.auth.password import (
    PasswordStrengthError,
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from roadbook.config import get_settings
from roadbook.db.enums import RefreshTokenStatus, UserRole
from roadbook.db.models import RefreshToken, User
from roadbook.errors import (
    ConflictError,
    InvalidCredentials,
    InvalidOrExpiredToken,
    RevokedOrUnknownToken,
    ValidationError,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


@dataclass(frozen=True)
class LoginResult:
    user: User
    access_token: str
    refresh_token: str


def hash_token(token: str) -> str:
    """SHA-256 of a signed token; the only form in which refresh tokens are stored."""
    return hashlib.sha256(token.encode()).hexdigest()


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower().strip()))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def register_user(
    db: AsyncSession,
    email: str,
    password: str,
    display_name: str,
    role: str = UserRole.APPRENTICE.value,
) -> User:
    """
    Create a user with a hashed password.

    Raises:
        ValidationError: If the password is too weak.
        ConflictError: If the email is already registered.
    """
    try:
        validate_password_strength(password)
    except PasswordStrengthError as e:
        raise ValidationError(str(e), errors=[{"field": "password", "message": str(e)}]) from e

    user = User(
        email=email.lower().strip(),
        password_hash=hash_password(password),
        display_name=display_name,
        role=UserRole(role).value,
        created_at=datetime.now(timezone.utc),
    )
    try:
        async with db.begin_nested():
            db.add(user)
    except IntegrityError as e:
        msg = "User with this email already exists"
        raise ConflictError(msg) from e

    logger.info("user_registered", user_id=user.id, role=user.role)
    return user


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Check email + password.

    Both failure paths raise the same InvalidCredentials so callers cannot
    tell whether the email exists.
    """
    user = await get_user_by_email(db, email)
    if not verify_password(password, user.password_hash if user else None) or user is None:
        logger.info("login_failed")
        raise InvalidCredentials

    if check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        logger.info("password_rehashed", user_id=user.id)

    return user


async def login(db: AsyncSession, email: str, password: str) -> LoginResult:
    """
    Authenticate and issue a fresh token pair.

    Every ACTIVE refresh token of the user is revoked before the new one is
    stored; both writes share the caller's transaction.
    """
    user = await authenticate_user(db, email, password)
    user.last_login = datetime.now(timezone.utc)

    revoked = await revoke_all_tokens(db, user.id)
    access_token, refresh_token = await issue_token_pair(db, user)

    logger.info("user_logged_in", user_id=user.id, revoked_tokens=revoked)
    return LoginResult(user=user, access_token=access_token, refresh_token=refresh_token)


async def issue_token_pair(db: AsyncSession, user: User) -> tuple[str, str]:
    """Sign access + refresh tokens and persist the refresh token record."""
    settings = get_settings()
    token_id = str(uuid.uuid4())
    access_token = create_access_token(user.id, user.role)
    refresh_token = create_refresh_token(user.id, user.role, token_id=token_id)

    now = datetime.now(timezone.utc)
    db.add(
        RefreshToken(
            id=token_id,
            user_id=user.id,
            token_hash=hash_token(refresh_token),
            status=RefreshTokenStatus.ACTIVE.value,
            issued_at=now,
            expires_at=now + timedelta(days=settings.jwt_refresh_token_expire_days),
        )
    )
    await db.flush()
    return access_token, refresh_token


# ---------------------------------------------------------------------------
# Refresh tokens
# ---------------------------------------------------------------------------


async def get_active_refresh_token(db: AsyncSession, token_id: str) -> RefreshToken | None:
    """Look up an ACTIVE, unexpired refresh token record by its JTI."""
    result = await db.execute(
        select(RefreshToken).where(
            RefreshToken.id == token_id,
            RefreshToken.status == RefreshTokenStatus.ACTIVE.value,
            RefreshToken.expires_at > datetime.now(timezone.utc),
        )
    )
    return result.scalar_one_or_none()


async def refresh_access_token(db: AsyncSession, refresh_token: str) -> str:
    """
    Exchange a refresh token for a new access token.

    The refresh token itself is left untouched and stays valid until it
    expires or is revoked.

    Raises:
        InvalidOrExpiredToken: Signature, expiry, issuer or type check failed.
        RevokedOrUnknownToken: No ACTIVE record matches the token.
    """
    try:
        payload = verify_token(refresh_token, expected_type="refresh")
    except pyjwt.InvalidTokenError as e:
        raise InvalidOrExpiredToken from e

    jti = payload.get("jti")
    record = await get_active_refresh_token(db, jti) if jti else None
    if record is None or not hmac.compare_digest(record.token_hash, hash_token(refresh_token)):
        logger.warning("refresh_token_rejected", jti=jti)
        raise RevokedOrUnknownToken

    return create_access_token(int(payload["userId"]), payload["role"])


async def revoke_refresh_token(db: AsyncSession, refresh_token: str) -> bool:
    """
    Revoke the record behind a presented refresh token (logout).

    The signature is checked but expiry is not, so an expired token can still
    be revoked. Returns True if an ACTIVE record was revoked.
    """
    settings = get_settings()
    try:
        payload = pyjwt.decode(
            refresh_token,
            settings.jwt_refresh_secret,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": False},
        )
    except pyjwt.InvalidTokenError:
        return False

    jti = payload.get("jti")
    if not jti:
        return False

    result = await db.execute(
        update(RefreshToken)
        .where(
            RefreshToken.id == jti,
            RefreshToken.token_hash == hash_token(refresh_token),
            RefreshToken.status == RefreshTokenStatus.ACTIVE.value,
        )
        .values(status=RefreshTokenStatus.REVOKED.value, revoked_at=datetime.now(timezone.utc))
    )
    await db.flush()
    return result.rowcount > 0


async def revoke_all_tokens(db: AsyncSession, user_id: int) -> int:
    """Revoke all ACTIVE refresh tokens for a user. Returns count revoked."""
    result = await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id)
        .where(RefreshToken.status == RefreshTokenStatus.ACTIVE.value)
        .values(status=RefreshTokenStatus.REVOKED.value, revoked_at=datetime.now(timezone.utc))
    )
    await db.flush()
    return result.rowcount  # type: ignore[return-value]
