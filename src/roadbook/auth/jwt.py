"""
HS256 JWT token management.

Access and refresh tokens carry the same ``{userId, role}`` claims but are
signed with different secrets and tagged with a ``type`` claim, so one can
never be accepted in place of the other. Refresh tokens also carry a ``jti``
that keys their server-side record.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Literal

import jwt

from roadbook.config import get_settings

TokenType = Literal["access", "refresh"]


def _secret_for(token_type: TokenType) -> str:
    settings = get_settings()
    return settings.jwt_refresh_secret if token_type == "refresh" else settings.jwt_secret


def _base_claims(user_id: int, role: str, token_type: TokenType, lifetime: timedelta) -> dict[str, Any]:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    return {
        "sub": str(user_id),
        "userId": user_id,
        "role": role,
        "iat": now,
        "exp": now + lifetime,
        "iss": settings.jwt_issuer,
        "type": token_type,
    }


def create_access_token(user_id: int, role: str) -> str:
    """
    Create a short-lived access token (15 minutes by default).

    Args:
        user_id: The user's database ID.
        role: The user's role (APPRENTICE, GUIDE, INSTRUCTOR, ADMIN).

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    payload = _base_claims(
        user_id, role, "access", timedelta(minutes=settings.jwt_access_token_expire_minutes)
    )
    return jwt.encode(payload, _secret_for("access"), algorithm=settings.jwt_algorithm)


def create_refresh_token(user_id: int, role: str, *, token_id: str) -> str:
    """
    Create a long-lived refresh token (7 days by default).

    Args:
        user_id: The user's database ID.
        role: The user's role.
        token_id: Unique token identifier (JTI) for revocation tracking.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    payload = _base_claims(
        user_id, role, "refresh", timedelta(days=settings.jwt_refresh_token_expire_days)
    )
    payload["jti"] = token_id
    return jwt.encode(payload, _secret_for("refresh"), algorithm=settings.jwt_algorithm)


def verify_token(token: str, expected_type: TokenType = "access") -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Args:
        token: The encoded JWT string.
        expected_type: Expected token type ("access" or "refresh").

    Returns:
        Decoded payload dictionary.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired.
        jwt.InvalidTokenError: If the token is invalid or of the wrong type.
    """
    settings = get_settings()
    payload: dict[str, Any] = jwt.decode(
        token,
        _secret_for(expected_type),
        algorithms=[settings.jwt_algorithm],
        issuer=settings.jwt_issuer,
        options={"require": ["exp", "iat", "sub", "type"]},
    )

    if payload.get("type") != expected_type:
        msg = f"Expected token type '{expected_type}', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)

    return payload
