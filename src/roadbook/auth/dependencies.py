"""FastAPI authentication dependencies."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import jwt
import structlog
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from roadbook.auth.jwt import verify_token
from roadbook.auth.service import get_user_by_id
from roadbook.database import get_session
from roadbook.db.enums import UserRole
from roadbook.db.models import User
from roadbook.errors import (
    AuthenticationError,
    InsufficientPrivileges,
    InvalidToken,
    MissingToken,
    TokenExpired,
)

logger = structlog.get_logger()

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Decoded access-token identity attached to the request."""

    user_id: int
    role: str


def identity_from_token(token: str) -> Identity:
    """Verify an access token and decode its identity claims."""
    try:
        payload = verify_token(token, expected_type="access")
    except jwt.ExpiredSignatureError as e:
        raise TokenExpired from e
    except jwt.InvalidTokenError as e:
        raise InvalidToken from e

    try:
        return Identity(user_id=int(payload["userId"]), role=str(payload["role"]))
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidToken from e


async def get_current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> Identity:
    """
    Extract and verify the bearer access token.

    Raises MissingToken when the header is absent or not ``Bearer <token>``
    and InvalidToken when verification fails.
    """
    if credentials is None or not credentials.credentials:
        raise MissingToken
    identity = identity_from_token(credentials.credentials)
    request.state.identity = identity
    structlog.contextvars.bind_contextvars(user_id=identity.user_id)
    return identity


async def get_current_user(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Load the User row behind the token. 401 if it no longer exists."""
    user = await get_user_by_id(db, identity.user_id)
    if user is None:
        msg = "User not found"
        raise AuthenticationError(msg)
    return user


def require_roles(*roles: UserRole | str) -> Callable[..., Awaitable[Identity]]:
    """
    Build a dependency that admits only the given roles.

    Usage: ``Depends(require_roles(UserRole.ADMIN))``.
    """
    allowed = frozenset(r.value if isinstance(r, UserRole) else str(r) for r in roles)

    async def _check(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in allowed:
            logger.info("access_denied", user_id=identity.user_id, role=identity.role, required=sorted(allowed))
            raise InsufficientPrivileges(
                errors=[{"requiredRoles": sorted(allowed), "userRole": identity.role}],
            )
        return identity

    return _check


require_admin = require_roles(UserRole.ADMIN)
