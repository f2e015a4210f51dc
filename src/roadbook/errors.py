"""Domain error taxonomy.

Services raise these; ``middleware.error_handler`` turns them into JSON
responses of the form ``{"message": ..., "code": ..., "errors": [...]}``.
"""

from __future__ import annotations

from typing import Any


class RoadBookError(Exception):
    """Base class for errors that map to an HTTP status."""

    status_code: int = 500
    default_message: str = "Internal server error"
    code: str | None = None

    def __init__(self, message: str | None = None, *, errors: list[dict[str, Any]] | None = None) -> None:
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"message": self.message}
        if self.code:
            body["code"] = self.code
        if self.errors is not None:
            body["errors"] = self.errors
        return body


class ValidationError(RoadBookError):
    status_code = 400
    default_message = "Invalid request data"


class AuthenticationError(RoadBookError):
    status_code = 401
    default_message = "Authentication required"


class InvalidCredentials(AuthenticationError):
    default_message = "Invalid credentials"


class InvalidOrExpiredToken(AuthenticationError):
    default_message = "Invalid or expired token"


class RevokedOrUnknownToken(AuthenticationError):
    default_message = "Refresh token has been revoked or is unknown"


class MissingToken(AuthenticationError):
    default_message = "Unauthorized - token missing"


class InvalidToken(AuthenticationError):
    default_message = "Invalid token"


class TokenExpired(InvalidToken):
    default_message = "Token expired"
    code = "TOKEN_EXPIRED"


class AuthorizationError(RoadBookError):
    status_code = 403
    default_message = "Forbidden"


class InsufficientPrivileges(AuthorizationError):
    default_message = "Forbidden - insufficient privileges"


class NotFoundError(RoadBookError):
    status_code = 404
    default_message = "Not found"


class ConflictError(RoadBookError):
    status_code = 409
    default_message = "Conflict"


class AlreadyAwarded(ConflictError):
    default_message = "User already has this badge"


class InternalError(RoadBookError):
    status_code = 500
