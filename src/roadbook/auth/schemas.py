"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import EmailStr, Field, field_validator

from roadbook.schemas import CamelModel


class RegisterRequest(CamelModel):
    """Account creation. ADMIN cannot be self-assigned."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    display_name: str = Field(..., min_length=2, max_length=64)
    role: Literal["APPRENTICE", "GUIDE", "INSTRUCTOR"] = "APPRENTICE"

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()

    @field_validator("display_name")
    @classmethod
    def strip_display_name(cls, v: str) -> str:
        return v.strip()


class LoginRequest(CamelModel):
    """Login with email + password."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class RefreshRequest(CamelModel):
    """Body fallback for clients that cannot send the refresh cookie."""

    refresh_token: str | None = None


class UserResponse(CamelModel):
    """User profile without credentials."""

    id: int
    email: str
    display_name: str
    role: str
    created_at: datetime | None = None
    last_login: datetime | None = None


class LoginResponse(CamelModel):
    message: str = "Login successful"
    user: UserResponse
    access_token: str


class RefreshResponse(CamelModel):
    access_token: str


class IdentityResponse(CamelModel):
    user_id: int
    role: str


class VerifyResponse(CamelModel):
    valid: bool
    user: IdentityResponse
