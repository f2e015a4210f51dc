"""Badge API schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from roadbook.schemas import CamelModel


class BadgeResponse(CamelModel):
    id: int
    name: str
    description: str
    image_url: str | None = None
    category: str
    criteria: str
    created_at: datetime | None = None


class BadgeWithHoldersResponse(BadgeResponse):
    holders: int = 0


class UserBadgeResponse(CamelModel):
    id: int
    user_id: int
    badge_id: int
    awarded_at: datetime
    badge: BadgeResponse


class CheckBadgesResponse(CamelModel):
    message: str
    badges: list[UserBadgeResponse]


class AwardBadgeRequest(CamelModel):
    user_id: int
    badge_id: int


class BadgeCreateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: str = Field(..., min_length=1)
    image_url: str | None = Field(None, max_length=512)
    category: str = Field(..., min_length=1, max_length=32)
    criteria: str = Field(..., min_length=1, max_length=64)


class BadgeUpdateRequest(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=128)
    description: str | None = Field(None, min_length=1)
    image_url: str | None = Field(None, max_length=512)
    category: str | None = Field(None, min_length=1, max_length=32)
    criteria: str | None = Field(None, min_length=1, max_length=64)


class LeaderboardBadge(CamelModel):
    name: str
    image_url: str | None = None
    category: str
    awarded_at: datetime


class LeaderboardEntry(CamelModel):
    rank: int
    user_id: int
    display_name: str
    badge_count: int
    recent_badges: list[LeaderboardBadge]
