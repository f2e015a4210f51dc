"""Enumerations stored as plain strings in the database."""

from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    APPRENTICE = "APPRENTICE"
    GUIDE = "GUIDE"
    INSTRUCTOR = "INSTRUCTOR"
    ADMIN = "ADMIN"


class RefreshTokenStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    REVOKED = "REVOKED"


class RoadBookStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class DaylightCondition(str, enum.Enum):
    DAY = "DAY"
    NIGHT = "NIGHT"
    DAWN_DUSK = "DAWN_DUSK"


class WeatherCondition(str, enum.Enum):
    CLEAR = "CLEAR"
    CLOUDY = "CLOUDY"
    RAINY = "RAINY"
    SNOWY = "SNOWY"
    FOGGY = "FOGGY"
    WINDY = "WINDY"
    OTHER = "OTHER"


class RoadType(str, enum.Enum):
    URBAN = "URBAN"
    RURAL = "RURAL"
    HIGHWAY = "HIGHWAY"


class CompetencyCategory(str, enum.Enum):
    CONTROL = "CONTROL"
    MANEUVERING = "MANEUVERING"
    TRAFFIC_RULES = "TRAFFIC_RULES"
    RISK_PERCEPTION = "RISK_PERCEPTION"
    ECOFRIENDLY_DRIVING = "ECOFRIENDLY_DRIVING"
    SPECIAL_CONDITIONS = "SPECIAL_CONDITIONS"


class CompetencyStatus(str, enum.Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    MASTERED = "MASTERED"


class NotificationType(str, enum.Enum):
    SESSION_REMINDER = "SESSION_REMINDER"
    COMPETENCY_MASTERED = "COMPETENCY_MASTERED"
    BADGE_EARNED = "BADGE_EARNED"
    SESSION_VALIDATION = "SESSION_VALIDATION"
    COMMENT_RECEIVED = "COMMENT_RECEIVED"
    MARKETPLACE_UPDATE = "MARKETPLACE_UPDATE"
