"""Badge criteria: one async predicate per criteria tag.

Each predicate answers "does this user currently satisfy the tag?" by
counting rows in the driving history. Predicates only read.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from roadbook.db.enums import (
    CompetencyCategory,
    CompetencyStatus,
    DaylightCondition,
    RoadBookStatus,
    RoadType,
)
from roadbook.db.models import Competency, CompetencyProgress, DrivingSession, RoadBook

logger = logging.getLogger(__name__)

COMPLETED_SESSIONS_THRESHOLD = 10
VALIDATED_SESSIONS_THRESHOLD = 10


class BadgeCriteria(str, enum.Enum):
    FIRST_SESSION = "FIRST_SESSION"
    COMPLETE_10_SESSIONS = "COMPLETE_10_SESSIONS"
    NIGHT_DRIVING = "NIGHT_DRIVING"
    HIGHWAY_DRIVING = "HIGHWAY_DRIVING"
    MASTER_PARKING = "MASTER_PARKING"
    MASTER_ECO_DRIVING = "MASTER_ECO_DRIVING"
    VALIDATE_10_SESSIONS = "VALIDATE_10_SESSIONS"
    COMPLETE_ROADBOOK = "COMPLETE_ROADBOOK"


async def _count(db: AsyncSession, stmt) -> int:  # type: ignore[no-untyped-def]
    result = await db.execute(stmt)
    return result.scalar_one()


async def has_first_session(db: AsyncSession, user_id: int) -> bool:
    """At least one session as apprentice."""
    count = await _count(
        db,
        select(func.count()).select_from(DrivingSession).where(DrivingSession.apprentice_id == user_id),
    )
    return count > 0


async def has_completed_sessions(db: AsyncSession, user_id: int) -> bool:
    """Ten finished sessions (end time recorded)."""
    count = await _count(
        db,
        select(func.count())
        .select_from(DrivingSession)
        .where(DrivingSession.apprentice_id == user_id, DrivingSession.end_time.is_not(None)),
    )
    return count >= COMPLETED_SESSIONS_THRESHOLD


async def has_night_driving(db: AsyncSession, user_id: int) -> bool:
    count = await _count(
        db,
        select(func.count())
        .select_from(DrivingSession)
        .where(
            DrivingSession.apprentice_id == user_id,
            DrivingSession.daylight == DaylightCondition.NIGHT.value,
        ),
    )
    return count > 0


async def has_highway_driving(db: AsyncSession, user_id: int) -> bool:
    """Any session whose road types include HIGHWAY."""
    # road_types is a JSON array on every backend, so membership is tested after loading.
    result = await db.execute(select(DrivingSession.road_types).where(DrivingSession.apprentice_id == user_id))
    return any(RoadType.HIGHWAY.value in (road_types or []) for road_types in result.scalars())


async def has_mastered_parking(db: AsyncSession, user_id: int) -> bool:
    """A MASTERED maneuvering competency whose name mentions parking."""
    count = await _count(
        db,
        select(func.count())
        .select_from(CompetencyProgress)
        .join(Competency, CompetencyProgress.competency_id == Competency.id)
        .where(
            CompetencyProgress.apprentice_id == user_id,
            CompetencyProgress.status == CompetencyStatus.MASTERED.value,
            Competency.category == CompetencyCategory.MANEUVERING.value,
            Competency.name.ilike("%park%"),
        ),
    )
    return count > 0


async def has_mastered_eco_driving(db: AsyncSession, user_id: int) -> bool:
    """Every ECOFRIENDLY_DRIVING competency MASTERED. False when none exist."""
    total = await _count(
        db,
        select(func.count())
        .select_from(Competency)
        .where(Competency.category == CompetencyCategory.ECOFRIENDLY_DRIVING.value),
    )
    if total == 0:
        return False

    mastered = await _count(
        db,
        select(func.count())
        .select_from(CompetencyProgress)
        .join(Competency, CompetencyProgress.competency_id == Competency.id)
        .where(
            CompetencyProgress.apprentice_id == user_id,
            CompetencyProgress.status == CompetencyStatus.MASTERED.value,
            Competency.category == CompetencyCategory.ECOFRIENDLY_DRIVING.value,
        ),
    )
    return mastered >= total


async def has_validated_sessions(db: AsyncSession, user_id: int) -> bool:
    """Ten sessions validated by this user as guide or instructor."""
    count = await _count(
        db,
        select(func.count())
        .select_from(DrivingSession)
        .where(DrivingSession.validator_id == user_id, DrivingSession.validation_date.is_not(None)),
    )
    return count >= VALIDATED_SESSIONS_THRESHOLD


async def has_completed_roadbook(db: AsyncSession, user_id: int) -> bool:
    count = await _count(
        db,
        select(func.count())
        .select_from(RoadBook)
        .where(RoadBook.apprentice_id == user_id, RoadBook.status == RoadBookStatus.COMPLETED.value),
    )
    return count > 0


CRITERIA_CHECKS: dict[BadgeCriteria, Callable[[AsyncSession, int], Awaitable[bool]]] = {
    BadgeCriteria.FIRST_SESSION: has_first_session,
    BadgeCriteria.COMPLETE_10_SESSIONS: has_completed_sessions,
    BadgeCriteria.NIGHT_DRIVING: has_night_driving,
    BadgeCriteria.HIGHWAY_DRIVING: has_highway_driving,
    BadgeCriteria.MASTER_PARKING: has_mastered_parking,
    BadgeCriteria.MASTER_ECO_DRIVING: has_mastered_eco_driving,
    BadgeCriteria.VALIDATE_10_SESSIONS: has_validated_sessions,
    BadgeCriteria.COMPLETE_ROADBOOK: has_completed_roadbook,
}


async def check_badge_criteria(db: AsyncSession, user_id: int, criteria: str) -> bool:
    """Evaluate a criteria tag for a user. Unknown tags never match."""
    try:
        tag = BadgeCriteria(criteria)
    except ValueError:
        logger.warning("Unknown badge criteria %r, treating as not met", criteria)
        return False
    return await CRITERIA_CHECKS[tag](db, user_id)
