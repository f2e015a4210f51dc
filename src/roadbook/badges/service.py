"""Badge award service.

Duplicate awards are prevented by the UNIQUE(user_id, badge_id) constraint
alone: the insert runs inside a savepoint and an IntegrityError becomes
AlreadyAwarded. Each successful award emits one BADGE_EARNED notification.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from roadbook.badges.criteria import check_badge_criteria
from roadbook.db.models import Badge, User, UserBadge
from roadbook.errors import AlreadyAwarded, ConflictError, NotFoundError
from roadbook.notifications.service import notify_badge_earned

logger = logging.getLogger(__name__)

LEADERBOARD_RECENT_BADGES = 5


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def list_badges(db: AsyncSession) -> list[tuple[Badge, int]]:
    """All badges ordered by name, each with its number of holders."""
    holders = func.count(UserBadge.id).label("holders")
    result = await db.execute(
        select(Badge, holders)
        .outerjoin(UserBadge, UserBadge.badge_id == Badge.id)
        .group_by(Badge.id)
        .order_by(Badge.name)
    )
    return [(row.Badge, row.holders) for row in result]


async def get_badge(db: AsyncSession, badge_id: int) -> Badge:
    """Fetch a badge. Raises NotFoundError."""
    badge = await db.get(Badge, badge_id)
    if badge is None:
        msg = "Badge not found"
        raise NotFoundError(msg)
    return badge


async def get_badges_by_category(db: AsyncSession, category: str) -> list[Badge]:
    result = await db.execute(select(Badge).where(Badge.category == category).order_by(Badge.name))
    return list(result.scalars().all())


async def get_user_badges(db: AsyncSession, user_id: int) -> list[UserBadge]:
    """A user's awarded badges, newest first."""
    result = await db.execute(
        select(UserBadge)
        .where(UserBadge.user_id == user_id)
        .order_by(UserBadge.awarded_at.desc(), UserBadge.id.desc())
    )
    return list(result.scalars().all())


async def get_leaderboard(db: AsyncSession, limit: int = 10) -> list[dict[str, Any]]:
    """Users ranked by number of badges, each with their most recent badges."""
    badge_count = func.count(UserBadge.id).label("badge_count")
    result = await db.execute(
        select(User.id, User.display_name, badge_count)
        .outerjoin(UserBadge, UserBadge.user_id == User.id)
        .group_by(User.id, User.display_name)
        .order_by(badge_count.desc(), User.id)
        .limit(limit)
    )
    ranked = result.all()

    entries = []
    for rank, row in enumerate(ranked, start=1):
        recent = await db.execute(
            select(UserBadge)
            .where(UserBadge.user_id == row.id)
            .order_by(UserBadge.awarded_at.desc(), UserBadge.id.desc())
            .limit(LEADERBOARD_RECENT_BADGES)
        )
        entries.append({
            "rank": rank,
            "user_id": row.id,
            "display_name": row.display_name,
            "badge_count": row.badge_count,
            "recent_badges": [
                {
                    "name": ub.badge.name,
                    "image_url": ub.badge.image_url,
                    "category": ub.badge.category,
                    "awarded_at": ub.awarded_at,
                }
                for ub in recent.scalars()
            ],
        })
    return entries


# ---------------------------------------------------------------------------
# Award / revoke
# ---------------------------------------------------------------------------


async def award_badge(
    db: AsyncSession,
    user_id: int,
    badge_id: int,
    redis: object | None = None,
) -> UserBadge:
    """Award a badge to a user.

    Raises:
        NotFoundError: Unknown user or badge.
        AlreadyAwarded: The user already holds the badge.
    """
    if await db.get(User, user_id) is None:
        msg = "User not found"
        raise NotFoundError(msg)
    badge = await get_badge(db, badge_id)

    user_badge = UserBadge(
        user_id=user_id,
        badge_id=badge.id,
        badge=badge,
        awarded_at=datetime.now(timezone.utc),
    )
    try:
        async with db.begin_nested():
            db.add(user_badge)
    except IntegrityError as e:
        raise AlreadyAwarded from e

    await notify_badge_earned(db, user_id, badge.name, redis=redis)
    logger.info("Awarded badge %s to user %d", badge.name, user_id)
    return user_badge


async def revoke_badge(db: AsyncSession, user_id: int, badge_id: int) -> int:
    """Remove a badge from a user. Returns rows deleted (0 is not an error)."""
    result = await db.execute(
        delete(UserBadge).where(UserBadge.user_id == user_id, UserBadge.badge_id == badge_id)
    )
    await db.flush()
    return result.rowcount


async def check_and_award_badges(
    db: AsyncSession,
    user_id: int,
    redis: object | None = None,
) -> list[UserBadge]:
    """Evaluate every badge the user does not hold and award the satisfied ones.

    Safe to call repeatedly; a badge awarded concurrently by another caller
    is skipped.
    """
    if await db.get(User, user_id) is None:
        msg = "User not found"
        raise NotFoundError(msg)

    held = set(
        (await db.execute(select(UserBadge.badge_id).where(UserBadge.user_id == user_id))).scalars()
    )
    badges = (await db.execute(select(Badge).order_by(Badge.id))).scalars().all()

    awarded: list[UserBadge] = []
    for badge in badges:
        if badge.id in held:
            continue
        if not await check_badge_criteria(db, user_id, badge.criteria):
            continue
        try:
            awarded.append(await award_badge(db, user_id, badge.id, redis=redis))
        except AlreadyAwarded:
            logger.info("Badge %s already awarded to user %d, skipping", badge.name, user_id)

    return awarded


# ---------------------------------------------------------------------------
# Admin CRUD
# ---------------------------------------------------------------------------


async def create_badge(
    db: AsyncSession,
    name: str,
    description: str,
    category: str,
    criteria: str,
    image_url: str | None = None,
) -> Badge:
    badge = Badge(
        name=name,
        description=description,
        category=category,
        criteria=criteria,
        image_url=image_url,
        created_at=datetime.now(timezone.utc),
    )
    try:
        async with db.begin_nested():
            db.add(badge)
    except IntegrityError as e:
        msg = "Badge with this name already exists"
        raise ConflictError(msg) from e
    return badge


async def update_badge(db: AsyncSession, badge_id: int, **changes: Any) -> Badge:
    """Apply the given field changes to a badge. ``None`` values are ignored."""
    badge = await get_badge(db, badge_id)
    for field, value in changes.items():
        if value is not None:
            setattr(badge, field, value)
    try:
        async with db.begin_nested():
            await db.flush()
    except IntegrityError as e:
        msg = "Badge with this name already exists"
        raise ConflictError(msg) from e
    return badge


async def delete_badge(db: AsyncSession, badge_id: int) -> None:
    """Delete a badge and every award of it."""
    badge = await get_badge(db, badge_id)
    await db.execute(delete(UserBadge).where(UserBadge.badge_id == badge_id))
    await db.delete(badge)
    await db.flush()
