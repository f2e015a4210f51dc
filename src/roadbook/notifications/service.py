"""Notification creation, read state and housekeeping.

Notifications are:
1. Persisted in the database
2. Pushed to the user via Redis pub/sub on ``ws:user:{user_id}`` when a client is supplied

Types are the values of ``roadbook.db.enums.NotificationType``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from roadbook.config import get_settings
from roadbook.db.enums import NotificationType
from roadbook.db.models import Notification
from roadbook.errors import AuthorizationError, NotFoundError, ValidationError
from roadbook.redis_client import publish_json

logger = logging.getLogger(__name__)

VALID_TYPES = {t.value for t in NotificationType}


def user_channel(user_id: int) -> str:
    return f"ws:user:{user_id}"


async def create_notification(
    db: AsyncSession,
    user_id: int,
    type_: NotificationType | str,
    title: str,
    message: str,
    link_url: str | None = None,
    redis: Any | None = None,
) -> Notification:
    """Persist a notification and push it to the user's channel."""
    type_value = type_.value if isinstance(type_, NotificationType) else type_
    if type_value not in VALID_TYPES:
        msg = f"Invalid notification type: {type_value}"
        raise ValidationError(msg)

    notification = Notification(
        user_id=user_id,
        type=type_value,
        title=title,
        message=message,
        link_url=link_url,
        is_read=False,
        created_at=datetime.now(timezone.utc),
    )
    db.add(notification)
    await db.flush()

    if redis is not None:
        await publish_json(
            redis,
            user_channel(user_id),
            {"event": "notification", "data": notification.as_payload()},
        )

    return notification


async def create_notification_for_users(
    db: AsyncSession,
    user_ids: list[int],
    type_: NotificationType | str,
    title: str,
    message: str,
    link_url: str | None = None,
    redis: Any | None = None,
) -> int:
    """Fan a notification out to several users. Returns number created."""
    for uid in user_ids:
        await create_notification(db, uid, type_, title, message, link_url, redis=redis)
    return len(user_ids)


# ---------------------------------------------------------------------------
# Typed helpers
# ---------------------------------------------------------------------------


async def notify_session_reminder(
    db: AsyncSession,
    user_id: int,
    session_id: int,
    session_date: datetime,
    session_title: str,
    redis: Any | None = None,
) -> Notification:
    formatted = session_date.strftime("%A %d %B %Y at %H:%M")
    return await create_notification(
        db,
        user_id,
        NotificationType.SESSION_REMINDER,
        "Session reminder",
        f"Reminder: you have a driving session planned on {formatted} ({session_title})",
        f"/sessions/{session_id}",
        redis=redis,
    )


async def notify_competency_mastered(
    db: AsyncSession,
    user_id: int,
    competency_id: int,
    competency_name: str,
    roadbook_id: int,
    redis: Any | None = None,
) -> Notification:
    return await create_notification(
        db,
        user_id,
        NotificationType.COMPETENCY_MASTERED,
        "Competency mastered",
        f'Congratulations! You mastered the competency "{competency_name}"',
        f"/roadbooks/{roadbook_id}/competencies/{competency_id}",
        redis=redis,
    )


async def notify_badge_earned(
    db: AsyncSession,
    user_id: int,
    badge_name: str,
    redis: Any | None = None,
) -> Notification:
    return await create_notification(
        db,
        user_id,
        NotificationType.BADGE_EARNED,
        "New badge earned!",
        f'You earned the badge "{badge_name}"',
        "/profile/badges",
        redis=redis,
    )


async def notify_session_validation_request(
    db: AsyncSession,
    validator_id: int,
    session_id: int,
    apprentice_name: str,
    redis: Any | None = None,
) -> Notification:
    return await create_notification(
        db,
        validator_id,
        NotificationType.SESSION_VALIDATION,
        "Validation request",
        f"{apprentice_name} asked you to validate a driving session",
        f"/sessions/{session_id}/validate",
        redis=redis,
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_user_notifications(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    limit: int = 20,
    include_read: bool = True,
) -> tuple[list[Notification], int, int]:
    """Get a page of notifications, newest first.

    Returns ``(items, total, unread_count)``; ``total`` honours ``include_read``.
    """
    conditions = [Notification.user_id == user_id]
    if not include_read:
        conditions.append(Notification.is_read.is_(False))

    total_result = await db.execute(select(func.count()).select_from(Notification).where(*conditions))
    total = total_result.scalar_one()

    offset = (page - 1) * limit
    result = await db.execute(
        select(Notification)
        .where(*conditions)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(offset)
        .limit(limit)
    )
    notifications = list(result.scalars().all())

    unread = await get_unread_count(db, user_id)
    return notifications, total, unread


async def get_unread_count(db: AsyncSession, user_id: int) -> int:
    """Get count of unread notifications."""
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
    )
    return result.scalar_one()


async def _get_owned(db: AsyncSession, user_id: int, notification_id: int, action: str) -> Notification:
    notification = await db.get(Notification, notification_id)
    if notification is None:
        msg = "Notification not found"
        raise NotFoundError(msg)
    if notification.user_id != user_id:
        msg = f"You do not have permission to {action} this notification"
        raise AuthorizationError(msg)
    return notification


# ---------------------------------------------------------------------------
# Read state
# ---------------------------------------------------------------------------


async def mark_as_read(db: AsyncSession, user_id: int, notification_id: int) -> Notification:
    """Mark one of the user's notifications as read.

    Raises:
        NotFoundError: No such notification.
        AuthorizationError: It belongs to another user.
    """
    notification = await _get_owned(db, user_id, notification_id, "access")
    notification.is_read = True
    await db.flush()
    return notification


async def mark_all_as_read(db: AsyncSession, user_id: int) -> int:
    """Mark all unread notifications as read. Returns count updated."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    await db.flush()
    return result.rowcount


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------


async def delete_notification(db: AsyncSession, user_id: int, notification_id: int) -> None:
    """Delete one of the user's notifications (same 404/403 rules as mark_as_read)."""
    notification = await _get_owned(db, user_id, notification_id, "delete")
    await db.delete(notification)
    await db.flush()


async def delete_all_notifications(db: AsyncSession, user_id: int) -> int:
    """Delete every notification of the user. Returns count deleted."""
    result = await db.execute(delete(Notification).where(Notification.user_id == user_id))
    await db.flush()
    return result.rowcount


async def cleanup_old_notifications(db: AsyncSession, days_old: int | None = None) -> int:
    """Delete READ notifications older than ``days_old`` days, across all users."""
    if days_old is None:
        days_old = get_settings().notification_cleanup_default_days
    cutoff = datetime.now(timezone.utc) - timedelta(days=days_old)

    result = await db.execute(
        delete(Notification).where(
            Notification.is_read.is_(True),
            Notification.created_at < cutoff,
        ).execution_options(synchronize_session="fetch")
    )
    await db.flush()
    logger.info("Cleaned up %d read notifications older than %d days", result.rowcount, days_old)
    return result.rowcount


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


async def aggregate_similar_notifications(db: AsyncSession, user_id: int) -> int:
    """Collapse bursts of same-type unread notifications.

    Unread notifications from the aggregation window are grouped by type. Any
    group larger than the threshold keeps only its newest entry, retitled
    with the group size; the others are deleted. Returns the number deleted.
    """
    settings = get_settings()
    since = datetime.now(timezone.utc) - timedelta(hours=settings.notification_aggregate_window_hours)

    result = await db.execute(
        select(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
            Notification.created_at >= since,
        )
        .order_by(Notification.created_at.desc(), Notification.id.desc())
    )

    by_type: dict[str, list[Notification]] = defaultdict(list)
    for notification in result.scalars():
        by_type[notification.type].append(notification)

    deleted = 0
    for group in by_type.values():
        count = len(group)
        if count <= settings.notification_aggregate_threshold:
            continue

        newest, rest = group[0], group[1:]
        newest.title = f"{count} {newest.title}"
        newest.message = f"You have {count} notifications of this type"

        await db.execute(delete(Notification).where(Notification.id.in_([n.id for n in rest])))
        deleted += len(rest)

    await db.flush()
    if deleted:
        logger.info("Aggregated notifications for user %d: %d removed", user_id, deleted)
    return deleted
