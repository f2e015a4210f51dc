"""Notification API endpoints: /api/notifications/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from roadbook.auth.dependencies import Identity, get_current_identity, require_admin
from roadbook.database import get_session
from roadbook.notifications.schemas import (
    CountResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from roadbook.notifications.service import (
    aggregate_similar_notifications,
    cleanup_old_notifications,
    delete_all_notifications,
    delete_notification,
    get_unread_count,
    get_user_notifications,
    mark_all_as_read,
    mark_as_read,
)
from roadbook.schemas import MessageResponse

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    include_read: bool = Query(True, alias="includeRead"),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
):
    """List the caller's notifications (paginated)."""
    items, total, unread = await get_user_notifications(db, identity.user_id, page, limit, include_read)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in items],
        total=total,
        unread_count=unread,
        page=page,
        limit=limit,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
):
    return UnreadCountResponse(count=await get_unread_count(db, identity.user_id))


@router.put("/read-all", response_model=CountResponse)
async def read_all(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
):
    """Mark all notifications as read."""
    count = await mark_all_as_read(db, identity.user_id)
    await db.commit()
    return CountResponse(message=f"{count} notifications marked as read", count=count)


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def read_one(
    notification_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
):
    """Mark a notification as read."""
    notification = await mark_as_read(db, identity.user_id, notification_id)
    await db.commit()
    return NotificationResponse.model_validate(notification)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_one(
    notification_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
):
    await delete_notification(db, identity.user_id, notification_id)
    await db.commit()
    return MessageResponse(message="Notification deleted successfully")


@router.delete("", response_model=CountResponse)
async def delete_all(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
):
    count = await delete_all_notifications(db, identity.user_id)
    await db.commit()
    return CountResponse(message=f"{count} notifications deleted", count=count)


@router.post("/aggregate", response_model=CountResponse)
async def aggregate(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
):
    """Collapse recent bursts of same-type notifications for the caller."""
    count = await aggregate_similar_notifications(db, identity.user_id)
    await db.commit()
    return CountResponse(message=f"{count} notifications aggregated", count=count)


@router.post("/cleanup", response_model=CountResponse)
async def cleanup(
    days_old: int | None = Query(None, ge=0, alias="daysOld"),
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Delete old read notifications across all users (admin)."""
    count = await cleanup_old_notifications(db, days_old)
    await db.commit()
    return CountResponse(message=f"{count} old notifications deleted", count=count)
