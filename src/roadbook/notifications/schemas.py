"""Notification API schemas."""

from __future__ import annotations

from datetime import datetime

from roadbook.schemas import CamelModel


class NotificationResponse(CamelModel):
    id: int
    type: str
    title: str
    message: str
    link_url: str | None = None
    is_read: bool
    created_at: datetime


class NotificationListResponse(CamelModel):
    notifications: list[NotificationResponse]
    total: int
    unread_count: int
    page: int
    limit: int


class UnreadCountResponse(CamelModel):
    count: int


class CountResponse(CamelModel):
    message: str
    count: int
