"""Tests for /api/notifications/*."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from httpx import AsyncClient
from sqlalchemy import select

from roadbook.db.models import Notification
from tests.conftest import bearer, create_user


async def _seed(session_factory, user_id: int, count: int = 1, **fields) -> list[int]:
    values = {"type": "SESSION_REMINDER", "title": "Session reminder", "message": "Soon", **fields}
    async with session_factory() as s:
        rows = [Notification(user_id=user_id, **values) for _ in range(count)]
        s.add_all(rows)
        await s.commit()
        return [n.id for n in rows]


async def _remaining(session_factory, user_id: int) -> list[Notification]:
    async with session_factory() as s:
        result = await s.execute(select(Notification).where(Notification.user_id == user_id))
        return list(result.scalars().all())


class TestListing:
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/notifications")
        assert response.status_code == 401

    async def test_list_and_unread_count(self, authed_client: AsyncClient, apprentice, session_factory):
        await _seed(session_factory, apprentice.id, 3)
        await _seed(session_factory, apprentice.id, 1, is_read=True)

        response = await authed_client.get("/api/notifications", params={"limit": 2})
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 4
        assert data["unreadCount"] == 3
        assert data["page"] == 1
        assert data["limit"] == 2
        assert len(data["notifications"]) == 2
        assert set(data["notifications"][0]) >= {"id", "type", "title", "message", "linkUrl", "isRead", "createdAt"}

        unread_only = await authed_client.get("/api/notifications", params={"includeRead": "false"})
        assert unread_only.json()["total"] == 3

        count = await authed_client.get("/api/notifications/unread-count")
        assert count.json() == {"count": 3}

    async def test_limit_is_capped(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/notifications", params={"limit": 101})
        assert response.status_code == 400


class TestReadState:
    async def test_mark_one(self, authed_client: AsyncClient, apprentice, session_factory):
        [notification_id] = await _seed(session_factory, apprentice.id)

        response = await authed_client.put(f"/api/notifications/{notification_id}/read")
        assert response.status_code == 200
        assert response.json()["isRead"] is True
        assert (await _remaining(session_factory, apprentice.id))[0].is_read is True

    async def test_mark_missing(self, authed_client: AsyncClient):
        response = await authed_client.put("/api/notifications/404/read")
        assert response.status_code == 404
        assert response.json()["message"] == "Notification not found"

    async def test_mark_other_users(self, authed_client: AsyncClient, db_session, session_factory):
        other = await create_user(db_session, email="other@example.com")
        [notification_id] = await _seed(session_factory, other.id)

        response = await authed_client.put(f"/api/notifications/{notification_id}/read")
        assert response.status_code == 403

    async def test_mark_all(self, authed_client: AsyncClient, apprentice, session_factory):
        await _seed(session_factory, apprentice.id, 2)

        response = await authed_client.put("/api/notifications/read-all")
        assert response.status_code == 200
        assert response.json() == {"message": "2 notifications marked as read", "count": 2}


class TestDeletion:
    async def test_delete_one(self, authed_client: AsyncClient, apprentice, session_factory):
        [notification_id] = await _seed(session_factory, apprentice.id)

        response = await authed_client.delete(f"/api/notifications/{notification_id}")
        assert response.status_code == 200
        assert response.json() == {"message": "Notification deleted successfully"}
        assert await _remaining(session_factory, apprentice.id) == []

    async def test_delete_other_users(self, authed_client: AsyncClient, db_session, session_factory):
        other = await create_user(db_session, email="other@example.com")
        [notification_id] = await _seed(session_factory, other.id)

        response = await authed_client.delete(f"/api/notifications/{notification_id}")
        assert response.status_code == 403
        assert len(await _remaining(session_factory, other.id)) == 1

    async def test_delete_all(self, authed_client: AsyncClient, apprentice, session_factory):
        await _seed(session_factory, apprentice.id, 3)

        response = await authed_client.delete("/api/notifications")
        assert response.status_code == 200
        assert response.json() == {"message": "3 notifications deleted", "count": 3}


class TestHousekeeping:
    async def test_aggregate(self, authed_client: AsyncClient, apprentice, session_factory):
        await _seed(session_factory, apprentice.id, 5)

        response = await authed_client.post("/api/notifications/aggregate")
        assert response.status_code == 200
        assert response.json()["count"] == 4

        [survivor] = await _remaining(session_factory, apprentice.id)
        assert survivor.title == "5 Session reminder"

    async def test_cleanup_requires_admin(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/notifications/cleanup")
        assert response.status_code == 403

    async def test_cleanup(self, client: AsyncClient, apprentice, admin, session_factory):
        old = datetime.now(timezone.utc) - timedelta(days=45)
        await _seed(session_factory, apprentice.id, 2, is_read=True, created_at=old)
        await _seed(session_factory, apprentice.id, 1, created_at=old)

        response = await client.post("/api/notifications/cleanup", headers=bearer(admin))
        assert response.status_code == 200
        assert response.json() == {"message": "2 old notifications deleted", "count": 2}
        assert len(await _remaining(session_factory, apprentice.id)) == 1

    async def test_cleanup_custom_age(self, client: AsyncClient, apprentice, admin, session_factory):
        await _seed(
            session_factory,
            apprentice.id,
            1,
            is_read=True,
            created_at=datetime.now(timezone.utc) - timedelta(days=3),
        )

        response = await client.post("/api/notifications/cleanup", params={"daysOld": 1}, headers=bearer(admin))
        assert response.json()["count"] == 1
