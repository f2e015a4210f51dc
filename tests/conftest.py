"""Shared test fixtures.

Every test gets its own SQLite database file with the full schema created
from the ORM metadata. The app's ``get_session`` dependency is overridden to
use it, so no Postgres or Redis is needed. Redis is never initialised,
which also disables rate limiting.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import date, datetime, timedelta, timezone

os.environ.setdefault("ROADBOOK_ENVIRONMENT", "test")
os.environ.setdefault("ROADBOOK_LOG_FORMAT", "console")
os.environ.setdefault("ROADBOOK_SEED_BADGES_ON_STARTUP", "false")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from roadbook.auth.jwt import create_access_token
from roadbook.auth.password import hash_password
from roadbook.config import get_settings
from roadbook.database import build_engine, get_session
from roadbook.db import models  # noqa: F401
from roadbook.db.base import Base
from roadbook.db.enums import UserRole
from roadbook.db.models import Badge, DrivingSession, User
from roadbook.main import create_app

TEST_PASSWORD = "Password123"


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Per-test SQLite database with all tables created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'roadbook.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for service-level tests."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against a fresh app bound to the test database."""
    app = create_app()

    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _override_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Data helpers
# ---------------------------------------------------------------------------


async def create_user(
    db: AsyncSession,
    email: str = "apprentice@example.com",
    role: UserRole = UserRole.APPRENTICE,
    password: str = TEST_PASSWORD,
    display_name: str = "Test User",
) -> User:
    """Insert a user and commit."""
    user = User(
        email=email,
        password_hash=hash_password(password),
        display_name=display_name,
        role=role.value,
    )
    db.add(user)
    await db.commit()
    return user


async def create_badge(
    db: AsyncSession,
    criteria: str,
    name: str | None = None,
    category: str = "BEGINNER",
) -> Badge:
    badge = Badge(
        name=name or criteria.replace("_", " ").title(),
        description=f"Badge for {criteria}",
        category=category,
        criteria=criteria,
    )
    db.add(badge)
    await db.commit()
    return badge


async def add_sessions(db: AsyncSession, apprentice_id: int, count: int, **fields) -> None:
    """Insert ``count`` driving sessions for an apprentice and commit."""
    start = datetime.now(timezone.utc) - timedelta(days=count)
    for i in range(count):
        began = start + timedelta(days=i)
        values = {
            "apprentice_id": apprentice_id,
            "date": date(began.year, began.month, began.day),
            "start_time": began,
            "end_time": began + timedelta(hours=1),
            "duration": 60,
            "distance": 25.0,
            "road_types": ["URBAN"],
        }
        values.update(fields)
        db.add(DrivingSession(**values))
    await db.commit()


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest_asyncio.fixture
async def apprentice(db_session) -> User:
    return await create_user(db_session)


@pytest_asyncio.fixture
async def admin(db_session) -> User:
    return await create_user(db_session, email="admin@example.com", role=UserRole.ADMIN, display_name="Admin")


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, apprentice: User) -> AsyncClient:
    """Client authenticated as an APPRENTICE."""
    client.headers.update(bearer(apprentice))
    return client


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient, admin: User) -> AsyncClient:
    """Client authenticated as an ADMIN."""
    client.headers.update(bearer(admin))
    return client
