"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from roadbook.auth.router import router as auth_router
from roadbook.badges.router import router as badges_router
from roadbook.badges.seed import seed_badges
from roadbook.config import get_settings
from roadbook.database import close_db, get_session, init_db
from roadbook.health.router import router as health_router
from roadbook.middleware import setup_middleware
from roadbook.notifications.router import router as notifications_router
from roadbook.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    if settings.seed_badges_on_startup:
        try:
            async for db in get_session():
                await seed_badges(db)
                break
        except SQLAlchemyError:
            logger.warning("Badge seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="RoadBook API",
        description="Backend API for RoadBook, the learner-driver logbook",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(badges_router)
    app.include_router(notifications_router)

    return app


app = create_app()
