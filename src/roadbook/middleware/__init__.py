"""Middleware registration."""

from fastapi import FastAPI

from roadbook.config import Settings
from roadbook.middleware.cors import setup_cors
from roadbook.middleware.error_handler import setup_error_handlers
from roadbook.middleware.logging import setup_logging
from roadbook.middleware.rate_limit import RateLimitMiddleware
from roadbook.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware.

    Starlette runs middleware in reverse-add order (last added = outermost).
    CORS is added last so its headers also cover 429 responses.
    """
    setup_logging(settings)
    setup_error_handlers(app, settings)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
