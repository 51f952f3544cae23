"""
FastAPI application factory.

Creates the app with a lifespan-managed AIService so provider adapters are
initialized once at startup and shared across requests.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from shopmate import __version__
from shopmate.api.middleware import LatencyMiddleware
from shopmate.api.routes import router
from shopmate.config import CORS_ORIGINS, HEALTH_CHECK_INTERVAL, get_logger
from shopmate.services import AIService

logger = get_logger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Initialize the AI service at startup, stop monitoring at shutdown."""
    logger.info("Starting Shopmate API...")

    # Tests install their own service before startup
    service = getattr(app.state, "service", None)
    if service is None:
        service = AIService()
        app.state.service = service

    try:
        await service.initialize()
    except Exception:
        # Requests lazily retry initialization
        logger.exception("AI service initialization failed")
    else:
        active = service.get_active_provider()
        logger.info("AI service ready (active provider: %s)", active.value if active else None)

    service.start_health_monitoring(HEALTH_CHECK_INTERVAL)

    logger.info("Shopmate API ready")
    yield
    await service.stop_health_monitoring()
    logger.info("Shopmate API shutting down")


def create_app() -> FastAPI:
    """Application factory."""
    app = FastAPI(
        title="Shopmate",
        description="AI product recommendation API with provider fallback",
        version=__version__,
        lifespan=_lifespan,
    )
    app.add_middleware(LatencyMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.include_router(router)
    return app
