"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from prompthub.config import get_settings
from prompthub.database import close_db, init_db
from prompthub.gamification.catalog import get_catalog
from prompthub.gamification.router import router as badges_router
from prompthub.health.router import router as health_router
from prompthub.leaderboard.ranking import validate_tier_weights
from prompthub.leaderboard.router import router as leaderboard_router
from prompthub.middleware import setup_middleware
from prompthub.redis_client import close_redis, init_redis

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle.

    A malformed badge catalog or tier weight table aborts start-up.
    """
    settings = get_settings()
    catalog = get_catalog()
    validate_tier_weights(settings.tier_weights)
    logger.info("badge_catalog_loaded", badges=len(catalog))

    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Prompt Hub Badge API",
        description="Badge evaluation and leaderboard engine for Prompt Hub",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(leaderboard_router)
    app.include_router(badges_router)

    return app


app = create_app()
