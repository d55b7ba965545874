"""Liveness, readiness and version endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from prompthub.config import get_settings
from prompthub.database import get_session
from prompthub.gamification.catalog import get_catalog
from prompthub.redis_client import get_redis

router = APIRouter()


async def _check_database(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except Exception as exc:
        return f"error: {exc}"
    return "ok"


async def _check_redis() -> str:
    try:
        await get_redis().ping()
    except Exception as exc:
        return f"error: {exc}"
    return "ok"


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe.

    Redis only carries notifications, the outbox and rate limits, so a
    Redis outage reports ``degraded`` rather than failing the probe.
    """
    checks: dict[str, object] = {
        "database": await _check_database(db),
        "redis": await _check_redis(),
        "badges": len(get_catalog()),
    }
    all_ok = checks["database"] == "ok" and checks["redis"] == "ok"
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"version": settings.app_version, "environment": settings.environment}
