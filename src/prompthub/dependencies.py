"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from prompthub.config import get_settings
from prompthub.gamification.catalog import BadgeCatalog, get_catalog
from prompthub.redis_client import get_optional_redis


async def get_optional_redis_dep() -> AsyncGenerator[object, None]:
    """Yield the Redis client, or None when Redis is not initialized."""
    yield get_optional_redis()


def get_badge_catalog() -> BadgeCatalog:
    """The process-wide badge catalog (overridable in tests)."""
    return get_catalog()


def get_tier_weights() -> dict[str, int]:
    return get_settings().tier_weights
