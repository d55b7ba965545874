"""Badge arq worker: consumes activity events from the Redis Stream outbox.

Every event names the users whose stats it changes; each is re-evaluated
in its own session. Messages are acknowledged whether or not evaluation
succeeds, so a poison message never blocks the stream. Badge evaluation
is idempotent, so a user missed here is caught by their next activity.
"""

from __future__ import annotations

import asyncio
import logging

import redis.asyncio as aioredis

from prompthub.config import get_settings
from prompthub.database import close_db, get_session_factory, init_db
from prompthub.gamification.badge_service import NewBadge, trigger_badge_check
from prompthub.gamification.catalog import BadgeCatalog, get_catalog
from prompthub.gamification.events import parse_activity

logger = logging.getLogger(__name__)


async def badge_worker_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize DB + Redis, load the catalog and create the consumer group."""
    settings = get_settings()
    await init_db(settings.database_url)

    redis_client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    try:
        await redis_client.xgroup_create(
            settings.activity_stream, settings.activity_consumer_group, id="0", mkstream=True
        )
    except aioredis.ResponseError as e:
        if "BUSYGROUP" not in str(e):
            raise

    ctx["redis"] = redis_client
    ctx["catalog"] = get_catalog()
    logger.info("Badge worker started (stream=%s)", settings.activity_stream)


async def badge_worker_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    redis_client: aioredis.Redis | None = ctx.get("redis")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("Badge worker shut down")


async def process_activity_message(
    redis_client: aioredis.Redis,
    catalog: BadgeCatalog,
    msg_id: str,
    fields: dict[str, str],
) -> dict[int, list[NewBadge]]:
    """Evaluate every affected user for one stream entry, then XACK it."""
    settings = get_settings()
    awarded: dict[int, list[NewBadge]] = {}
    try:
        event = parse_activity(fields)
        if event is None:
            logger.warning("Dropping malformed activity message %s", msg_id)
        else:
            session_factory = get_session_factory()
            for user_id in event.affected_user_ids():
                async with session_factory() as db:
                    results = await trigger_badge_check(db, redis_client, user_id, catalog)
                if results:
                    awarded[user_id] = results
                    logger.info(
                        "Awarded badges %s to user %s (event=%s, msg=%s)",
                        [r.badge_id for r in results], user_id, event.type, msg_id,
                    )
    except Exception:
        logger.exception("Failed to process activity message %s", msg_id)

    try:
        await redis_client.xack(settings.activity_stream, settings.activity_consumer_group, msg_id)
    except aioredis.RedisError:
        logger.exception("Failed to ack activity message %s", msg_id)
    return awarded


async def consume_activity_events(ctx: dict) -> None:  # type: ignore[type-arg]
    """Main consumer loop. Runs until the job is aborted."""
    settings = get_settings()
    redis_client: aioredis.Redis = ctx["redis"]
    catalog: BadgeCatalog = ctx["catalog"]

    while True:
        try:
            events = await redis_client.xreadgroup(
                groupname=settings.activity_consumer_group,
                consumername=settings.activity_consumer_name,
                streams={settings.activity_stream: ">"},
                count=100,
                block=5000,
            )
        except aioredis.ResponseError as e:
            logger.error("XREADGROUP error: %s", e)
            await asyncio.sleep(1)
            continue

        for _stream, messages in events or []:
            for msg_id, fields in messages:
                await process_activity_message(redis_client, catalog, msg_id, fields)


class BadgeWorkerSettings:
    """arq worker settings for the badge consumer."""

    functions = [consume_activity_events]
    on_startup = badge_worker_startup
    on_shutdown = badge_worker_shutdown
    max_jobs = 4
    job_timeout = 0  # consume_activity_events runs forever
    allow_abort_jobs = True
