"""Badge evaluation service: awards and upgrades badges from fresh stats.

Duplicate awards are prevented by UNIQUE(user_id, badge_id) alone. A
concurrent evaluation of the same user that loses the insert race falls
back to the upgrade path, so exactly one row survives.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from prompthub.db.models import UserBadge
from prompthub.gamification.catalog import BadgeCatalog, BadgeDefinition, get_catalog
from prompthub.gamification.criteria import BadgeCategory, BadgeTier
from prompthub.gamification.exceptions import StatsUnavailableError, UserNotFoundError
from prompthub.gamification.stats_service import (
    UserStats,
    compute_user_stats,
    get_stats_snapshot,
    refresh_user_stats,
)
from prompthub.gamification.time_utils import as_utc, utcnow
from prompthub.gamification.validators import criteria_met, progress_snapshot, progress_toward

logger = logging.getLogger(__name__)

BADGE_EARNED_CHANNEL = "pubsub:badge_earned"


class NewBadge(BaseModel):
    """A badge awarded or upgraded by one evaluation."""

    badge_id: str
    name: str
    icon: str
    tier: BadgeTier
    level: int
    level_name: str | None = None
    is_new: bool
    previous_level: int | None = None
    earned_at: datetime


class AwardedBadgeView(BaseModel):
    """A held badge joined with its definition and live progress."""

    badge_id: str
    name: str
    description: str
    icon: str
    category: BadgeCategory
    tier: BadgeTier
    level: int
    level_name: str | None = None
    max_level: int
    earned_at: datetime
    progress: float | None = None


def highest_tier(awards: Iterable[AwardedBadgeView]) -> BadgeTier | None:
    """The strongest tier among held badges, or None when there are none."""
    tiers = [a.tier for a in awards]
    if not tiers:
        return None
    return max(tiers, key=lambda t: t.rank)


class BadgeEngine:
    """Evaluates the catalog against a user's stats and persists results."""

    def __init__(self, db: AsyncSession, redis: object, catalog: BadgeCatalog | None = None) -> None:
        self.db = db
        self.redis = redis
        self.catalog = catalog if catalog is not None else get_catalog()

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    async def check_user_badges(self, user_id: int, *, now: datetime | None = None) -> list[NewBadge]:
        """Award newly satisfied badges and upgrade leveled ones.

        Returns only this call's awards and upgrades; an immediate second
        call returns [].
        """
        now = now or utcnow()
        try:
            stats = await refresh_user_stats(self.db, user_id)
        except (StatsUnavailableError, UserNotFoundError) as e:
            logger.warning("Badge check skipped for user %s: %s", user_id, e)
            return []

        held = await self._held_levels(user_id)
        results: list[NewBadge] = []
        for badge in self.catalog:
            level = self.satisfied_level(badge, stats, now=now)
            if level == 0 or held.get(badge.id, 0) >= level:
                continue
            result = await self._persist(user_id, badge, level, held.get(badge.id), stats, now)
            if result is not None:
                results.append(result)

        for result in results:
            await self._emit_badge_earned(user_id, result)

        if results:
            logger.info("User %s earned %s", user_id, [f"{r.badge_id}:{r.level}" for r in results])
        return results

    def satisfied_level(self, badge: BadgeDefinition, stats: UserStats, *, now: datetime) -> int:
        """Highest satisfied level (1 for plain badges), 0 when unmet.

        A validator error is logged and counts as unmet for this badge only.
        """
        best = 0
        try:
            for level, criteria in self.catalog.level_criteria(badge):
                if criteria_met(criteria, stats, now=now):
                    best = level
        except Exception:
            logger.exception("Validator failed for badge %s (user %s)", badge.id, stats.user_id)
            return 0
        return best

    async def _held_levels(self, user_id: int) -> dict[str, int]:
        result = await self.db.execute(
            select(UserBadge.badge_id, UserBadge.level).where(UserBadge.user_id == user_id)
        )
        return {row.badge_id: row.level for row in result}

    def _progress(self, badge: BadgeDefinition, level: int, stats: UserStats, now: datetime) -> dict:
        criteria = dict(self.catalog.level_criteria(badge))[level]
        return {"level": level, **progress_snapshot(criteria, stats, now=now)}

    async def _persist(
        self,
        user_id: int,
        badge: BadgeDefinition,
        level: int,
        previous_level: int | None,
        stats: UserStats,
        now: datetime,
    ) -> NewBadge | None:
        progress = self._progress(badge, level, stats, now)
        if previous_level is not None:
            return await self._upgrade(user_id, badge, level, previous_level, progress, now)

        self.db.add(
            UserBadge(user_id=user_id, badge_id=badge.id, level=level, earned_at=now, progress=progress)
        )
        try:
            await self.db.flush()
            await self.db.commit()
        except IntegrityError:
            # Concurrent evaluation inserted first; continue as an upgrade.
            await self.db.rollback()
            stored = (
                await self.db.execute(
                    select(UserBadge.level).where(UserBadge.user_id == user_id, UserBadge.badge_id == badge.id)
                )
            ).scalar_one_or_none()
            if stored is None or stored >= level:
                return None
            return await self._upgrade(user_id, badge, level, stored, progress, now)

        return self._new_badge(badge, level, now, is_new=True)

    async def _upgrade(
        self,
        user_id: int,
        badge: BadgeDefinition,
        level: int,
        previous_level: int,
        progress: dict,
        now: datetime,
    ) -> NewBadge | None:
        """Raise a held badge's level. Guarded so levels never decrease."""
        result = await self.db.execute(
            update(UserBadge)
            .where(
                UserBadge.user_id == user_id,
                UserBadge.badge_id == badge.id,
                UserBadge.level < level,
            )
            .values(level=level, earned_at=now, progress=progress)
        )
        await self.db.commit()
        if result.rowcount == 0:
            return None
        return self._new_badge(badge, level, now, is_new=False, previous_level=previous_level)

    def _new_badge(
        self,
        badge: BadgeDefinition,
        level: int,
        now: datetime,
        *,
        is_new: bool,
        previous_level: int | None = None,
    ) -> NewBadge:
        lvl = badge.level_info(level)
        return NewBadge(
            badge_id=badge.id,
            name=badge.name,
            icon=badge.icon,
            tier=self.catalog.tier_for(badge.id, level) or badge.tier,
            level=level,
            level_name=lvl.name if lvl else None,
            is_new=is_new,
            previous_level=previous_level,
            earned_at=now,
        )

    async def _emit_badge_earned(self, user_id: int, badge: NewBadge) -> None:
        """Push a badge-earned notification via Redis pub/sub. Best-effort."""
        if self.redis is None:
            return
        try:
            await self.redis.publish(  # type: ignore[attr-defined]
                BADGE_EARNED_CHANNEL,
                json.dumps({
                    "user_id": user_id,
                    "badge_id": badge.badge_id,
                    "badge_name": badge.name,
                    "tier": badge.tier.value,
                    "level": badge.level,
                    "is_new": badge.is_new,
                }),
            )
        except Exception:
            logger.warning("Failed to publish badge_earned notification", exc_info=True)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_user_badges(self, user_id: int, *, now: datetime | None = None) -> list[AwardedBadgeView]:
        """Held badges, most recently earned first, with progress to the next level."""
        now = now or utcnow()
        result = await self.db.execute(
            select(UserBadge.badge_id, UserBadge.level, UserBadge.earned_at)
            .where(UserBadge.user_id == user_id)
            .order_by(UserBadge.earned_at.desc(), UserBadge.badge_id)
        )
        rows = result.all()
        if not rows:
            return []

        stats = await get_stats_snapshot(self.db, user_id)
        if stats is None:
            try:
                stats = await compute_user_stats(self.db, user_id)
            except UserNotFoundError:
                stats = None

        views: list[AwardedBadgeView] = []
        for row in rows:
            badge = self.catalog.get(row.badge_id)
            if badge is None:
                logger.debug("Skipping retired badge %s for user %s", row.badge_id, user_id)
                continue
            lvl = badge.level_info(row.level)
            views.append(
                AwardedBadgeView(
                    badge_id=badge.id,
                    name=badge.name,
                    description=badge.description,
                    icon=badge.icon,
                    category=badge.category,
                    tier=self.catalog.tier_for(badge.id, row.level) or badge.tier,
                    level=row.level,
                    level_name=lvl.name if lvl else None,
                    max_level=badge.max_level,
                    earned_at=as_utc(row.earned_at),
                    progress=self._next_level_progress(badge, row.level, stats, now),
                )
            )
        return views

    def _next_level_progress(
        self, badge: BadgeDefinition, level: int, stats: UserStats | None, now: datetime
    ) -> float | None:
        if level >= badge.max_level:
            return 100.0
        next_level = badge.level_info(level + 1)
        if stats is None or next_level is None:
            return None
        return progress_toward(next_level.criteria, stats, now=now)


async def trigger_badge_check(
    db: AsyncSession,
    redis: object,
    user_id: int,
    catalog: BadgeCatalog | None = None,
) -> list[NewBadge]:
    """Fire-and-forget evaluation. Never raises; badge work must not fail the caller."""
    try:
        return await BadgeEngine(db, redis, catalog).check_user_badges(user_id)
    except Exception:
        logger.exception("Badge check failed for user %s", user_id)
        return []
