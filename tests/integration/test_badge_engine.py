"""Badge engine tests: awards, upgrades, idempotency and failure isolation."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from conftest import days_ago
from prompthub.db.models import UserBadge
from prompthub.gamification import badge_service
from prompthub.gamification.badge_service import (
    BADGE_EARNED_CHANNEL,
    BadgeEngine,
    highest_tier,
    trigger_badge_check,
)
from prompthub.gamification.catalog import load_catalog
from prompthub.gamification.criteria import BadgeTier
from prompthub.gamification.exceptions import StatsUnavailableError


def _small_catalog():
    return load_catalog(
        [
            {
                "id": "first_prompt",
                "name": "First Steps",
                "description": "Created your first prompt",
                "icon": "*",
                "tier": "common",
                "category": "content_creation",
                "criteria": {"type": "threshold", "field": "total_prompts", "threshold": 1},
            },
            {
                "id": "prolific_creator",
                "name": "Prolific Creator",
                "description": "Created multiple prompts",
                "icon": "*",
                "tier": "uncommon",
                "category": "content_creation",
                "criteria": {"type": "threshold", "field": "total_prompts"},
                "levels": [
                    {"level": 1, "name": "Bronze", "tier": "common", "params": {"threshold": 2}},
                    {"level": 2, "name": "Silver", "tier": "uncommon", "params": {"threshold": 4}},
                    {"level": 3, "name": "Gold", "tier": "rare", "params": {"threshold": 6}},
                ],
            },
            {
                "id": "community_builder",
                "name": "Community Builder",
                "description": "Followers and following",
                "icon": "*",
                "tier": "epic",
                "category": "social",
                "criteria": {"type": "social", "min_followers": 1, "min_following": 1},
            },
        ]
    )


async def _held(db, user_id: int) -> dict[str, int]:
    result = await db.execute(select(UserBadge.badge_id, UserBadge.level).where(UserBadge.user_id == user_id))
    return {row.badge_id: row.level for row in result}


@pytest.mark.asyncio
class TestAwarding:
    """New awards and idempotency."""

    async def test_first_prompt_awarded_once(self, db, factory):
        user = await factory.user()
        user_id = user.id
        await factory.prompt(user)
        engine = BadgeEngine(db, None)

        first = await engine.check_user_badges(user_id)
        assert [b.badge_id for b in first] == ["first_prompt"]
        assert first[0].is_new is True
        assert first[0].tier == BadgeTier.COMMON

        assert await engine.check_user_badges(user_id) == []
        assert await _held(db, user_id) == {"first_prompt": 1}

    async def test_no_activity_no_badges(self, db, factory):
        user = await factory.user()
        assert await BadgeEngine(db, None).check_user_badges(user.id) == []

    async def test_stores_progress_snapshot(self, db, factory):
        user = await factory.user()
        user_id = user.id
        await factory.prompts(user, 10)
        await BadgeEngine(db, None).check_user_badges(user_id)

        progress = (
            await db.execute(
                select(UserBadge.progress).where(
                    UserBadge.user_id == user_id, UserBadge.badge_id == "prolific_creator"
                )
            )
        ).scalar_one()
        assert progress == {"level": 1, "current": 10.0, "target": 10.0, "percent": 100.0}

    async def test_new_award_starts_at_highest_satisfied_level(self, db, factory):
        user = await factory.user()
        user_id = user.id
        await factory.prompts(user, 5)

        results = await BadgeEngine(db, None, _small_catalog()).check_user_badges(user_id)

        prolific = next(r for r in results if r.badge_id == "prolific_creator")
        assert prolific.level == 2
        assert prolific.level_name == "Silver"
        assert prolific.is_new is True

    async def test_unknown_user_returns_empty(self, db):
        assert await BadgeEngine(db, None).check_user_badges(424242) == []

    async def test_time_based_badges_use_now(self, db, factory):
        user = await factory.user(created_at=datetime(2023, 6, 1, tzinfo=timezone.utc))
        user_id = user.id
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)

        results = await BadgeEngine(db, None).check_user_badges(user_id, now=now)

        by_id = {r.badge_id: r for r in results}
        assert "pioneer" in by_id
        assert by_id["veteran"].level == 2


@pytest.mark.asyncio
class TestUpgrades:
    """Leveled badges only move up."""

    async def test_level_upgrade(self, db, factory):
        catalog = _small_catalog()
        user = await factory.user()
        user_id = user.id
        engine = BadgeEngine(db, None, catalog)

        await factory.prompts(user, 2)
        first = {r.badge_id: r for r in await engine.check_user_badges(user_id)}
        assert first["prolific_creator"].level == 1

        await factory.prompts(user, 4)
        second = await engine.check_user_badges(user_id)
        assert [(r.badge_id, r.level, r.is_new, r.previous_level) for r in second] == [
            ("prolific_creator", 3, False, 1)
        ]
        assert (await _held(db, user_id))["prolific_creator"] == 3

    async def test_level_never_decreases(self, db, factory):
        catalog = _small_catalog()
        user = await factory.user()
        user_id = user.id
        await factory.award(user, "prolific_creator", level=3)
        await factory.prompts(user, 2)

        results = await BadgeEngine(db, None, catalog).check_user_badges(user_id)

        assert [r.badge_id for r in results] == ["first_prompt"]
        assert (await _held(db, user_id))["prolific_creator"] == 3

    async def test_concurrent_insert_falls_back_to_upgrade(self, db, factory, monkeypatch):
        catalog = _small_catalog()
        user = await factory.user()
        user_id = user.id
        await factory.award(user, "first_prompt")
        await factory.award(user, "prolific_creator", level=1)
        await factory.prompts(user, 4)

        # Simulate a racing evaluation: the held-level read misses rows that exist.
        async def stale_read(self, _user_id):
            return {}

        monkeypatch.setattr(BadgeEngine, "_held_levels", stale_read)
        results = await BadgeEngine(db, None, catalog).check_user_badges(user_id)

        assert [(r.badge_id, r.level, r.is_new, r.previous_level) for r in results] == [
            ("prolific_creator", 2, False, 1)
        ]
        count = (
            await db.execute(select(func.count()).select_from(UserBadge).where(UserBadge.user_id == user_id))
        ).scalar_one()
        assert count == 2


@pytest.mark.asyncio
class TestDuplicates:
    async def test_duplicate_follow_yields_one_badge(self, db, factory):
        catalog = _small_catalog()
        a = await factory.user()
        b = await factory.user()
        a_id, b_id = a.id, b.id
        await factory.follow(a, b)
        await factory.follow(b, a)
        with pytest.raises(IntegrityError):
            await factory.follow(a, b)
        await db.rollback()

        engine = BadgeEngine(db, None, catalog)
        for _ in range(2):
            await engine.check_user_badges(a_id)
            await engine.check_user_badges(b_id)

        count = (
            await db.execute(
                select(func.count()).select_from(UserBadge).where(UserBadge.badge_id == "community_builder")
            )
        ).scalar_one()
        assert count == 2
        assert await _held(db, a_id) == {"community_builder": 1}


@pytest.mark.asyncio
class TestFailureIsolation:
    async def test_validator_error_skips_only_that_badge(self, db, factory, monkeypatch):
        user = await factory.user()
        user_id = user.id
        await factory.prompts(user, 2)
        real = badge_service.criteria_met

        def flaky(criteria, stats, *, now):
            if criteria.type == "social":
                raise RuntimeError("boom")
            return real(criteria, stats, now=now)

        monkeypatch.setattr(badge_service, "criteria_met", flaky)
        results = await BadgeEngine(db, None, _small_catalog()).check_user_badges(user_id)
        assert {r.badge_id for r in results} == {"first_prompt", "prolific_creator"}

    async def test_stats_failure_returns_empty(self, db, factory, monkeypatch):
        user = await factory.user()
        user_id = user.id
        await factory.prompt(user)

        async def unavailable(_db, _user_id):
            raise StatsUnavailableError("store down")

        monkeypatch.setattr(badge_service, "refresh_user_stats", unavailable)
        assert await BadgeEngine(db, None).check_user_badges(user_id) == []
        assert await _held(db, user_id) == {}

    async def test_trigger_never_raises(self, db, factory, monkeypatch):
        user = await factory.user()

        async def explode(self, user_id, *, now=None):
            raise RuntimeError("unexpected")

        monkeypatch.setattr(BadgeEngine, "check_user_badges", explode)
        assert await trigger_badge_check(db, None, user.id) == []


@pytest.mark.asyncio
class TestNotifications:
    async def test_publishes_badge_earned(self, db, factory):
        user = await factory.user()
        user_id = user.id
        await factory.prompt(user)
        redis = AsyncMock()

        await BadgeEngine(db, redis).check_user_badges(user_id)

        channel, payload = redis.publish.call_args.args
        assert channel == BADGE_EARNED_CHANNEL
        assert json.loads(payload) == {
            "user_id": user_id,
            "badge_id": "first_prompt",
            "badge_name": "First Steps",
            "tier": "common",
            "level": 1,
            "is_new": True,
        }

    async def test_publish_failure_does_not_lose_award(self, db, factory):
        user = await factory.user()
        user_id = user.id
        await factory.prompt(user)
        redis = AsyncMock()
        redis.publish.side_effect = ConnectionError("redis down")

        results = await BadgeEngine(db, redis).check_user_badges(user_id)

        assert [r.badge_id for r in results] == ["first_prompt"]
        assert await _held(db, user_id) == {"first_prompt": 1}


@pytest.mark.asyncio
class TestUserBadgeViews:
    async def test_views_with_progress(self, db, factory):
        user = await factory.user()
        user_id = user.id
        await factory.prompts(user, 25)
        await BadgeEngine(db, None).check_user_badges(user_id)

        views = {v.badge_id: v for v in await BadgeEngine(db, None).get_user_badges(user_id)}

        assert views["first_prompt"].progress == 100.0
        prolific = views["prolific_creator"]
        assert prolific.level == 1
        assert prolific.level_name == "Bronze Creator"
        assert prolific.max_level == 4
        assert prolific.progress == 50.0

    async def test_retired_badges_hidden(self, db, factory):
        user = await factory.user()
        user_id = user.id
        await factory.award(user, "first_prompt")
        await factory.award(user, "retired_badge")

        views = await BadgeEngine(db, None).get_user_badges(user_id)
        assert [v.badge_id for v in views] == ["first_prompt"]

    async def test_most_recent_first_and_highest_tier(self, db, factory):
        user = await factory.user()
        user_id = user.id
        await factory.award(user, "first_prompt", earned_at=days_ago(5))
        await factory.award(user, "influencer", level=4, earned_at=days_ago(1))

        views = await BadgeEngine(db, None).get_user_badges(user_id)

        assert [v.badge_id for v in views] == ["influencer", "first_prompt"]
        assert views[0].tier == BadgeTier.LEGENDARY
        assert highest_tier(views) == BadgeTier.LEGENDARY
        assert highest_tier([]) is None
