"""Stat aggregator tests against the activity store."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from conftest import days_ago, last_wednesday
from prompthub.db.models import UserStatsSnapshot
from prompthub.gamification import stats_service
from prompthub.gamification.exceptions import StatsUnavailableError, UserNotFoundError
from prompthub.gamification.stats_service import compute_user_stats, get_stats_snapshot, refresh_user_stats


@pytest.mark.asyncio
class TestPromptCounters:
    """Counters derived from a user's prompts."""

    async def test_empty_user(self, db, factory):
        user = await factory.user()
        stats = await compute_user_stats(db, user.id)
        assert stats.total_prompts == 0
        assert stats.agents_used == ()
        assert stats.average_rating == 0.0
        assert stats.consecutive_days == 0

    async def test_totals_and_distinct_sets(self, db, factory):
        user = await factory.user()
        await factory.prompt(user, category="Writing", ai_agents=["ChatGPT", "Claude"], likes=3, saves=1)
        await factory.prompt(user, category="Development", ai_agents=["Claude"], likes=120, saves=4)
        await factory.prompt(user, category="Writing", ai_agents=["Gemini"], likes=7)

        stats = await compute_user_stats(db, user.id)

        assert stats.total_prompts == 3
        assert stats.total_likes == 130
        assert stats.total_saves == 5
        assert stats.agents_used == ("ChatGPT", "Claude", "Gemini")
        assert stats.categories_used == ("Development", "Writing")
        assert stats.viral_prompts == 1

    async def test_other_users_prompts_ignored(self, db, factory):
        user = await factory.user()
        other = await factory.user()
        await factory.prompts(other, 4)
        await factory.prompt(user)
        assert (await compute_user_stats(db, user.id)).total_prompts == 1

    async def test_ratings(self, db, factory):
        user = await factory.user()
        await factory.prompt(user, rating=5.0)
        await factory.prompt(user, rating=4.0)
        await factory.prompt(user, rating=None)

        stats = await compute_user_stats(db, user.id, quality_threshold=4.5)

        assert stats.rated_prompts == 2
        assert stats.quality_prompts == 1
        assert stats.average_rating == 4.5
        assert stats.highest_rating == 5.0

    async def test_weekend_and_streak(self, db, factory):
        user = await factory.user()
        wednesday = last_wednesday()
        saturday = wednesday - timedelta(days=4)
        sunday = wednesday - timedelta(days=3)
        for when in (saturday, sunday, wednesday, wednesday - timedelta(days=1), wednesday - timedelta(days=2)):
            await factory.prompt(user, created_at=when)

        stats = await compute_user_stats(db, user.id)

        assert stats.weekend_prompts == 2
        # Saturday through Wednesday without a gap.
        assert stats.consecutive_days == 5

    async def test_viral_threshold_is_inclusive(self, db, factory):
        user = await factory.user()
        await factory.prompt(user, likes=99)
        await factory.prompt(user, likes=100)
        assert (await compute_user_stats(db, user.id, viral_threshold=100)).viral_prompts == 1


@pytest.mark.asyncio
class TestSocialAndComments:
    async def test_follow_counts_exclude_self(self, db, factory):
        user = await factory.user()
        a = await factory.user()
        b = await factory.user()
        await factory.follow(a, user)
        await factory.follow(b, user)
        await factory.follow(user, a)
        await factory.follow(user, user)

        stats = await compute_user_stats(db, user.id)

        assert stats.followers == 2
        assert stats.following == 1

    async def test_comment_counters(self, db, factory):
        user = await factory.user()
        asker = await factory.user()
        other_asker = await factory.user()
        prompt = await factory.prompt(asker)

        top = await factory.comment(user, prompt, likes=4)
        await factory.comment(asker, prompt, parent=top)
        await factory.comment(asker, prompt, parent=top)
        question = await factory.comment(asker, prompt)
        other_question = await factory.comment(other_asker, prompt)
        await factory.comment(user, prompt, parent=question, likes=2)
        await factory.comment(user, prompt, parent=other_question)
        await factory.comment(user, prompt, parent=top)  # self-reply
        await factory.comment(user, prompt, likes=50, is_deleted=True)

        stats = await compute_user_stats(db, user.id)

        assert stats.total_comments == 4
        assert stats.total_comment_likes == 6
        assert stats.total_replies == 3
        assert stats.comments_with_replies == 1
        assert stats.unique_users_helped == 2

    async def test_deleted_replies_do_not_count(self, db, factory):
        user = await factory.user()
        other = await factory.user()
        prompt = await factory.prompt(other)
        top = await factory.comment(user, prompt)
        await factory.comment(other, prompt, parent=top, is_deleted=True)
        assert (await compute_user_stats(db, user.id)).comments_with_replies == 0


@pytest.mark.asyncio
class TestDeterminismAndSnapshots:
    async def test_recompute_is_identical(self, db, factory):
        user = await factory.user()
        await factory.prompt(user, ai_agents=["Claude", "ChatGPT"], likes=12, rating=4.2)
        await factory.prompt(user, category="Development", ai_agents=["Gemini"])

        first = await compute_user_stats(db, user.id)
        second = await compute_user_stats(db, user.id)

        assert first.model_dump_json() == second.model_dump_json()

    async def test_account_created_at_is_aware(self, db, factory):
        user = await factory.user(created_at=days_ago(400))
        stats = await compute_user_stats(db, user.id)
        assert stats.account_created_at.tzinfo is not None

    async def test_unknown_user(self, db):
        with pytest.raises(UserNotFoundError):
            await compute_user_stats(db, 9999)

    async def test_refresh_persists_snapshot(self, db, factory):
        user = await factory.user()
        user_id = user.id
        await factory.prompt(user)
        assert await get_stats_snapshot(db, user_id) is None

        stats = await refresh_user_stats(db, user_id)
        assert await get_stats_snapshot(db, user_id) == stats

        await factory.prompt(user)
        refreshed = await refresh_user_stats(db, user_id)
        assert refreshed.total_prompts == 2
        assert (await get_stats_snapshot(db, user_id)).total_prompts == 2
        assert await db.get(UserStatsSnapshot, user_id) is not None

    async def test_refresh_unknown_user(self, db):
        with pytest.raises(UserNotFoundError):
            await refresh_user_stats(db, 9999)

    async def test_store_failure_is_stats_unavailable(self, db, factory, monkeypatch):
        user = await factory.user()
        user_id = user.id

        async def broken(*_args, **_kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(stats_service, "compute_user_stats", broken)
        with pytest.raises(StatsUnavailableError):
            await refresh_user_stats(db, user_id)

    async def test_failed_recompute_keeps_previous_snapshot(self, db, factory, monkeypatch):
        user = await factory.user()
        user_id = user.id
        await factory.prompt(user)
        await refresh_user_stats(db, user_id)
        await factory.prompt(user)

        async def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db, "commit", failing_commit)
        with pytest.raises(StatsUnavailableError):
            await refresh_user_stats(db, user_id)
        monkeypatch.undo()

        snapshot = await get_stats_snapshot(db, user_id)
        assert snapshot is not None
        assert snapshot.total_prompts == 1
