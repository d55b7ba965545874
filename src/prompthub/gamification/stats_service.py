"""Stat aggregator: derives UserStats from the activity store.

UserStats is a pure function of the user's prompts, comments and follow
edges at the time of computation. It is never edited by hand; every
recompute overwrites the ``user_stats`` snapshot.
"""

from __future__ import annotations

import logging
from datetime import datetime

from pydantic import BaseModel, ConfigDict
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from prompthub.config import get_settings
from prompthub.db.models import Comment, Follow, Prompt, User, UserStatsSnapshot
from prompthub.gamification.exceptions import StatsUnavailableError, UserNotFoundError
from prompthub.gamification.time_utils import as_utc, is_weekend, longest_daily_run, utcnow

logger = logging.getLogger(__name__)


class UserStats(BaseModel):
    """Counters the criteria validators read."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    account_created_at: datetime

    # Prompts
    total_prompts: int = 0
    total_likes: int = 0
    total_saves: int = 0
    agents_used: tuple[str, ...] = ()
    categories_used: tuple[str, ...] = ()
    rated_prompts: int = 0
    quality_prompts: int = 0
    average_rating: float = 0.0
    highest_rating: float = 0.0
    viral_prompts: int = 0
    weekend_prompts: int = 0
    consecutive_days: int = 0

    # Social graph
    followers: int = 0
    following: int = 0

    # Comments
    total_comments: int = 0
    total_comment_likes: int = 0
    total_replies: int = 0
    comments_with_replies: int = 0
    unique_users_helped: int = 0


async def compute_user_stats(
    db: AsyncSession,
    user_id: int,
    *,
    viral_threshold: int = 100,
    quality_threshold: float = 0.0,
) -> UserStats:
    """Aggregate a user's activity. Read-only and deterministic.

    Raises:
        UserNotFoundError: If the user does not exist.
    """
    created_at = (
        await db.execute(select(User.created_at).where(User.id == user_id))
    ).scalar_one_or_none()
    if created_at is None:
        raise UserNotFoundError(user_id)

    # --- Prompts ---
    prompt_rows = (
        await db.execute(
            select(Prompt.category, Prompt.ai_agents, Prompt.likes, Prompt.saves, Prompt.rating, Prompt.created_at)
            .where(Prompt.created_by == user_id)
            .order_by(Prompt.id)
        )
    ).all()

    agents: set[str] = set()
    categories: set[str] = set()
    ratings: list[float] = []
    total_likes = total_saves = viral = weekend = 0
    for row in prompt_rows:
        categories.add(row.category)
        agents.update(row.ai_agents or [])
        total_likes += row.likes or 0
        total_saves += row.saves or 0
        if row.rating is not None:
            ratings.append(float(row.rating))
        if (row.likes or 0) >= viral_threshold:
            viral += 1
        if is_weekend(row.created_at):
            weekend += 1

    # --- Social graph ---
    followers = (
        await db.execute(
            select(func.count())
            .select_from(Follow)
            .where(Follow.followed_id == user_id, Follow.follower_id != user_id)
        )
    ).scalar_one()
    following = (
        await db.execute(
            select(func.count())
            .select_from(Follow)
            .where(Follow.follower_id == user_id, Follow.followed_id != user_id)
        )
    ).scalar_one()

    # --- Comments ---
    live = Comment.is_deleted.is_(False)
    comment_count, comment_likes = (
        await db.execute(
            select(func.count(), func.coalesce(func.sum(Comment.likes), 0))
            .select_from(Comment)
            .where(Comment.author_id == user_id, live)
        )
    ).one()
    total_replies = (
        await db.execute(
            select(func.count())
            .select_from(Comment)
            .where(Comment.author_id == user_id, live, Comment.parent_id.is_not(None))
        )
    ).scalar_one()

    reply = aliased(Comment)
    comments_with_replies = (
        await db.execute(
            select(func.count(func.distinct(Comment.id)))
            .select_from(Comment)
            .join(reply, reply.parent_id == Comment.id)
            .where(Comment.author_id == user_id, live, Comment.parent_id.is_(None), reply.is_deleted.is_(False))
        )
    ).scalar_one()

    parent = aliased(Comment)
    unique_users_helped = (
        await db.execute(
            select(func.count(func.distinct(parent.author_id)))
            .select_from(Comment)
            .join(parent, Comment.parent_id == parent.id)
            .where(Comment.author_id == user_id, live, parent.author_id != user_id)
        )
    ).scalar_one()

    return UserStats(
        user_id=user_id,
        account_created_at=as_utc(created_at),
        total_prompts=len(prompt_rows),
        total_likes=total_likes,
        total_saves=total_saves,
        agents_used=tuple(sorted(agents)),
        categories_used=tuple(sorted(categories)),
        rated_prompts=len(ratings),
        quality_prompts=sum(1 for r in ratings if r >= quality_threshold),
        average_rating=sum(ratings) / len(ratings) if ratings else 0.0,
        highest_rating=max(ratings, default=0.0),
        viral_prompts=viral,
        weekend_prompts=weekend,
        consecutive_days=longest_daily_run(as_utc(row.created_at).date() for row in prompt_rows),
        followers=followers,
        following=following,
        total_comments=comment_count,
        total_comment_likes=int(comment_likes),
        total_replies=total_replies,
        comments_with_replies=comments_with_replies,
        unique_users_helped=unique_users_helped,
    )


async def _save_snapshot(db: AsyncSession, stats: UserStats) -> None:
    """Last-write-wins upsert of the user_stats row."""
    payload = stats.model_dump(mode="json")
    now = utcnow()
    snapshot = await db.get(UserStatsSnapshot, stats.user_id)
    if snapshot is None:
        db.add(UserStatsSnapshot(user_id=stats.user_id, stats=payload, computed_at=now))
        try:
            await db.flush()
            return
        except IntegrityError:
            # A concurrent recompute inserted first; overwrite it.
            await db.rollback()
            snapshot = await db.get(UserStatsSnapshot, stats.user_id, populate_existing=True)
            if snapshot is None:
                raise
    snapshot.stats = payload
    snapshot.computed_at = now


async def refresh_user_stats(db: AsyncSession, user_id: int) -> UserStats:
    """Recompute a user's stats and persist the snapshot.

    Raises:
        UserNotFoundError: If the user does not exist.
        StatsUnavailableError: If the activity store could not be read or
            written. The previous snapshot is left in place.
    """
    settings = get_settings()
    try:
        stats = await compute_user_stats(
            db,
            user_id,
            viral_threshold=settings.viral_likes_threshold,
            quality_threshold=settings.quality_rating_threshold,
        )
        await _save_snapshot(db, stats)
        await db.commit()
    except (SQLAlchemyError, OSError) as e:
        await db.rollback()
        logger.warning("Stats recompute failed for user %s: %s", user_id, e)
        raise StatsUnavailableError(str(e)) from e
    return stats


async def get_stats_snapshot(db: AsyncSession, user_id: int) -> UserStats | None:
    """Read the last persisted stats, or None if never computed."""
    snapshot = await db.get(UserStatsSnapshot, user_id)
    if snapshot is None:
        return None
    return UserStats.model_validate(snapshot.stats)
