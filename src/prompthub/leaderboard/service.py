"""Badge leaderboard queries.

Entries are computed on demand from ``user_badges`` joined to ``users``.
Nothing is cached; two reads with no award in between return the same
order.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Mapping
from datetime import datetime
from typing import Literal

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prompthub.db.models import User, UserBadge
from prompthub.gamification.catalog import BadgeCatalog
from prompthub.gamification.criteria import BadgeCategory, BadgeTier
from prompthub.gamification.time_utils import period_start, utcnow
from prompthub.leaderboard.ranking import AwardRow, LeaderboardEntry, calculate_percentile, rank_entries

logger = logging.getLogger(__name__)

BoardType = Literal["overall", "category", "tier"]
Period = Literal["all_time", "weekly", "monthly", "yearly"]

NEARBY_RADIUS = 2


class LeaderboardPage(BaseModel):
    board: BoardType
    period: Period
    category: BadgeCategory | None = None
    tier: BadgeTier | None = None
    entries: list[LeaderboardEntry]
    total: int
    limit: int
    offset: int
    has_more: bool


class UserRank(BaseModel):
    user_id: int
    board: BoardType
    period: Period
    rank: int
    total: int
    percentile: float
    entry: LeaderboardEntry
    nearby: list[LeaderboardEntry]


class LeaderboardStats(BaseModel):
    total_users: int
    total_badges_awarded: int
    average_badges_per_user: float
    top_score: int
    average_score: float
    most_common_badge: str | None = None
    rarest_badge: str | None = None


def resolve_board(
    board: BoardType, category: BadgeCategory | None, tier: BadgeTier | None
) -> tuple[BoardType, BadgeCategory | None, BadgeTier | None]:
    """A category or tier board without its filter is the overall board."""
    if board == "category" and category is not None:
        return board, category, None
    if board == "tier" and tier is not None:
        return board, None, tier
    return "overall", None, None


async def _load_award_rows(
    db: AsyncSession,
    catalog: BadgeCatalog,
    *,
    board: BoardType,
    period: Period,
    category: BadgeCategory | None,
    tier: BadgeTier | None,
    now: datetime,
) -> list[AwardRow]:
    stmt = (
        select(
            UserBadge.user_id,
            User.display_name,
            User.avatar_url,
            UserBadge.badge_id,
            UserBadge.level,
            UserBadge.earned_at,
        )
        .join(User, User.id == UserBadge.user_id)
        .where(User.is_banned.is_(False))
        .order_by(UserBadge.user_id, UserBadge.badge_id)
    )
    start = period_start(period, now)
    if start is not None:
        stmt = stmt.where(UserBadge.earned_at >= start)
    if board == "category" and category is not None:
        stmt = stmt.where(UserBadge.badge_id.in_([b.id for b in catalog.by_category(category)]))

    result = await db.execute(stmt)
    rows = [AwardRow(*row) for row in result]
    if board == "tier" and tier is not None:
        # The held level decides the tier, so this filter runs after loading.
        rows = [r for r in rows if catalog.tier_for(r.badge_id, r.level) == tier]
    return rows


async def _ranked(
    db: AsyncSession,
    catalog: BadgeCatalog,
    weights: Mapping[str, int],
    *,
    board: BoardType,
    period: Period,
    category: BadgeCategory | None,
    tier: BadgeTier | None,
    now: datetime | None,
) -> list[LeaderboardEntry]:
    rows = await _load_award_rows(
        db, catalog, board=board, period=period, category=category, tier=tier, now=now or utcnow()
    )
    return rank_entries(rows, catalog, weights)


async def get_badge_leaderboard(
    db: AsyncSession,
    catalog: BadgeCatalog,
    weights: Mapping[str, int],
    *,
    board: BoardType = "overall",
    period: Period = "all_time",
    category: BadgeCategory | None = None,
    tier: BadgeTier | None = None,
    limit: int = 50,
    offset: int = 0,
    search: str | None = None,
    now: datetime | None = None,
) -> LeaderboardPage:
    """One page of the ranked board.

    ``search`` filters by display name after ranking, so entries keep their
    global rank.
    """
    board, category, tier = resolve_board(board, category, tier)
    entries = await _ranked(
        db, catalog, weights, board=board, period=period, category=category, tier=tier, now=now
    )
    if search:
        needle = search.strip().lower()
        entries = [e for e in entries if needle in e.display_name.lower()]

    page = entries[offset : offset + limit]
    return LeaderboardPage(
        board=board,
        period=period,
        category=category,
        tier=tier,
        entries=page,
        total=len(entries),
        limit=limit,
        offset=offset,
        has_more=offset + len(page) < len(entries),
    )


async def get_user_rank(
    db: AsyncSession,
    catalog: BadgeCatalog,
    weights: Mapping[str, int],
    user_id: int,
    *,
    board: BoardType = "overall",
    period: Period = "all_time",
    category: BadgeCategory | None = None,
    tier: BadgeTier | None = None,
    now: datetime | None = None,
) -> UserRank | None:
    """The user's position with up to five entries around it, or None when unranked."""
    board, category, tier = resolve_board(board, category, tier)
    entries = await _ranked(
        db, catalog, weights, board=board, period=period, category=category, tier=tier, now=now
    )
    index = next((i for i, e in enumerate(entries) if e.user_id == user_id), None)
    if index is None:
        return None

    start = max(0, min(index - NEARBY_RADIUS, len(entries) - (2 * NEARBY_RADIUS + 1)))
    entry = entries[index]
    return UserRank(
        user_id=user_id,
        board=board,
        period=period,
        rank=entry.rank,
        total=len(entries),
        percentile=calculate_percentile(entry.rank, len(entries)),
        entry=entry,
        nearby=entries[start : start + 2 * NEARBY_RADIUS + 1],
    )


async def get_leaderboard_stats(
    db: AsyncSession,
    catalog: BadgeCatalog,
    weights: Mapping[str, int],
) -> LeaderboardStats:
    """Global all-time aggregates across every user holding a badge."""
    rows = await _load_award_rows(
        db, catalog, board="overall", period="all_time", category=None, tier=None, now=utcnow()
    )
    rows = [r for r in rows if r.badge_id in catalog]
    entries = rank_entries(rows, catalog, weights)

    frequency = Counter(r.badge_id for r in rows)
    # Ties resolve to the lower badge id.
    most_common = min(frequency.items(), key=lambda kv: (-kv[1], kv[0]), default=None)
    rarest = min(frequency.items(), key=lambda kv: (kv[1], kv[0]), default=None)
    total_users = len(entries)
    scores = [e.total_score for e in entries]

    return LeaderboardStats(
        total_users=total_users,
        total_badges_awarded=len(rows),
        average_badges_per_user=round(len(rows) / total_users, 2) if total_users else 0.0,
        top_score=max(scores, default=0),
        average_score=round(sum(scores) / total_users, 2) if total_users else 0.0,
        most_common_badge=most_common[0] if most_common else None,
        rarest_badge=rarest[0] if rarest else None,
    )
