"""Badge leaderboard endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from prompthub.config import get_settings
from prompthub.database import get_session
from prompthub.dependencies import get_badge_catalog, get_tier_weights
from prompthub.gamification.catalog import BadgeCatalog
from prompthub.gamification.criteria import BadgeCategory, BadgeTier
from prompthub.leaderboard.service import (
    BoardType,
    LeaderboardPage,
    LeaderboardStats,
    Period,
    UserRank,
    get_badge_leaderboard,
    get_leaderboard_stats,
    get_user_rank,
)

# Registered before the badge router so /badges/{badge_id} does not shadow these paths.
router = APIRouter(prefix="/api/v1/badges/leaderboard", tags=["Leaderboard"])


@router.get("", response_model=LeaderboardPage)
async def leaderboard(
    board_type: BoardType = Query("overall", alias="type"),
    period: Period = Query("all_time"),
    category: BadgeCategory | None = Query(None),
    tier: BadgeTier | None = Query(None),
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    search: str | None = Query(None, max_length=64),
    db: AsyncSession = Depends(get_session),
    catalog: BadgeCatalog = Depends(get_badge_catalog),
    weights: dict[str, int] = Depends(get_tier_weights),
):
    """Users ranked by tier-weighted badge score."""
    settings = get_settings()
    limit = min(limit or settings.leaderboard_default_limit, settings.leaderboard_max_limit)
    return await get_badge_leaderboard(
        db,
        catalog,
        weights,
        board=board_type,
        period=period,
        category=category,
        tier=tier,
        limit=limit,
        offset=offset,
        search=search,
    )


@router.get("/stats", response_model=LeaderboardStats)
async def leaderboard_stats(
    db: AsyncSession = Depends(get_session),
    catalog: BadgeCatalog = Depends(get_badge_catalog),
    weights: dict[str, int] = Depends(get_tier_weights),
):
    """Global badge totals and score aggregates."""
    return await get_leaderboard_stats(db, catalog, weights)


@router.get("/user/{user_id}", response_model=UserRank)
async def user_rank(
    user_id: int,
    board_type: BoardType = Query("overall", alias="type"),
    period: Period = Query("all_time"),
    category: BadgeCategory | None = Query(None),
    tier: BadgeTier | None = Query(None),
    db: AsyncSession = Depends(get_session),
    catalog: BadgeCatalog = Depends(get_badge_catalog),
    weights: dict[str, int] = Depends(get_tier_weights),
):
    """A user's rank, percentile and neighbours."""
    rank = await get_user_rank(
        db, catalog, weights, user_id, board=board_type, period=period, category=category, tier=tier
    )
    if rank is None:
        raise HTTPException(status_code=404, detail="User not found or has no badges")
    return rank
