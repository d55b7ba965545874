"""Badge API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from prompthub.auth.dependencies import get_current_user
from prompthub.auth.service import get_user_by_id
from prompthub.database import get_session
from prompthub.db.models import User, UserBadge
from prompthub.dependencies import get_badge_catalog, get_optional_redis_dep
from prompthub.gamification.badge_service import BadgeEngine, highest_tier
from prompthub.gamification.catalog import BadgeCatalog
from prompthub.gamification.schemas import (
    AllBadgesResponse,
    BadgeDefinitionResponse,
    BadgeDetailResponse,
    CheckBadgesResponse,
    RecentEarner,
    UserBadgesResponse,
)
from prompthub.gamification.time_utils import as_utc

router = APIRouter(prefix="/api/v1", tags=["Badges"])


async def _user_badges_response(
    db: AsyncSession, redis: object, catalog: BadgeCatalog, user_id: int
) -> UserBadgesResponse:
    badges = await BadgeEngine(db, redis, catalog).get_user_badges(user_id)
    return UserBadgesResponse(
        user_id=user_id,
        badges=badges,
        total_earned=len(badges),
        total_available=len(catalog),
        highest_tier=highest_tier(badges),
    )


# ── Public endpoints ──


@router.get("/badges", response_model=AllBadgesResponse)
async def list_badges(
    db: AsyncSession = Depends(get_session),
    catalog: BadgeCatalog = Depends(get_badge_catalog),
):
    """All badge definitions in catalog order, with earn counts."""
    counts_result = await db.execute(
        select(UserBadge.badge_id, func.count()).group_by(UserBadge.badge_id)
    )
    counts = {badge_id: count for badge_id, count in counts_result}
    total_users = (await db.execute(select(func.count()).select_from(User))).scalar_one()

    return AllBadgesResponse(
        badges=[
            BadgeDefinitionResponse.from_definition(b, counts.get(b.id, 0), total_users)
            for b in catalog
        ],
        total=len(catalog),
    )


@router.post("/badges/check", response_model=CheckBadgesResponse)
async def check_my_badges(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis_dep),
    catalog: BadgeCatalog = Depends(get_badge_catalog),
):
    """Evaluate the caller's badges now and return what was awarded or upgraded."""
    new_badges = await BadgeEngine(db, redis, catalog).check_user_badges(user.id)
    return CheckBadgesResponse(new_badges=new_badges, count=len(new_badges))


@router.get("/badges/user/{user_id}", response_model=UserBadgesResponse)
async def get_badges_for_user(
    user_id: int,
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis_dep),
    catalog: BadgeCatalog = Depends(get_badge_catalog),
):
    """A user's awarded badges with highest tier and totals."""
    if await get_user_by_id(db, user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")
    return await _user_badges_response(db, redis, catalog, user_id)


@router.get("/badges/{badge_id}", response_model=BadgeDetailResponse)
async def get_badge(
    badge_id: str,
    db: AsyncSession = Depends(get_session),
    catalog: BadgeCatalog = Depends(get_badge_catalog),
):
    """Single badge with earn count and the ten most recent earners."""
    badge = catalog.get(badge_id)
    if badge is None:
        raise HTTPException(status_code=404, detail="Badge not found")

    total_earned = (
        await db.execute(select(func.count()).select_from(UserBadge).where(UserBadge.badge_id == badge_id))
    ).scalar_one()
    total_users = (await db.execute(select(func.count()).select_from(User))).scalar_one()

    earners_result = await db.execute(
        select(UserBadge.level, UserBadge.earned_at, User.id, User.display_name)
        .join(User, UserBadge.user_id == User.id)
        .where(UserBadge.badge_id == badge_id)
        .order_by(UserBadge.earned_at.desc(), User.id)
        .limit(10)
    )
    recent_earners = [
        RecentEarner(
            user_id=row.id,
            display_name=row.display_name,
            level=row.level,
            earned_at=as_utc(row.earned_at),
        )
        for row in earners_result
    ]

    base = BadgeDefinitionResponse.from_definition(badge, total_earned, total_users)
    return BadgeDetailResponse(**base.model_dump(), recent_earners=recent_earners)


# ── Authenticated endpoints ──


@router.get("/users/me/badges", response_model=UserBadgesResponse)
async def get_my_badges(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis_dep),
    catalog: BadgeCatalog = Depends(get_badge_catalog),
):
    """The caller's awarded badges."""
    return await _user_badges_response(db, redis, catalog, user.id)
