"""Pydantic response models for badge endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from prompthub.gamification.badge_service import AwardedBadgeView, NewBadge
from prompthub.gamification.catalog import BadgeDefinition
from prompthub.gamification.criteria import BadgeCategory, BadgeTier, criteria_params


class BadgeLevelResponse(BaseModel):
    level: int
    name: str
    tier: BadgeTier
    params: dict[str, object]


class BadgeDefinitionResponse(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    tier: BadgeTier
    category: BadgeCategory
    criteria_type: str
    criteria: dict[str, object]
    levels: list[BadgeLevelResponse] = []
    total_earned: int = 0
    percentage: float = 0.0

    @classmethod
    def from_definition(
        cls, badge: BadgeDefinition, total_earned: int = 0, total_users: int = 0
    ) -> BadgeDefinitionResponse:
        return cls(
            id=badge.id,
            name=badge.name,
            description=badge.description,
            icon=badge.icon,
            tier=badge.tier,
            category=badge.category,
            criteria_type=badge.criteria.type,
            criteria=criteria_params(badge.criteria),
            levels=[
                BadgeLevelResponse(level=lvl.level, name=lvl.name, tier=lvl.tier, params=lvl.params)
                for lvl in badge.levels
            ],
            total_earned=total_earned,
            percentage=round(total_earned / total_users * 100, 2) if total_users else 0.0,
        )


class AllBadgesResponse(BaseModel):
    badges: list[BadgeDefinitionResponse]
    total: int


class RecentEarner(BaseModel):
    user_id: int
    display_name: str
    level: int
    earned_at: datetime


class BadgeDetailResponse(BadgeDefinitionResponse):
    recent_earners: list[RecentEarner] = []


class CheckBadgesResponse(BaseModel):
    new_badges: list[NewBadge]
    count: int


class UserBadgesResponse(BaseModel):
    user_id: int
    badges: list[AwardedBadgeView]
    total_earned: int
    total_available: int
    highest_tier: BadgeTier | None = None
