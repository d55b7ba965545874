"""Deterministic badge leaderboard ranking.

Users are ranked by tier-weighted badge score DESC, then by the moment the
score was reached ASC (earlier wins), then by user id ASC. The same award
rows always produce the same order.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import NamedTuple

from pydantic import BaseModel

from prompthub.gamification.catalog import BadgeCatalog
from prompthub.gamification.criteria import TIER_ORDER, BadgeTier
from prompthub.gamification.time_utils import as_utc


class AwardRow(NamedTuple):
    user_id: int
    display_name: str
    avatar_url: str | None
    badge_id: str
    level: int
    earned_at: datetime


class TopBadge(BaseModel):
    badge_id: str
    name: str
    icon: str
    tier: BadgeTier
    level: int


class LeaderboardEntry(BaseModel):
    rank: int = 0
    user_id: int
    display_name: str
    avatar_url: str | None = None
    total_score: int
    badge_count: int
    breakdown: dict[BadgeTier, int]
    top_badges: list[TopBadge]
    achieved_at: datetime


def validate_tier_weights(weights: Mapping[str, int]) -> dict[BadgeTier, int]:
    """Check that every tier strictly outweighs all lower tiers combined.

    With 1/2/4/8/16 a single legendary badge beats one of each lower tier.

    Raises:
        ValueError: On a missing tier, a non-positive weight, or a weight
            not above the sum of the lower tiers.
    """
    resolved: dict[BadgeTier, int] = {}
    lower_total = 0
    for tier in TIER_ORDER:
        if tier.value not in weights:
            msg = f"missing tier weight for {tier.value!r}"
            raise ValueError(msg)
        weight = int(weights[tier.value])
        if weight <= 0:
            msg = f"tier weight for {tier.value!r} must be positive, got {weight}"
            raise ValueError(msg)
        if weight <= lower_total:
            msg = f"tier weight for {tier.value!r} must outweigh all lower tiers combined: {weight} <= {lower_total}"
            raise ValueError(msg)
        resolved[tier] = weight
        lower_total += weight
    return resolved


def calculate_percentile(rank: int, total: int) -> float:
    """Rank 1 of 100 is 99.0, rank 100 of 100 is 0.0."""
    if total <= 0 or rank <= 0:
        return 0.0
    return round(100 - (rank / total * 100), 2)


def rank_entries(
    rows: Iterable[AwardRow],
    catalog: BadgeCatalog,
    weights: Mapping[str, int],
) -> list[LeaderboardEntry]:
    """Group award rows by user, score them, and assign 1-based ranks.

    Badges no longer in the catalog are ignored. Users left with no scored
    badge are dropped.
    """
    tier_weights = validate_tier_weights(weights)

    grouped: dict[int, list[AwardRow]] = {}
    for row in rows:
        grouped.setdefault(row.user_id, []).append(row)

    entries: list[LeaderboardEntry] = []
    for user_id, awards in grouped.items():
        breakdown = {tier: 0 for tier in TIER_ORDER}
        scored: list[tuple[int, TopBadge]] = []
        achieved_at: datetime | None = None
        for award in awards:
            badge = catalog.get(award.badge_id)
            tier = catalog.tier_for(award.badge_id, award.level)
            if badge is None or tier is None:
                continue
            breakdown[tier] += 1
            weight = tier_weights[tier]
            scored.append(
                (weight, TopBadge(badge_id=badge.id, name=badge.name, icon=badge.icon, tier=tier, level=award.level))
            )
            earned = as_utc(award.earned_at)
            if achieved_at is None or earned > achieved_at:
                achieved_at = earned
        if not scored or achieved_at is None:
            continue

        scored.sort(key=lambda s: (-s[0], -s[1].level, s[1].badge_id))
        entries.append(
            LeaderboardEntry(
                user_id=user_id,
                display_name=awards[0].display_name,
                avatar_url=awards[0].avatar_url,
                total_score=sum(weight for weight, _ in scored),
                badge_count=len(scored),
                breakdown=breakdown,
                top_badges=[badge for _, badge in scored[:3]],
                achieved_at=achieved_at,
            )
        )

    entries.sort(key=lambda e: (-e.total_score, e.achieved_at, e.user_id))
    for idx, entry in enumerate(entries):
        entry.rank = idx + 1
    return entries
