"""Criteria validators: pure predicates over (criteria, stats).

``criteria_met`` never raises for a well-formed criteria model; an
unrecognized variant fails closed.
"""

from __future__ import annotations

import logging
from datetime import datetime

from prompthub.gamification.criteria import (
    AccountAgeCriteria,
    CommunityHelperCriteria,
    Criteria,
    DiscussionStarterCriteria,
    DiversityCriteria,
    HelpfulCommenterCriteria,
    PioneerCriteria,
    QualityCriteria,
    SocialCriteria,
    SpecialtyCriteria,
    ThresholdCriteria,
    ViralCriteria,
)
from prompthub.gamification.stats_service import UserStats
from prompthub.gamification.time_utils import as_utc, days_between

logger = logging.getLogger(__name__)


def _diversity_count(stats: UserStats, attribute: str) -> int:
    return len(stats.agents_used) if attribute == "agents" else len(stats.categories_used)


def criteria_met(criteria: Criteria, stats: UserStats, *, now: datetime) -> bool:
    """True when ``stats`` satisfy ``criteria`` at time ``now``."""
    match criteria:
        case ThresholdCriteria(field=field, threshold=threshold):
            return getattr(stats, field) >= threshold
        case AccountAgeCriteria(min_days=min_days):
            return days_between(stats.account_created_at, now) >= min_days
        case DiversityCriteria(attribute=attribute, min_count=min_count):
            return _diversity_count(stats, attribute) >= min_count
        case QualityCriteria(min_rating=min_rating, min_prompts=min_prompts):
            return stats.quality_prompts >= min_prompts and stats.average_rating >= min_rating
        case ViralCriteria():
            return stats.viral_prompts >= 1
        case SocialCriteria(min_followers=min_followers, min_following=min_following):
            return stats.followers >= min_followers and stats.following >= min_following
        case PioneerCriteria(cutoff=cutoff):
            return as_utc(stats.account_created_at) <= as_utc(cutoff)
        case SpecialtyCriteria(agents=agents, categories=categories, min_prompts=min_prompts):
            uses_target = any(a in stats.agents_used for a in agents) or any(
                c in stats.categories_used for c in categories
            )
            return uses_target and stats.total_prompts >= min_prompts
        case HelpfulCommenterCriteria(min_comments=min_comments, min_likes=min_likes):
            return stats.total_comments >= min_comments and stats.total_comment_likes >= min_likes
        case DiscussionStarterCriteria(min_comments=min_comments, min_replies=min_replies):
            return stats.total_comments >= min_comments and stats.comments_with_replies >= min_replies
        case CommunityHelperCriteria(min_replies=min_replies, min_unique_users=min_unique_users):
            return stats.total_replies >= min_replies and stats.unique_users_helped >= min_unique_users
        case _:
            logger.warning("unknown_criteria type=%r", getattr(criteria, "type", criteria))
            return False


def current_and_target(criteria: Criteria, stats: UserStats, *, now: datetime) -> tuple[float, float] | None:
    """(current, target) for criteria measured on a single metric, else None."""
    match criteria:
        case ThresholdCriteria(field=field, threshold=threshold):
            return float(getattr(stats, field)), float(threshold)
        case AccountAgeCriteria(min_days=min_days):
            return float(days_between(stats.account_created_at, now)), float(min_days)
        case DiversityCriteria(attribute=attribute, min_count=min_count):
            return float(_diversity_count(stats, attribute)), float(min_count)
        case ViralCriteria():
            return float(stats.viral_prompts), 1.0
        case _:
            return None


def progress_toward(criteria: Criteria, stats: UserStats, *, now: datetime) -> float | None:
    """Percent (0-100, one decimal) toward a single-metric criteria."""
    measured = current_and_target(criteria, stats, now=now)
    if measured is None:
        return None
    current, target = measured
    return round(min(100.0, current / target * 100), 1)


def progress_snapshot(criteria: Criteria, stats: UserStats, *, now: datetime) -> dict[str, float]:
    """JSON-ready progress stored alongside an award."""
    measured = current_and_target(criteria, stats, now=now)
    if measured is None:
        return {}
    current, target = measured
    return {
        "current": current,
        "target": target,
        "percent": round(min(100.0, current / target * 100), 1),
    }
