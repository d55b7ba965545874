"""UTC helpers shared by the stat aggregator, validators and leaderboard."""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Normalize to an aware UTC datetime. Naive values are taken to be UTC (SQLite)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def days_between(start: datetime, end: datetime) -> int:
    """Days from start to end, a started day counting as a whole one (never negative).

    An account 364.5 days old is 365 days old for account-age criteria.
    """
    elapsed = (as_utc(end) - as_utc(start)).total_seconds()
    return max(0, math.ceil(elapsed / 86400))


def is_weekend(dt: datetime) -> bool:
    """Saturday or Sunday in UTC."""
    return as_utc(dt).weekday() >= 5


def longest_daily_run(days: Iterable[date]) -> int:
    """Length of the longest run of consecutive calendar days."""
    ordered = sorted(set(days))
    best = run = 0
    previous: date | None = None
    for day in ordered:
        run = run + 1 if previous is not None and day - previous == timedelta(days=1) else 1
        best = max(best, run)
        previous = day
    return best


def period_start(period: str, now: datetime | None = None) -> datetime | None:
    """Start of a leaderboard window. ``all_time`` has no start."""
    if now is None:
        now = utcnow()
    match period:
        case "weekly":
            return now - timedelta(days=7)
        case "monthly":
            return now - timedelta(days=30)
        case "yearly":
            return now - timedelta(days=365)
        case _:
            return None
