"""Badge catalog: typed definitions and the process-wide registry.

The catalog is loaded once, validated completely, and then only read. Any
problem in the static data raises ``CatalogError`` so a bad deploy fails at
start-up instead of silently never awarding a badge.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from functools import lru_cache
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from prompthub.gamification.badge_definitions import BADGE_CATALOG_DATA
from prompthub.gamification.criteria import BadgeCategory, BadgeTier, Criteria
from prompthub.gamification.exceptions import CatalogError

logger = logging.getLogger(__name__)


class BadgeLevel(BaseModel):
    """One step of a leveled badge. ``criteria`` is the badge criteria with ``params`` merged in."""

    model_config = ConfigDict(frozen=True)

    level: int = Field(ge=1)
    name: str
    tier: BadgeTier
    params: dict[str, object] = Field(default_factory=dict)
    criteria: Criteria


class BadgeDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(pattern=r"^[a-z][a-z0-9_]*$", max_length=64)
    name: str
    description: str
    icon: str
    tier: BadgeTier
    category: BadgeCategory
    criteria: Criteria
    levels: tuple[BadgeLevel, ...] = ()

    @model_validator(mode="after")
    def _check_levels(self) -> BadgeDefinition:
        previous = 0
        for lvl in self.levels:
            if lvl.level != previous + 1:
                msg = f"levels must be 1-based and strictly increasing, got {lvl.level} after {previous}"
                raise ValueError(msg)
            if lvl.criteria.type != self.criteria.type:
                msg = f"level {lvl.level} criteria type {lvl.criteria.type!r} differs from {self.criteria.type!r}"
                raise ValueError(msg)
            previous = lvl.level
        return self

    @property
    def is_leveled(self) -> bool:
        return bool(self.levels)

    @property
    def max_level(self) -> int:
        return self.levels[-1].level if self.levels else 1

    def level_info(self, level: int) -> BadgeLevel | None:
        for lvl in self.levels:
            if lvl.level == level:
                return lvl
        return None


class BadgeCatalog:
    """Read-only, ordered registry of badge definitions."""

    def __init__(self, badges: Iterable[BadgeDefinition]) -> None:
        self._badges: tuple[BadgeDefinition, ...] = tuple(badges)
        by_id: dict[str, BadgeDefinition] = {}
        for badge in self._badges:
            if badge.id in by_id:
                msg = f"duplicate badge id {badge.id!r}"
                raise CatalogError(msg)
            by_id[badge.id] = badge
        self._by_id = MappingProxyType(by_id)

    def __iter__(self) -> Iterator[BadgeDefinition]:
        return iter(self._badges)

    def __len__(self) -> int:
        return len(self._badges)

    def __contains__(self, badge_id: object) -> bool:
        return badge_id in self._by_id

    def get(self, badge_id: str) -> BadgeDefinition | None:
        return self._by_id.get(badge_id)

    def by_category(self, category: BadgeCategory | str) -> list[BadgeDefinition]:
        return [b for b in self._badges if b.category == category]

    def by_tier(self, tier: BadgeTier | str) -> list[BadgeDefinition]:
        return [b for b in self._badges if b.tier == tier]

    def tier_for(self, badge_id: str, level: int = 1) -> BadgeTier | None:
        """Tier a held badge counts as: the level's tier when leveled, else the badge tier.

        Returns None for ids no longer in the catalog.
        """
        badge = self._by_id.get(badge_id)
        if badge is None:
            return None
        lvl = badge.level_info(level)
        return lvl.tier if lvl is not None else badge.tier

    def level_criteria(self, badge: BadgeDefinition) -> list[tuple[int, Criteria]]:
        """(level, criteria) pairs to evaluate, lowest level first."""
        if badge.levels:
            return [(lvl.level, lvl.criteria) for lvl in badge.levels]
        return [(1, badge.criteria)]


def _expand_levels(entry: dict) -> dict:
    """Merge each level's params into the shared criteria.

    The badge-level ``criteria`` becomes the level-1 criteria so every
    definition carries a complete, validated predicate.
    """
    levels = entry.get("levels")
    if not levels:
        return entry
    base = dict(entry.get("criteria") or {})
    expanded = []
    for raw in levels:
        lvl = dict(raw)
        lvl["criteria"] = {**base, **lvl.get("params", {})}
        expanded.append(lvl)
    return {**entry, "criteria": expanded[0]["criteria"], "levels": expanded}


def load_catalog(data: Iterable[dict]) -> BadgeCatalog:
    """Parse and validate raw badge entries.

    Raises:
        CatalogError: On unknown criteria types, invalid parameters,
            malformed levels or duplicate ids.
    """
    badges: list[BadgeDefinition] = []
    for index, entry in enumerate(data):
        badge_id = entry.get("id", f"#{index}")
        try:
            badges.append(BadgeDefinition.model_validate(_expand_levels(entry)))
        except ValidationError as e:
            msg = f"invalid badge {badge_id!r}: {e}"
            raise CatalogError(msg) from e
    return BadgeCatalog(badges)


@lru_cache
def get_catalog() -> BadgeCatalog:
    """The process-wide catalog, built from ``BADGE_CATALOG_DATA`` on first use."""
    catalog = load_catalog(BADGE_CATALOG_DATA)
    logger.info("Loaded badge catalog with %d badges", len(catalog))
    return catalog
