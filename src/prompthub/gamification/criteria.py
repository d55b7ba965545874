"""Badge tiers, categories and the closed set of unlock criteria.

Each criteria variant carries its own typed parameters and is selected by
its ``type`` tag. Adding a variant means adding a model here, adding it to
``Criteria`` and giving it a ``case`` in ``validators.criteria_met``.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class BadgeTier(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"

    @property
    def rank(self) -> int:
        """Ordinal position, common=0 .. legendary=4."""
        return TIER_ORDER.index(self)


TIER_ORDER: tuple[BadgeTier, ...] = tuple(BadgeTier)


class BadgeCategory(str, Enum):
    CONTENT_CREATION = "content_creation"
    ENGAGEMENT = "engagement"
    SOCIAL = "social"
    TIME_BASED = "time_based"
    SPECIALTY = "specialty"
    MILESTONE = "milestone"


# Numeric UserStats counters a threshold criteria may name.
StatField = Literal[
    "total_prompts",
    "total_likes",
    "total_saves",
    "rated_prompts",
    "quality_prompts",
    "viral_prompts",
    "weekend_prompts",
    "consecutive_days",
    "followers",
    "following",
    "total_comments",
    "total_comment_likes",
    "total_replies",
    "comments_with_replies",
    "unique_users_helped",
]


class _CriteriaBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class ThresholdCriteria(_CriteriaBase):
    type: Literal["threshold"] = "threshold"
    field: StatField
    threshold: int = Field(ge=1)


class AccountAgeCriteria(_CriteriaBase):
    type: Literal["account_age"] = "account_age"
    min_days: int = Field(ge=1)


class DiversityCriteria(_CriteriaBase):
    type: Literal["diversity"] = "diversity"
    attribute: Literal["agents", "categories"]
    min_count: int = Field(ge=1)


class QualityCriteria(_CriteriaBase):
    type: Literal["quality"] = "quality"
    min_rating: float = Field(ge=0, le=5)
    min_prompts: int = Field(ge=1)


class ViralCriteria(_CriteriaBase):
    """At least one prompt over the aggregator's viral like threshold."""

    type: Literal["viral"] = "viral"


class SocialCriteria(_CriteriaBase):
    type: Literal["social"] = "social"
    min_followers: int = Field(default=0, ge=0)
    min_following: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _not_trivial(self) -> SocialCriteria:
        if self.min_followers == 0 and self.min_following == 0:
            msg = "social criteria needs min_followers or min_following"
            raise ValueError(msg)
        return self


class PioneerCriteria(_CriteriaBase):
    """Accounts created on or before ``cutoff``."""

    type: Literal["pioneer"] = "pioneer"
    cutoff: AwareDatetime


class SpecialtyCriteria(_CriteriaBase):
    """Any listed agent or category used, with enough prompts overall."""

    type: Literal["specialty"] = "specialty"
    agents: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    min_prompts: int = Field(ge=1)

    @model_validator(mode="after")
    def _has_target(self) -> SpecialtyCriteria:
        if not self.agents and not self.categories:
            msg = "specialty criteria needs at least one agent or category"
            raise ValueError(msg)
        return self


class HelpfulCommenterCriteria(_CriteriaBase):
    type: Literal["helpful_commenter"] = "helpful_commenter"
    min_comments: int = Field(ge=1)
    min_likes: int = Field(ge=1)


class DiscussionStarterCriteria(_CriteriaBase):
    type: Literal["discussion_starter"] = "discussion_starter"
    min_comments: int = Field(ge=1)
    min_replies: int = Field(ge=1)


class CommunityHelperCriteria(_CriteriaBase):
    type: Literal["community_helper"] = "community_helper"
    min_replies: int = Field(ge=1)
    min_unique_users: int = Field(ge=1)


Criteria = Annotated[
    Union[
        ThresholdCriteria,
        AccountAgeCriteria,
        DiversityCriteria,
        QualityCriteria,
        ViralCriteria,
        SocialCriteria,
        PioneerCriteria,
        SpecialtyCriteria,
        HelpfulCommenterCriteria,
        DiscussionStarterCriteria,
        CommunityHelperCriteria,
    ],
    Field(discriminator="type"),
]

criteria_adapter: TypeAdapter[Criteria] = TypeAdapter(Criteria)


def parse_criteria(raw: dict) -> Criteria:
    """Validate a raw ``{type, ...params}`` mapping into a criteria model."""
    return criteria_adapter.validate_python(raw)


def criteria_params(criteria: Criteria) -> dict[str, object]:
    """The criteria parameters without the ``type`` tag, JSON-ready."""
    params = criteria.model_dump(mode="json")
    params.pop("type")
    return params
