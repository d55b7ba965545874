"""Activity events and the Redis Streams outbox.

Triggering actions publish a typed event instead of evaluating badges in
the request path. The badge worker consumes the stream and re-evaluates
every user the event affects.

Stream entry fields:
    event: the event ``type`` tag
    ts:    publish time, epoch seconds
    data:  the event model as JSON
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Annotated, Literal, Union

import redis.asyncio as aioredis
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from prompthub.config import get_settings

logger = logging.getLogger(__name__)


class _ActivityEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    def affected_user_ids(self) -> tuple[int, ...]:
        """Users whose stats this activity changes."""
        raise NotImplementedError


class PromptCreated(_ActivityEvent):
    type: Literal["prompt_created"] = "prompt_created"
    prompt_id: int
    author_id: int

    def affected_user_ids(self) -> tuple[int, ...]:
        return (self.author_id,)


class PromptLiked(_ActivityEvent):
    type: Literal["prompt_liked"] = "prompt_liked"
    prompt_id: int
    author_id: int
    actor_id: int

    def affected_user_ids(self) -> tuple[int, ...]:
        return (self.author_id,)


class PromptSaved(_ActivityEvent):
    type: Literal["prompt_saved"] = "prompt_saved"
    prompt_id: int
    author_id: int
    actor_id: int

    def affected_user_ids(self) -> tuple[int, ...]:
        return (self.author_id,)


class PromptRated(_ActivityEvent):
    type: Literal["prompt_rated"] = "prompt_rated"
    prompt_id: int
    author_id: int
    actor_id: int
    rating: float = Field(ge=1, le=5)

    def affected_user_ids(self) -> tuple[int, ...]:
        return (self.author_id,)


class CommentPosted(_ActivityEvent):
    """A comment or reply. Replies also change the parent author's reply counts."""

    type: Literal["comment_posted"] = "comment_posted"
    comment_id: int
    prompt_id: int
    author_id: int
    parent_author_id: int | None = None

    def affected_user_ids(self) -> tuple[int, ...]:
        if self.parent_author_id is None or self.parent_author_id == self.author_id:
            return (self.author_id,)
        return (self.author_id, self.parent_author_id)


class CommentLiked(_ActivityEvent):
    type: Literal["comment_liked"] = "comment_liked"
    comment_id: int
    author_id: int
    actor_id: int

    def affected_user_ids(self) -> tuple[int, ...]:
        return (self.author_id,)


class UserFollowed(_ActivityEvent):
    type: Literal["user_followed"] = "user_followed"
    follower_id: int
    followed_id: int

    def affected_user_ids(self) -> tuple[int, ...]:
        if self.follower_id == self.followed_id:
            return (self.follower_id,)
        return (self.follower_id, self.followed_id)


ActivityEvent = Annotated[
    Union[PromptCreated, PromptLiked, PromptSaved, PromptRated, CommentPosted, CommentLiked, UserFollowed],
    Field(discriminator="type"),
]

_event_adapter: TypeAdapter[ActivityEvent] = TypeAdapter(ActivityEvent)


async def publish_activity(redis: aioredis.Redis | None, event: ActivityEvent) -> str | None:
    """XADD an event onto the activity stream.

    Best-effort: returns the stream entry id, or None when Redis is absent
    or the write fails. Never raises.
    """
    if redis is None:
        logger.warning("Redis not configured, dropping activity event %s", event.type)
        return None

    settings = get_settings()
    fields = {
        "event": event.type,
        "ts": f"{time.time():.6f}",
        "data": event.model_dump_json(),
    }
    try:
        entry_id = await redis.xadd(
            settings.activity_stream,
            fields,
            maxlen=settings.activity_stream_maxlen,
            approximate=True,
        )
    except aioredis.RedisError:
        logger.exception("Failed to publish %s to %s", event.type, settings.activity_stream)
        return None
    return entry_id if isinstance(entry_id, str) else entry_id.decode()


def parse_activity(raw: Mapping[str, str]) -> ActivityEvent | None:
    """Decode stream entry fields into an event, or None when malformed."""
    data = raw.get("data")
    if not data:
        return None
    try:
        return _event_adapter.validate_json(data)
    except ValidationError:
        logger.warning("Malformed activity payload: %.200s", data)
        return None
