"""User lookups shared by the auth dependency and the badge routes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from prompthub.db.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()
