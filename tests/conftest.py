"""Shared test fixtures.

Tests run against an in-memory SQLite database (aiosqlite + StaticPool) so
the whole suite needs neither PostgreSQL nor Redis. Redis-dependent code is
given ``None`` or an ``AsyncMock``.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Sequence
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from prompthub.config import get_settings
from prompthub.database import close_db, get_engine, get_session_factory, init_db
from prompthub.db.base import Base
from prompthub.db.models import Comment, Follow, Prompt, User, UserBadge

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def days_ago(days: float) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


def last_wednesday() -> datetime:
    """Noon UTC on the most recent Wednesday strictly before today.

    Prompt timestamps default to this so weekend and streak counters stay
    predictable whatever day the suite runs.
    """
    today = datetime.now(timezone.utc).replace(hour=12, minute=0, second=0, microsecond=0)
    back = (today.weekday() - 2) % 7 or 7
    return today - timedelta(days=back)


@pytest.fixture(scope="session")
def jwt_keys(tmp_path_factory: pytest.TempPathFactory) -> tuple[str, str]:
    """Generate an RSA key pair and point settings at it."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    keydir = tmp_path_factory.mktemp("jwt_keys")
    private_path = keydir / "jwt_private.pem"
    public_path = keydir / "jwt_public.pem"
    private_path.write_bytes(
        key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    public_path.write_bytes(
        key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )

    os.environ["PHUB_JWT_PRIVATE_KEY_PATH"] = str(private_path)
    os.environ["PHUB_JWT_PUBLIC_KEY_PATH"] = str(public_path)
    get_settings.cache_clear()
    from prompthub.auth.jwt import reset_keys

    reset_keys()
    return str(private_path), str(public_path)


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory schema per test, wired into prompthub.database."""
    await init_db(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with get_session_factory()() as session:
        yield session

    await close_db()


@pytest_asyncio.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against a fresh app (lifespan not run; DB from ``db``)."""
    from prompthub.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class Factory:
    """Inserts activity rows and commits immediately."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._seq = 0

    async def _save(self, obj: object) -> None:
        self.db.add(obj)
        await self.db.commit()

    async def user(
        self,
        display_name: str | None = None,
        *,
        created_at: datetime | None = None,
        avatar_url: str | None = None,
        is_banned: bool = False,
    ) -> User:
        self._seq += 1
        user = User(
            display_name=display_name or f"user{self._seq}",
            avatar_url=avatar_url,
            is_banned=is_banned,
            created_at=created_at or days_ago(1),
        )
        await self._save(user)
        return user

    async def prompt(
        self,
        author: User,
        *,
        category: str = "Writing",
        ai_agents: Sequence[str] = ("ChatGPT",),
        likes: int = 0,
        saves: int = 0,
        rating: float | None = None,
        created_at: datetime | None = None,
    ) -> Prompt:
        self._seq += 1
        prompt = Prompt(
            created_by=author.id,
            title=f"Prompt {self._seq}",
            content="Explain it like I'm five.",
            category=category,
            ai_agents=list(ai_agents),
            likes=likes,
            saves=saves,
            rating=rating,
            created_at=created_at or last_wednesday(),
        )
        await self._save(prompt)
        return prompt

    async def prompts(self, author: User, count: int, **kwargs: object) -> list[Prompt]:
        return [await self.prompt(author, **kwargs) for _ in range(count)]

    async def comment(
        self,
        author: User,
        prompt: Prompt,
        *,
        parent: Comment | None = None,
        likes: int = 0,
        is_deleted: bool = False,
    ) -> Comment:
        comment = Comment(
            prompt_id=prompt.id,
            author_id=author.id,
            parent_id=parent.id if parent else None,
            content="Nice one",
            likes=likes,
            is_deleted=is_deleted,
            created_at=days_ago(0.5),
        )
        await self._save(comment)
        return comment

    async def follow(self, follower: User, followed: User) -> Follow:
        edge = Follow(follower_id=follower.id, followed_id=followed.id, created_at=days_ago(0.5))
        await self._save(edge)
        return edge

    async def award(self, user: User, badge_id: str, *, level: int = 1, earned_at: datetime | None = None) -> UserBadge:
        award = UserBadge(
            user_id=user.id,
            badge_id=badge_id,
            level=level,
            earned_at=earned_at or days_ago(1),
            progress={},
        )
        await self._save(award)
        return award


@pytest_asyncio.fixture
async def factory(db: AsyncSession) -> Factory:
    return Factory(db)


@pytest_asyncio.fixture
async def auth_headers(jwt_keys: tuple[str, str], factory: Factory) -> tuple[User, dict[str, str]]:
    """A user and a bearer header carrying a valid access token for them."""
    from prompthub.auth.jwt import create_access_token

    user = await factory.user("alice")
    token = create_access_token(user.id, user.display_name)
    return user, {"Authorization": f"Bearer {token}"}
