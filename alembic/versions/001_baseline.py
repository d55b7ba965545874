"""Baseline: activity store and badge engine tables.

Creates users, prompts, comments and follows (owned by the content service,
read here) plus user_stats and user_badges (written by the badge engine).

Revision ID: 001_baseline
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            display_name VARCHAR(64) NOT NULL,
            email VARCHAR(320) UNIQUE,
            avatar_url TEXT,
            bio VARCHAR(280),
            is_banned BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Prompts ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS prompts (
            id BIGSERIAL PRIMARY KEY,
            created_by BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            title VARCHAR(200) NOT NULL,
            content TEXT NOT NULL,
            category VARCHAR(64) NOT NULL,
            ai_agents JSONB NOT NULL DEFAULT '[]',
            likes INTEGER NOT NULL DEFAULT 0,
            saves INTEGER NOT NULL DEFAULT 0,
            rating DOUBLE PRECISION,
            is_private BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_prompts_created_by
        ON prompts(created_by, created_at)
    """)

    # --- Comments ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS comments (
            id BIGSERIAL PRIMARY KEY,
            prompt_id BIGINT NOT NULL REFERENCES prompts(id) ON DELETE CASCADE,
            author_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            parent_id BIGINT REFERENCES comments(id) ON DELETE CASCADE,
            content TEXT NOT NULL,
            likes INTEGER NOT NULL DEFAULT 0,
            is_deleted BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_comments_author
        ON comments(author_id, created_at)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_comments_parent
        ON comments(parent_id)
    """)

    # --- Follows ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS follows (
            id BIGSERIAL PRIMARY KEY,
            follower_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            followed_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE(follower_id, followed_id)
        )
    """)

    # --- User Stats (last computed snapshot) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_stats (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            stats JSONB NOT NULL,
            computed_at TIMESTAMPTZ NOT NULL
        )
    """)

    # --- User Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            badge_id VARCHAR(64) NOT NULL,
            level INTEGER NOT NULL DEFAULT 1,
            earned_at TIMESTAMPTZ NOT NULL,
            progress JSONB NOT NULL DEFAULT '{}',
            UNIQUE(user_id, badge_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_badges_earned
        ON user_badges(earned_at)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_badges CASCADE")
    op.execute("DROP TABLE IF EXISTS user_stats CASCADE")
    op.execute("DROP TABLE IF EXISTS follows CASCADE")
    op.execute("DROP TABLE IF EXISTS comments CASCADE")
    op.execute("DROP TABLE IF EXISTS prompts CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
