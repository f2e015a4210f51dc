"""Initial schema.

Creates users, refresh_tokens, badges, user_badges, roadbooks, sessions,
competencies, competency_progress and notifications.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id SERIAL PRIMARY KEY,
            email VARCHAR(320) UNIQUE NOT NULL,
            password_hash VARCHAR(256) NOT NULL,
            display_name VARCHAR(64) NOT NULL,
            role VARCHAR(16) NOT NULL DEFAULT 'APPRENTICE',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            last_login TIMESTAMPTZ
        )
    """)

    # --- Refresh Tokens ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS refresh_tokens (
            id VARCHAR(36) PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            token_hash VARCHAR(128) NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'ACTIVE',
            issued_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            expires_at TIMESTAMPTZ NOT NULL,
            revoked_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_refresh_tokens_user_id_status
        ON refresh_tokens(user_id, status)
    """)

    # --- Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badges (
            id SERIAL PRIMARY KEY,
            name VARCHAR(128) UNIQUE NOT NULL,
            description TEXT NOT NULL,
            image_url VARCHAR(512),
            category VARCHAR(32) NOT NULL,
            criteria VARCHAR(64) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            badge_id INTEGER NOT NULL REFERENCES badges(id) ON DELETE CASCADE,
            awarded_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_badges_user_id_badge_id UNIQUE (user_id, badge_id)
        )
    """)

    # --- Driving history ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS roadbooks (
            id SERIAL PRIMARY KEY,
            title VARCHAR(128) NOT NULL,
            apprentice_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            guide_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'ACTIVE',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS sessions (
            id SERIAL PRIMARY KEY,
            roadbook_id INTEGER REFERENCES roadbooks(id) ON DELETE CASCADE,
            apprentice_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            validator_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            date DATE NOT NULL,
            start_time TIMESTAMPTZ NOT NULL,
            end_time TIMESTAMPTZ,
            duration INTEGER,
            distance DOUBLE PRECISION,
            weather VARCHAR(16),
            daylight VARCHAR(16),
            road_types JSONB NOT NULL DEFAULT '[]',
            validation_date TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_sessions_apprentice
        ON sessions(apprentice_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_sessions_validator
        ON sessions(validator_id)
    """)

    # --- Competencies ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS competencies (
            id SERIAL PRIMARY KEY,
            name VARCHAR(256) NOT NULL,
            description TEXT,
            category VARCHAR(32) NOT NULL,
            phase VARCHAR(16),
            official_code VARCHAR(16)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS competency_progress (
            id SERIAL PRIMARY KEY,
            apprentice_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            competency_id INTEGER NOT NULL REFERENCES competencies(id) ON DELETE CASCADE,
            status VARCHAR(16) NOT NULL DEFAULT 'NOT_STARTED',
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_competency_progress_apprentice_competency UNIQUE (apprentice_id, competency_id)
        )
    """)

    # --- Notifications ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            type VARCHAR(32) NOT NULL,
            title VARCHAR(256) NOT NULL,
            message TEXT NOT NULL,
            link_url VARCHAR(256),
            is_read BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_notifications_user_id_is_read
        ON notifications(user_id, is_read)
    """)


def downgrade() -> None:
    for table in (
        "notifications",
        "competency_progress",
        "competencies",
        "sessions",
        "roadbooks",
        "user_badges",
        "badges",
        "refresh_tokens",
        "users",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
