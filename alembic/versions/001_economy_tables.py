"""Economy tables.

Creates accounts, currency_transactions, active_sessions, game_results,
score_flags, user_achievements, daily_challenge_progress, daily_login_claims,
ban_records, leaderboard_scores and friendships.

Revision ID: 001_economy_tables
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_economy_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Accounts ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS accounts (
            id VARCHAR(128) PRIMARY KEY,
            oranges BIGINT NOT NULL DEFAULT 0,
            gems BIGINT NOT NULL DEFAULT 0,
            lifetime_oranges BIGINT NOT NULL DEFAULT 0,
            lifetime_gems BIGINT NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_accounts_oranges_non_negative CHECK (oranges >= 0),
            CONSTRAINT ck_accounts_gems_non_negative CHECK (gems >= 0)
        )
    """)

    # --- Currency Transactions (append-only) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS currency_transactions (
            id BIGSERIAL PRIMARY KEY,
            account_id VARCHAR(128) NOT NULL REFERENCES accounts(id) ON DELETE RESTRICT,
            direction VARCHAR(8) NOT NULL,
            currency VARCHAR(16) NOT NULL,
            amount BIGINT NOT NULL,
            balance_after BIGINT NOT NULL,
            source VARCHAR(32) NOT NULL,
            source_ref VARCHAR(128),
            metadata JSONB NOT NULL DEFAULT '{}',
            idempotency_key VARCHAR(256) UNIQUE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_currency_tx_account_created
        ON currency_transactions(account_id, created_at)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_currency_tx_source
        ON currency_transactions(source)
    """)

    # --- Active Sessions (one per account) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS active_sessions (
            account_id VARCHAR(128) PRIMARY KEY REFERENCES accounts(id) ON DELETE CASCADE,
            session_id VARCHAR(64) NOT NULL,
            activity_id VARCHAR(32) NOT NULL,
            started_at TIMESTAMPTZ NOT NULL,
            last_heartbeat TIMESTAMPTZ NOT NULL
        )
    """)

    # --- Game Results ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS game_results (
            id BIGSERIAL PRIMARY KEY,
            session_id VARCHAR(64) UNIQUE NOT NULL,
            account_id VARCHAR(128) NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
            activity_id VARCHAR(32) NOT NULL,
            score BIGINT NOT NULL,
            duration_seconds INTEGER NOT NULL DEFAULT 0,
            reward_oranges INTEGER NOT NULL DEFAULT 0,
            flagged BOOLEAN NOT NULL DEFAULT false,
            below_minimum BOOLEAN NOT NULL DEFAULT false,
            completed_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_game_results_activity
        ON game_results(activity_id, flagged)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_game_results_account
        ON game_results(account_id, activity_id)
    """)

    # --- Score Flags (abuse audit) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS score_flags (
            id BIGSERIAL PRIMARY KEY,
            account_id VARCHAR(128) NOT NULL,
            activity_id VARCHAR(32) NOT NULL,
            session_id VARCHAR(64),
            score BIGINT NOT NULL,
            reason VARCHAR(32) NOT NULL,
            details JSONB NOT NULL DEFAULT '{}',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_score_flags_account
        ON score_flags(account_id)
    """)

    # --- Achievement Progress ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievements (
            id BIGSERIAL PRIMARY KEY,
            account_id VARCHAR(128) NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
            achievement_id VARCHAR(32) NOT NULL,
            progress BIGINT NOT NULL DEFAULT 0,
            target BIGINT NOT NULL,
            completed_at TIMESTAMPTZ,
            claimed_at TIMESTAMPTZ,
            reward_oranges INTEGER NOT NULL DEFAULT 0,
            reward_gems INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_achievements_account_item UNIQUE (account_id, achievement_id),
            CONSTRAINT ck_user_achievements_claim_after_complete
                CHECK (claimed_at IS NULL OR completed_at IS NOT NULL)
        )
    """)

    # --- Daily Challenge Progress ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_challenge_progress (
            id BIGSERIAL PRIMARY KEY,
            account_id VARCHAR(128) NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
            challenge_date DATE NOT NULL,
            challenge_id VARCHAR(32) NOT NULL,
            progress BIGINT NOT NULL DEFAULT 0,
            target BIGINT NOT NULL,
            completed_at TIMESTAMPTZ,
            claimed_at TIMESTAMPTZ,
            reward_oranges INTEGER NOT NULL DEFAULT 0,
            reward_gems INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_daily_challenge_account_day_item UNIQUE (account_id, challenge_date, challenge_id),
            CONSTRAINT ck_daily_challenge_claim_after_complete
                CHECK (claimed_at IS NULL OR completed_at IS NOT NULL)
        )
    """)

    # --- Daily Login Claims ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_login_claims (
            id BIGSERIAL PRIMARY KEY,
            account_id VARCHAR(128) NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
            claim_date DATE NOT NULL,
            streak_day INTEGER NOT NULL,
            streak_length INTEGER NOT NULL,
            oranges_claimed INTEGER NOT NULL DEFAULT 0,
            gems_claimed INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_daily_login_account_day UNIQUE (account_id, claim_date)
        )
    """)

    # --- Ban Records ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS ban_records (
            account_id VARCHAR(128) PRIMARY KEY,
            reason TEXT NOT NULL,
            evidence JSONB NOT NULL DEFAULT '{}',
            appeal_status VARCHAR(16) NOT NULL DEFAULT 'none',
            banned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Leaderboard Scores ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS leaderboard_scores (
            id BIGSERIAL PRIMARY KEY,
            account_id VARCHAR(128) NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
            activity_id VARCHAR(32) NOT NULL,
            score BIGINT NOT NULL,
            level INTEGER,
            metadata JSONB NOT NULL DEFAULT '{}',
            idempotency_key VARCHAR(256) UNIQUE NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_leaderboard_activity_score
        ON leaderboard_scores(activity_id, score DESC)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_leaderboard_account_activity
        ON leaderboard_scores(account_id, activity_id)
    """)

    # --- Friendships (written by the social service) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS friendships (
            id BIGSERIAL PRIMARY KEY,
            account_id VARCHAR(128) NOT NULL,
            friend_id VARCHAR(128) NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_friendships_pair UNIQUE (account_id, friend_id)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS friendships CASCADE")
    op.execute("DROP TABLE IF EXISTS leaderboard_scores CASCADE")
    op.execute("DROP TABLE IF EXISTS ban_records CASCADE")
    op.execute("DROP TABLE IF EXISTS daily_login_claims CASCADE")
    op.execute("DROP TABLE IF EXISTS daily_challenge_progress CASCADE")
    op.execute("DROP TABLE IF EXISTS user_achievements CASCADE")
    op.execute("DROP TABLE IF EXISTS score_flags CASCADE")
    op.execute("DROP TABLE IF EXISTS game_results CASCADE")
    op.execute("DROP TABLE IF EXISTS active_sessions CASCADE")
    op.execute("DROP TABLE IF EXISTS currency_transactions CASCADE")
    op.execute("DROP TABLE IF EXISTS accounts CASCADE")
