"""ORM models for the arcade economy.

One fixed schema, created by Alembic revision 001_economy_tables.
Account ids are opaque strings owned by the identity provider.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from wojak.db.base import Base, BigIntPK, JSONType


# ---------------------------------------------------------------------------
# Accounts & ledger
# ---------------------------------------------------------------------------


class Account(Base):
    """Currency balances for one identity-provider user. Mutated only by the ledger."""

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("oranges >= 0", name="ck_accounts_oranges_non_negative"),
        CheckConstraint("gems >= 0", name="ck_accounts_gems_non_negative"),
    )

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    oranges: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    gems: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    lifetime_oranges: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    lifetime_gems: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CurrencyTransaction(Base):
    """Append-only currency log. Signed amounts per currency sum to the account balance."""

    __tablename__ = "currency_transactions"
    __table_args__ = (
        Index("idx_currency_tx_account_created", "account_id", "created_at"),
        Index("idx_currency_tx_source", "source"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=False
    )
    direction: Mapped[str] = mapped_column(String(8), nullable=False)  # earn | spend
    currency: Mapped[str] = mapped_column(String(16), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    balance_after: Mapped[int] = mapped_column(BigInteger, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    source_ref: Mapped[str | None] = mapped_column(String(128), nullable=True)
    tx_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSONType, nullable=False, default=dict)
    idempotency_key: Mapped[str | None] = mapped_column(String(256), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Gameplay
# ---------------------------------------------------------------------------


class ActiveSession(Base):
    """At most one live gameplay session per account; liveness is the heartbeat age."""

    __tablename__ = "active_sessions"

    account_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    session_id: Mapped[str] = mapped_column(String(64), nullable=False)
    activity_id: Mapped[str] = mapped_column(String(32), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_heartbeat: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class GameResult(Base):
    """Finished games, one per session.

    Below-minimum games are kept with no reward so a retry replays the same
    outcome; they are left out of anomaly statistics and progress metrics.
    """

    __tablename__ = "game_results"
    __table_args__ = (
        Index("idx_game_results_activity", "activity_id", "flagged"),
        Index("idx_game_results_account", "account_id", "activity_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    account_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    activity_id: Mapped[str] = mapped_column(String(32), nullable=False)
    score: Mapped[int] = mapped_column(BigInteger, nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reward_oranges: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    flagged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    below_minimum: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ScoreFlag(Base):
    """Abuse-audit sink for anomaly verdicts. Read by moderation tooling only."""

    __tablename__ = "score_flags"
    __table_args__ = (Index("idx_score_flags_account", "account_id"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(String(128), nullable=False)
    activity_id: Mapped[str] = mapped_column(String(32), nullable=False)
    session_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    score: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reason: Mapped[str] = mapped_column(String(32), nullable=False)
    details: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Progress records
# ---------------------------------------------------------------------------


class UserAchievement(Base):
    """Lifetime achievement progress. completed_at and claimed_at are each set once."""

    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("account_id", "achievement_id", name="uq_user_achievements_account_item"),
        CheckConstraint(
            "claimed_at IS NULL OR completed_at IS NOT NULL",
            name="ck_user_achievements_claim_after_complete",
        ),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    achievement_id: Mapped[str] = mapped_column(String(32), nullable=False)
    progress: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    target: Mapped[int] = mapped_column(BigInteger, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reward_oranges: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    reward_gems: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class DailyChallengeProgress(Base):
    """Day-scoped challenge progress; a new UTC day means a new row."""

    __tablename__ = "daily_challenge_progress"
    __table_args__ = (
        UniqueConstraint(
            "account_id", "challenge_date", "challenge_id", name="uq_daily_challenge_account_day_item"
        ),
        CheckConstraint(
            "claimed_at IS NULL OR completed_at IS NOT NULL",
            name="ck_daily_challenge_claim_after_complete",
        ),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    challenge_date: Mapped[date] = mapped_column(Date, nullable=False)
    challenge_id: Mapped[str] = mapped_column(String(32), nullable=False)
    progress: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    target: Mapped[int] = mapped_column(BigInteger, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reward_oranges: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    reward_gems: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class DailyLoginClaim(Base):
    """One row per account per UTC day the login reward was claimed."""

    __tablename__ = "daily_login_claims"
    __table_args__ = (
        UniqueConstraint("account_id", "claim_date", name="uq_daily_login_account_day"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    claim_date: Mapped[date] = mapped_column(Date, nullable=False)
    streak_day: Mapped[int] = mapped_column(Integer, nullable=False)
    streak_length: Mapped[int] = mapped_column(Integer, nullable=False)
    oranges_claimed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    gems_claimed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


class BanRecord(Base):
    """Presence blocks all reward paths unless the appeal was approved."""

    __tablename__ = "ban_records"

    account_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    evidence: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    appeal_status: Mapped[str] = mapped_column(String(16), nullable=False, default="none", server_default="none")
    banned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Leaderboard & social
# ---------------------------------------------------------------------------


class LeaderboardScore(Base):
    """Submitted leaderboard scores."""

    __tablename__ = "leaderboard_scores"
    __table_args__ = (
        Index("idx_leaderboard_activity_score", "activity_id", "score"),
        Index("idx_leaderboard_account_activity", "account_id", "activity_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    activity_id: Mapped[str] = mapped_column(String(32), nullable=False)
    score: Mapped[int] = mapped_column(BigInteger, nullable=False)
    level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    score_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSONType, nullable=False, default=dict)
    idempotency_key: Mapped[str] = mapped_column(String(256), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Friendship(Base):
    """Friend links, maintained by the social service; read here to gate gifting."""

    __tablename__ = "friendships"
    __table_args__ = (
        UniqueConstraint("account_id", "friend_id", name="uq_friendships_pair"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(String(128), nullable=False)
    friend_id: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
