"""Leaderboard score submission and per-game top lists."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wojak.db.models import LeaderboardScore
from wojak.economy.catalog import TOP_TEN, Activity, Metric
from wojak.economy.day_utils import utc_now
from wojak.economy.ledger import get_or_create_account
from wojak.moderation.ban_gate import ensure_not_banned
from wojak.progress.metrics import completed_ids, track_metric

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionResult:
    score: int
    rank: int
    is_new_high_score: bool
    previous_high_score: int | None
    already_applied: bool = False
    completed_achievements: tuple[str, ...] = ()


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    account_id: str
    score: int


def submission_key(account_id: str, activity: Activity, client_key: str) -> str:
    return f"lb:{account_id}:{activity.value}:{client_key}"


async def _best_score(db: AsyncSession, account_id: str, activity: Activity) -> int | None:
    result = await db.execute(
        select(func.max(LeaderboardScore.score)).where(
            LeaderboardScore.account_id == account_id,
            LeaderboardScore.activity_id == activity.value,
        )
    )
    return result.scalar_one_or_none()


async def rank_of(db: AsyncSession, activity: Activity, score: int, account_id: str) -> int:
    """1 + number of other players whose best score beats ``score``."""
    result = await db.execute(
        select(func.count(func.distinct(LeaderboardScore.account_id))).where(
            LeaderboardScore.activity_id == activity.value,
            LeaderboardScore.score > score,
            LeaderboardScore.account_id != account_id,
        )
    )
    return (result.scalar_one() or 0) + 1


async def _existing(db: AsyncSession, key: str) -> LeaderboardScore | None:
    result = await db.execute(select(LeaderboardScore).where(LeaderboardScore.idempotency_key == key))
    return result.scalar_one_or_none()


async def _replay(db: AsyncSession, account_id: str, activity: Activity, row: LeaderboardScore) -> SubmissionResult:
    return SubmissionResult(
        score=row.score,
        rank=await rank_of(db, activity, row.score, account_id),
        is_new_high_score=False,
        previous_high_score=await _best_score(db, account_id, activity),
        already_applied=True,
    )


async def submit_score(
    db: AsyncSession,
    account_id: str,
    activity: Activity,
    score: int,
    client_key: str,
    level: int | None = None,
    metadata: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> SubmissionResult:
    """Record a score once per client key and report its standing."""
    now = now or utc_now()
    await ensure_not_banned(db, account_id)
    await get_or_create_account(db, account_id, now)

    key = submission_key(account_id, activity, client_key)
    existing = await _existing(db, key)
    if existing is not None:
        return await _replay(db, account_id, activity, existing)

    previous = await _best_score(db, account_id, activity)
    try:
        async with db.begin_nested():
            db.add(LeaderboardScore(
                account_id=account_id,
                activity_id=activity.value,
                score=score,
                level=level,
                score_metadata=metadata or {},
                idempotency_key=key,
                created_at=now,
            ))
            await db.flush()
    except IntegrityError:
        logger.info("Concurrent duplicate leaderboard submission %s", key)
        return await _replay(db, account_id, activity, await _existing(db, key))  # type: ignore[arg-type]

    rank = await rank_of(db, activity, score, account_id)
    is_new_high_score = previous is None or score > previous

    completed: list[str] = []
    if rank <= TOP_TEN and is_new_high_score:
        updates = await track_metric(db, account_id, Metric.TOP_TEN_PLACEMENTS, 1, now)
        completed = [a.value for a in completed_ids(updates)]

    logger.info("Leaderboard %s: %s scored %d (rank %d)", activity.value, account_id, score, rank)
    return SubmissionResult(
        score=score,
        rank=rank,
        is_new_high_score=is_new_high_score,
        previous_high_score=previous,
        completed_achievements=tuple(completed),
    )


async def top_scores(db: AsyncSession, activity: Activity, limit: int = 10) -> list[LeaderboardEntry]:
    """Each player's best score for the game, highest first."""
    best = func.max(LeaderboardScore.score).label("best")
    result = await db.execute(
        select(LeaderboardScore.account_id, best)
        .where(LeaderboardScore.activity_id == activity.value)
        .group_by(LeaderboardScore.account_id)
        .order_by(best.desc(), LeaderboardScore.account_id)
        .limit(limit)
    )
    return [
        LeaderboardEntry(rank=i, account_id=row.account_id, score=row.best)
        for i, row in enumerate(result.all(), start=1)
    ]
