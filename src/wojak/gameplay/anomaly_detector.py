"""Statistical score anomaly flagger.

Log, don't gate: a verdict only appends an audit row to ``score_flags``.
It never changes the reward or the response of the request that triggered it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wojak.db.models import GameResult, ScoreFlag
from wojak.economy.day_utils import utc_now

logger = logging.getLogger(__name__)

MIN_SAMPLES = 100
OUTLIER_MEAN_MULTIPLIER = 3
SPEED_FLOOR_SECONDS = 10
RATE_MULTIPLIER = 5

REASON_OUTLIER = "outlier_magnitude"
REASON_SPEED = "implausible_speed"
REASON_RATE = "rate_anomaly"


@dataclass(frozen=True)
class ActivityStats:
    sample_count: int
    mean_score: float
    max_score: int
    mean_duration: float
    mean_score_per_second: float


@dataclass(frozen=True)
class AnomalyVerdict:
    flagged: bool
    reason: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


NOT_FLAGGED = AnomalyVerdict(flagged=False)


def evaluate(stats: ActivityStats, score: int, duration_seconds: int) -> AnomalyVerdict:
    """Apply the heuristics in order; the first match wins."""
    if stats.sample_count < MIN_SAMPLES:
        return NOT_FLAGGED

    if score > OUTLIER_MEAN_MULTIPLIER * stats.mean_score and score > stats.max_score:
        return AnomalyVerdict(True, REASON_OUTLIER, {
            "score": score,
            "mean_score": stats.mean_score,
            "max_score": stats.max_score,
        })

    if duration_seconds < SPEED_FLOOR_SECONDS and score > stats.mean_score:
        return AnomalyVerdict(True, REASON_SPEED, {
            "score": score,
            "duration_seconds": duration_seconds,
            "mean_score": stats.mean_score,
            "mean_duration": stats.mean_duration,
        })

    if duration_seconds > 0 and stats.mean_score_per_second > 0:
        rate = score / duration_seconds
        if rate > RATE_MULTIPLIER * stats.mean_score_per_second:
            return AnomalyVerdict(True, REASON_RATE, {
                "score_per_second": rate,
                "mean_score_per_second": stats.mean_score_per_second,
            })

    return NOT_FLAGGED


async def load_stats(db: AsyncSession, activity_id: str) -> ActivityStats:
    """Aggregate the unflagged history of an activity."""
    per_second = case(
        (GameResult.duration_seconds > 0, GameResult.score * 1.0 / GameResult.duration_seconds),
        else_=None,
    )
    result = await db.execute(
        select(
            func.count(GameResult.id),
            func.avg(GameResult.score),
            func.max(GameResult.score),
            func.avg(GameResult.duration_seconds),
            func.avg(per_second),
        ).where(
            GameResult.activity_id == activity_id,
            GameResult.flagged.is_(False),
            GameResult.below_minimum.is_(False),
        )
    )
    count, mean_score, max_score, mean_duration, mean_rate = result.one()
    return ActivityStats(
        sample_count=int(count or 0),
        mean_score=float(mean_score or 0),
        max_score=int(max_score or 0),
        mean_duration=float(mean_duration or 0),
        mean_score_per_second=float(mean_rate or 0),
    )


async def detect(
    db: AsyncSession,
    activity_id: str,
    score: int,
    duration_seconds: int,
) -> AnomalyVerdict:
    stats = await load_stats(db, activity_id)
    return evaluate(stats, score, duration_seconds)


async def record_flag(
    db: AsyncSession,
    account_id: str,
    activity_id: str,
    session_id: str | None,
    score: int,
    verdict: AnomalyVerdict,
    now: datetime | None = None,
) -> None:
    db.add(ScoreFlag(
        account_id=account_id,
        activity_id=activity_id,
        session_id=session_id,
        score=score,
        reason=verdict.reason or "unknown",
        details=verdict.details,
        created_at=now or utc_now(),
    ))
    await db.flush()
    logger.info(
        "Flagged %s score %d for %s: %s", activity_id, score, account_id, verdict.reason,
    )


async def screen_score(
    db: AsyncSession,
    account_id: str,
    activity_id: str,
    session_id: str | None,
    score: int,
    duration_seconds: int,
) -> AnomalyVerdict:
    """Detect and record, swallowing failures so the reward path never depends on it."""
    try:
        async with db.begin_nested():
            verdict = await detect(db, activity_id, score, duration_seconds)
            if verdict.flagged:
                await record_flag(db, account_id, activity_id, session_id, score, verdict)
    except Exception:
        logger.warning("Anomaly screening failed for %s on %s", account_id, activity_id, exc_info=True)
        return NOT_FLAGGED
    return verdict
