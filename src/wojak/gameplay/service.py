"""Gameplay completion: turn a finished game into one idempotent reward.

Ban gate -> idempotency check -> session and score validation -> anomaly
screening (non-blocking) -> reward quote -> ledger credit, game result and
session clear -> achievement and daily-challenge progress.

The caller wraps the whole call in one unit of work (``wojak.database.atomic``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wojak.db.models import GameResult
from wojak.economy.catalog import ACTIVITY_RULES, Activity, ChallengeId, Currency, Metric
from wojak.economy.day_utils import utc_day, utc_now
from wojak.economy.errors import SessionNotFound
from wojak.economy.ledger import Balance, apply_delta, find_applied, get_balance, get_or_create_account
from wojak.economy.reward_calculator import calculate_game_reward
from wojak.gameplay.anomaly_detector import NOT_FLAGGED, AnomalyVerdict, screen_score
from wojak.gameplay.session_manager import complete_session, get_current_session
from wojak.moderation.ban_gate import ensure_not_banned
from wojak.progress.metrics import completed_ids, track_distinct_games, track_lifetime_oranges, track_metric
from wojak.progress.progress_tracker import ProgressKey, ProgressUpdate, bump

logger = logging.getLogger(__name__)


@dataclass
class GameCompletion:
    balance: Balance
    reward_oranges: int = 0
    reward_gems: int = 0
    breakdown: dict[str, Any] | None = None
    already_applied: bool = False
    below_minimum: bool = False
    min_score: int | None = None
    completed_achievements: list[str] = field(default_factory=list)
    completed_challenges: list[str] = field(default_factory=list)
    # Internal only; never rendered in responses.
    verdict: AnomalyVerdict = NOT_FLAGGED


def game_idempotency_key(session_id: str) -> str:
    return f"game:{session_id}"


async def _replay(db: AsyncSession, account_id: str, applied: dict[Currency, int]) -> GameCompletion:
    balance = await get_balance(db, account_id)
    return GameCompletion(
        balance=balance,  # type: ignore[arg-type]
        reward_oranges=applied.get(Currency.ORANGES, 0),
        reward_gems=applied.get(Currency.GEMS, 0),
        already_applied=True,
    )


async def _find_below_minimum(db: AsyncSession, session_id: str) -> GameResult | None:
    result = await db.execute(
        select(GameResult).where(GameResult.session_id == session_id, GameResult.below_minimum.is_(True))
    )
    return result.scalar_one_or_none()


async def _track_progress(
    db: AsyncSession,
    account_id: str,
    score: int,
    duration_seconds: int,
    is_high_score: bool,
    now: datetime,
) -> tuple[list[str], list[str]]:
    achievements: list[ProgressUpdate] = []
    achievements += await track_metric(db, account_id, Metric.GAMES_PLAYED, 1, now)
    achievements += await track_metric(db, account_id, Metric.BEST_SCORE, score, now)
    achievements += await track_distinct_games(db, account_id, now)
    achievements += await track_lifetime_oranges(db, account_id, now)

    today = utc_day(now)
    challenges = [await bump(db, ProgressKey.challenge(account_id, ChallengeId.GAMES_PLAYED_5, today), 1, now)]
    if is_high_score:
        challenges.append(
            await bump(db, ProgressKey.challenge(account_id, ChallengeId.PERSONAL_BEST_1, today), 1, now)
        )
    if duration_seconds > 0:
        challenges.append(
            await bump(
                db, ProgressKey.challenge(account_id, ChallengeId.PLAY_TIME_600, today), duration_seconds, now
            )
        )

    return (
        [a.value for a in completed_ids(achievements)],
        [c.key.item_id for c in challenges if c.completed_now],
    )


async def complete_game(
    db: AsyncSession,
    account_id: str,
    session_id: str,
    activity: Activity,
    score: int,
    duration_seconds: int,
    is_high_score: bool = False,
    is_top_ten: bool = False,
    now: datetime | None = None,
) -> GameCompletion:
    """Reward a finished game exactly once per session id.

    Replays return the originally applied amounts with ``already_applied``.
    Scores under the activity minimum clear the session and come back as
    ``below_minimum`` with nothing credited. The game is still recorded, so a
    retry of the same session gets the same answer.
    """
    now = now or utc_now()
    await ensure_not_banned(db, account_id)
    account = await get_or_create_account(db, account_id, now)

    key = game_idempotency_key(session_id)
    previous = await find_applied(db, key)
    if previous is not None:
        logger.info("Game %s already rewarded for %s", session_id, account_id)
        return await _replay(db, account_id, previous)

    rejected = await _find_below_minimum(db, session_id)
    if rejected is not None and rejected.account_id == account_id:
        return GameCompletion(
            balance=await get_balance(db, account_id),  # type: ignore[arg-type]
            below_minimum=True,
            min_score=ACTIVITY_RULES[Activity(rejected.activity_id)].min_score,
        )

    current = await get_current_session(db, account_id)
    if current is None or current.session_id != session_id or current.activity_id != activity.value:
        raise SessionNotFound

    quote = calculate_game_reward(
        activity,
        score,
        is_high_score=is_high_score,
        is_top_ten=is_top_ten,
        account_created_at=account.created_at,
        now=now,
    )
    if quote.below_minimum:
        db.add(GameResult(
            session_id=session_id,
            account_id=account_id,
            activity_id=activity.value,
            score=score,
            duration_seconds=duration_seconds,
            below_minimum=True,
            completed_at=now,
        ))
        await db.flush()
        await complete_session(db, account_id)
        logger.info("Score %d below minimum %d on %s", score, quote.min_score, activity.value)
        return GameCompletion(
            balance=await get_balance(db, account_id),  # type: ignore[arg-type]
            below_minimum=True,
            min_score=quote.min_score,
        )

    verdict = await screen_score(db, account_id, activity.value, session_id, score, duration_seconds)

    ledger = await apply_delta(
        db,
        account_id,
        key,
        {Currency.ORANGES: quote.oranges},
        source="gameplay",
        source_ref=activity.value,
        metadata={
            "score": score,
            "tier": quote.tier.value,
            "bonuses": quote.bonuses,
            "duration": duration_seconds,
        },
        now=now,
    )
    if ledger.already_applied:
        return await _replay(db, account_id, ledger.applied)

    db.add(GameResult(
        session_id=session_id,
        account_id=account_id,
        activity_id=activity.value,
        score=score,
        duration_seconds=duration_seconds,
        reward_oranges=quote.oranges,
        flagged=verdict.flagged,
        completed_at=now,
    ))
    await db.flush()
    await complete_session(db, account_id)

    achievements, challenges = await _track_progress(
        db, account_id, score, duration_seconds, is_high_score, now
    )

    return GameCompletion(
        balance=ledger.balance,
        reward_oranges=quote.oranges,
        breakdown=quote.breakdown(),
        completed_achievements=achievements,
        completed_challenges=challenges,
        verdict=verdict,
    )
