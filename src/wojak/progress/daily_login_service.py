"""Daily login reward with a 7-day cycle.

The streak continues when yesterday (UTC) was claimed and restarts at day 1
otherwise. One claim per account per UTC day.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wojak.db.models import DailyLoginClaim
from wojak.economy.catalog import DAILY_LOGIN_ORANGES, Currency, Metric, daily_login_reward
from wojak.economy.day_utils import day_key, previous_day, seconds_until_next_day, utc_day, utc_now
from wojak.economy.ledger import Balance, apply_delta, get_balance, get_or_create_account
from wojak.moderation.ban_gate import ensure_not_banned
from wojak.progress.metrics import completed_ids, track_lifetime_oranges, track_metric

logger = logging.getLogger(__name__)


@dataclass
class DailyLoginResult:
    streak_day: int
    streak_length: int
    reward_oranges: int
    reward_gems: int
    balance: Balance
    already_applied: bool = False
    completed_achievements: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DailyLoginStatus:
    claimed_today: bool
    streak_day: int
    streak_length: int
    reward_oranges: int
    reward_gems: int
    seconds_until_reset: int


def daily_idempotency_key(account_id: str, day: date) -> str:
    return f"daily:{account_id}:{day_key(day)}"


async def _claim_for(db: AsyncSession, account_id: str, day: date) -> DailyLoginClaim | None:
    result = await db.execute(
        select(DailyLoginClaim).where(
            DailyLoginClaim.account_id == account_id,
            DailyLoginClaim.claim_date == day,
        )
    )
    return result.scalar_one_or_none()


def _next_streak(yesterday: DailyLoginClaim | None) -> tuple[int, int]:
    """(cycle day, consecutive days) for a claim following ``yesterday``."""
    if yesterday is None:
        return 1, 1
    return yesterday.streak_day % len(DAILY_LOGIN_ORANGES) + 1, yesterday.streak_length + 1


async def _replay(db: AsyncSession, account_id: str, claim: DailyLoginClaim) -> DailyLoginResult:
    return DailyLoginResult(
        streak_day=claim.streak_day,
        streak_length=claim.streak_length,
        reward_oranges=claim.oranges_claimed,
        reward_gems=claim.gems_claimed,
        balance=await get_balance(db, account_id),  # type: ignore[arg-type]
        already_applied=True,
    )


async def get_status(db: AsyncSession, account_id: str, now: datetime | None = None) -> DailyLoginStatus:
    """Today's claim if made, otherwise what claiming now would pay."""
    now = now or utc_now()
    today = utc_day(now)
    claim = await _claim_for(db, account_id, today)
    if claim is not None:
        return DailyLoginStatus(
            claimed_today=True,
            streak_day=claim.streak_day,
            streak_length=claim.streak_length,
            reward_oranges=claim.oranges_claimed,
            reward_gems=claim.gems_claimed,
            seconds_until_reset=seconds_until_next_day(now),
        )
    streak_day, streak_length = _next_streak(await _claim_for(db, account_id, previous_day(today)))
    oranges, gems = daily_login_reward(streak_day)
    return DailyLoginStatus(
        claimed_today=False,
        streak_day=streak_day,
        streak_length=streak_length,
        reward_oranges=oranges,
        reward_gems=gems,
        seconds_until_reset=seconds_until_next_day(now),
    )


async def claim_daily_login(
    db: AsyncSession,
    account_id: str,
    now: datetime | None = None,
) -> DailyLoginResult:
    now = now or utc_now()
    await ensure_not_banned(db, account_id)
    await get_or_create_account(db, account_id, now)

    today = utc_day(now)
    existing = await _claim_for(db, account_id, today)
    if existing is not None:
        return await _replay(db, account_id, existing)

    streak_day, streak_length = _next_streak(await _claim_for(db, account_id, previous_day(today)))
    oranges, gems = daily_login_reward(streak_day)

    try:
        async with db.begin_nested():
            db.add(DailyLoginClaim(
                account_id=account_id,
                claim_date=today,
                streak_day=streak_day,
                streak_length=streak_length,
                oranges_claimed=oranges,
                gems_claimed=gems,
                created_at=now,
            ))
            await db.flush()
    except IntegrityError:
        logger.info("Concurrent daily login claim for %s on %s", account_id, today)
        return await _replay(db, account_id, await _claim_for(db, account_id, today))  # type: ignore[arg-type]

    ledger = await apply_delta(
        db,
        account_id,
        daily_idempotency_key(account_id, today),
        {Currency.ORANGES: oranges, Currency.GEMS: gems},
        source="daily_login",
        source_ref=day_key(today),
        metadata={"streak_day": streak_day, "streak_length": streak_length},
        now=now,
    )

    updates = await track_metric(db, account_id, Metric.LOGIN_STREAK, streak_length, now)
    updates += await track_lifetime_oranges(db, account_id, now)
    logger.info("Daily login day %d (streak %d) for %s", streak_day, streak_length, account_id)

    return DailyLoginResult(
        streak_day=streak_day,
        streak_length=streak_length,
        reward_oranges=oranges,
        reward_gems=gems,
        balance=ledger.balance,
        already_applied=ledger.already_applied,
        completed_achievements=[a.value for a in completed_ids(updates)],
    )
