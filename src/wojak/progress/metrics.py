"""Feed player metrics into the achievements that track them."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wojak.db.models import Account, GameResult
from wojak.economy.catalog import COUNTER_METRICS, AchievementId, Metric, achievements_for
from wojak.progress.progress_tracker import ProgressKey, ProgressUpdate, bump, raise_to


async def track_metric(
    db: AsyncSession,
    account_id: str,
    metric: Metric,
    value: int,
    now: datetime | None = None,
) -> list[ProgressUpdate]:
    """Counters are bumped by ``value``; every other metric is a high-water mark."""
    updates = []
    for achievement_id in achievements_for(metric):
        key = ProgressKey.achievement(account_id, achievement_id)
        if metric in COUNTER_METRICS:
            updates.append(await bump(db, key, value, now))
        else:
            updates.append(await raise_to(db, key, value, now))
    return updates


async def track_lifetime_oranges(
    db: AsyncSession,
    account_id: str,
    now: datetime | None = None,
) -> list[ProgressUpdate]:
    result = await db.execute(select(Account.lifetime_oranges).where(Account.id == account_id))
    lifetime = result.scalar_one_or_none() or 0
    return await track_metric(db, account_id, Metric.LIFETIME_ORANGES, lifetime, now)


async def track_distinct_games(
    db: AsyncSession,
    account_id: str,
    now: datetime | None = None,
) -> list[ProgressUpdate]:
    result = await db.execute(
        select(func.count(func.distinct(GameResult.activity_id))).where(
            GameResult.account_id == account_id, GameResult.below_minimum.is_(False)
        )
    )
    return await track_metric(db, account_id, Metric.DISTINCT_GAMES, result.scalar_one() or 0, now)


def completed_ids(updates: list[ProgressUpdate]) -> list[AchievementId]:
    return [AchievementId(u.key.item_id) for u in updates if u.completed_now]
