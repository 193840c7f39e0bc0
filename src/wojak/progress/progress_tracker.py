"""Achievement and daily-challenge progress state machine.

NotStarted -> InProgress -> Completed -> Claimed, shared by both record
kinds. Every transition is a single conditional statement:

- progress moves through a capped upsert and never decreases,
- ``completed_at`` is stamped (freezing the reward) by the one UPDATE that
  finds ``completed_at IS NULL AND progress >= target``,
- ``claimed_at`` is stamped by the one UPDATE that finds the record
  completed and unclaimed; only that caller credits the reward.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wojak.database import upsert
from wojak.db.models import DailyChallengeProgress, UserAchievement
from wojak.economy.catalog import (
    ACHIEVEMENTS,
    DAILY_CHALLENGES,
    AchievementId,
    ChallengeId,
    Currency,
    ProgressItem,
)
from wojak.economy.day_utils import day_key, utc_now
from wojak.economy.errors import AlreadyClaimed, NotCompleted
from wojak.economy.ledger import LedgerResult, apply_delta

logger = logging.getLogger(__name__)


class ProgressKind(str, Enum):
    ACHIEVEMENT = "achievement"
    CHALLENGE = "challenge"


MODELS: dict[ProgressKind, type[UserAchievement] | type[DailyChallengeProgress]] = {
    ProgressKind.ACHIEVEMENT: UserAchievement,
    ProgressKind.CHALLENGE: DailyChallengeProgress,
}

LEDGER_SOURCES = {
    ProgressKind.ACHIEVEMENT: "achievement",
    ProgressKind.CHALLENGE: "daily_challenge",
}


@dataclass(frozen=True)
class ProgressKey:
    kind: ProgressKind
    account_id: str
    item_id: str
    day: date | None = None

    def __post_init__(self) -> None:
        if self.kind is ProgressKind.CHALLENGE:
            if self.day is None:
                msg = "Daily challenge keys need a day"
                raise ValueError(msg)
            ChallengeId(self.item_id)
        else:
            if self.day is not None:
                msg = "Achievement keys are not day-scoped"
                raise ValueError(msg)
            AchievementId(self.item_id)

    @classmethod
    def achievement(cls, account_id: str, achievement_id: AchievementId) -> ProgressKey:
        return cls(ProgressKind.ACHIEVEMENT, account_id, achievement_id.value)

    @classmethod
    def challenge(cls, account_id: str, challenge_id: ChallengeId, day: date) -> ProgressKey:
        return cls(ProgressKind.CHALLENGE, account_id, challenge_id.value, day)

    @property
    def item(self) -> ProgressItem:
        if self.kind is ProgressKind.ACHIEVEMENT:
            return ACHIEVEMENTS[AchievementId(self.item_id)]
        return DAILY_CHALLENGES[ChallengeId(self.item_id)]

    @property
    def idempotency_key(self) -> str:
        if self.kind is ProgressKind.ACHIEVEMENT:
            return f"achievement:{self.account_id}:{self.item_id}"
        return f"challenge:{self.account_id}:{day_key(self.day)}:{self.item_id}"  # type: ignore[arg-type]


@dataclass(frozen=True)
class ProgressUpdate:
    key: ProgressKey
    progress: int
    target: int
    completed_now: bool


@dataclass(frozen=True)
class ClaimResult:
    key: ProgressKey
    reward_oranges: int
    reward_gems: int
    ledger: LedgerResult


def _model(key: ProgressKey) -> Any:  # noqa: ANN401
    return MODELS[key.kind]


def _key_values(key: ProgressKey) -> dict[str, Any]:
    if key.kind is ProgressKind.ACHIEVEMENT:
        return {"account_id": key.account_id, "achievement_id": key.item_id}
    return {"account_id": key.account_id, "challenge_date": key.day, "challenge_id": key.item_id}


def _key_filter(key: ProgressKey) -> list[Any]:
    model = _model(key)
    return [getattr(model, column) == value for column, value in _key_values(key).items()]


async def _advance(
    db: AsyncSession,
    key: ProgressKey,
    initial: int,
    new_progress: Any,  # noqa: ANN401
    now: datetime,
) -> ProgressUpdate:
    model = _model(key)
    item = key.item
    stmt = upsert(db, model).values(
        **_key_values(key),
        progress=initial,
        target=item.target,
        reward_oranges=0,
        reward_gems=0,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=list(_key_values(key)),
        set_={"progress": new_progress, "updated_at": now},
    ).returning(model.progress, model.target)
    row = (await db.execute(stmt)).one()

    completed = await db.execute(
        update(model)
        .where(*_key_filter(key), model.completed_at.is_(None), model.progress >= model.target)
        .values(
            completed_at=now,
            reward_oranges=item.reward_oranges,
            reward_gems=item.reward_gems,
        )
        .returning(model.id)
        .execution_options(synchronize_session=False)
    )
    completed_now = completed.scalar_one_or_none() is not None
    if completed_now:
        logger.info("%s %s completed by %s", key.kind.value, key.item_id, key.account_id)
    return ProgressUpdate(key=key, progress=row.progress, target=row.target, completed_now=completed_now)


async def bump(
    db: AsyncSession,
    key: ProgressKey,
    delta: int,
    now: datetime | None = None,
) -> ProgressUpdate:
    """Add ``delta`` to the counter, capped at the target."""
    if delta < 0:
        msg = f"Progress only moves forward, got delta={delta}"
        raise ValueError(msg)
    model = _model(key)
    target = key.item.target
    capped_sum = case(
        (model.progress + delta > model.target, model.target),
        else_=model.progress + delta,
    )
    return await _advance(db, key, min(delta, target), capped_sum, now or utc_now())


async def raise_to(
    db: AsyncSession,
    key: ProgressKey,
    value: int,
    now: datetime | None = None,
) -> ProgressUpdate:
    """High-water update: ``progress = max(progress, min(value, target))``."""
    model = _model(key)
    capped = max(0, min(value, key.item.target))
    high_water = case((model.progress >= capped, model.progress), else_=capped)
    return await _advance(db, key, capped, high_water, now or utc_now())


async def claim(
    db: AsyncSession,
    key: ProgressKey,
    now: datetime | None = None,
) -> ClaimResult:
    """Stamp ``claimed_at`` and credit the frozen reward, exactly once per record."""
    now = now or utc_now()
    model = _model(key)
    result = await db.execute(
        update(model)
        .where(*_key_filter(key), model.completed_at.is_not(None), model.claimed_at.is_(None))
        .values(claimed_at=now, updated_at=now)
        .returning(model.reward_oranges, model.reward_gems)
        .execution_options(synchronize_session=False)
    )
    row = result.one_or_none()
    if row is None:
        current = (
            await db.execute(
                select(model.progress, model.target, model.claimed_at).where(*_key_filter(key))
            )
        ).one_or_none()
        if current is None:
            raise NotCompleted(progress=0, target=key.item.target)
        if current.claimed_at is not None:
            raise AlreadyClaimed
        raise NotCompleted(progress=current.progress, target=current.target)

    ledger = await apply_delta(
        db,
        key.account_id,
        key.idempotency_key,
        {Currency.ORANGES: row.reward_oranges, Currency.GEMS: row.reward_gems},
        source=LEDGER_SOURCES[key.kind],
        source_ref=key.item_id,
        metadata={"item": key.item_id, "day": day_key(key.day) if key.day else None},
        now=now,
    )
    logger.info("%s %s claimed by %s", key.kind.value, key.item_id, key.account_id)
    return ClaimResult(
        key=key,
        reward_oranges=row.reward_oranges,
        reward_gems=row.reward_gems,
        ledger=ledger,
    )


async def list_records(
    db: AsyncSession,
    kind: ProgressKind,
    account_id: str,
    day: date | None = None,
) -> dict[str, Any]:
    """Existing progress rows keyed by item id."""
    model = MODELS[kind]
    filters = [model.account_id == account_id]
    if kind is ProgressKind.CHALLENGE:
        filters.append(model.challenge_date == day)
    result = await db.execute(select(model).where(*filters).execution_options(populate_existing=True))
    item_column = "achievement_id" if kind is ProgressKind.ACHIEVEMENT else "challenge_id"
    return {getattr(row, item_column): row for row in result.scalars().all()}
