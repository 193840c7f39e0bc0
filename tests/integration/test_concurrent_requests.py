"""Two requests racing on the same key, each on its own session and connection."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tests.conftest import NOW
from wojak.database import atomic
from wojak.db.models import CurrencyTransaction
from wojak.economy.catalog import AchievementId, Activity, Currency
from wojak.economy.errors import AlreadyClaimed
from wojak.economy.ledger import apply_delta, get_balance
from wojak.gameplay.service import complete_game
from wojak.gameplay.session_manager import start_session
from wojak.progress.progress_tracker import ProgressKey, claim, raise_to


@pytest.fixture
def sessions(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def _count(db, *where) -> int:
    result = await db.execute(select(func.count()).select_from(CurrencyTransaction).where(*where))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_same_key_credits_once(db_session, veteran, sessions):
    async def credit():
        async with sessions() as db, atomic(db):
            return await apply_delta(db, veteran, "test:race", {Currency.ORANGES: 10}, "gameplay", now=NOW)

    results = await asyncio.gather(credit(), credit())

    assert sorted(r.already_applied for r in results) == [False, True]
    assert all(r.applied == {Currency.ORANGES: 10} for r in results)
    assert (await get_balance(db_session, veteran)).oranges == 110
    assert await _count(db_session, CurrencyTransaction.idempotency_key == "test:race:oranges") == 1


@pytest.mark.asyncio
async def test_claim_pays_out_once(db_session, veteran, sessions):
    key = ProgressKey.achievement(veteran, AchievementId.SCORE_10000)
    await raise_to(db_session, key, 12000, now=NOW)
    await db_session.commit()

    async def attempt():
        async with sessions() as db:
            try:
                async with atomic(db):
                    await claim(db, key, now=NOW)
            except AlreadyClaimed:
                return "already_claimed"
            return "credited"

    outcomes = await asyncio.gather(attempt(), attempt())

    assert sorted(outcomes) == ["already_claimed", "credited"]
    assert (await get_balance(db_session, veteran)).as_dict() == {"oranges": 350, "gems": 5}
    assert await _count(db_session, CurrencyTransaction.source == "achievement") == 2


@pytest.mark.asyncio
async def test_duplicate_completion_rewards_once(db_session, veteran, sessions):
    session = await start_session(db_session, veteran, Activity.WOJAK_RUNNER, now=NOW)
    await db_session.commit()

    async def complete():
        async with sessions() as db, atomic(db):
            return await complete_game(
                db, veteran, session.session_id, Activity.WOJAK_RUNNER, 500, 60,
                is_high_score=True, now=NOW + timedelta(seconds=60),
            )

    results = await asyncio.gather(complete(), complete())

    assert sorted(r.already_applied for r in results) == [False, True]
    assert [r.reward_oranges for r in results] == [35, 35]
    assert (await get_balance(db_session, veteran)).oranges == 135
    assert await _count(db_session, CurrencyTransaction.source == "gameplay") == 1
