"""Progress state machine for achievements and daily challenges."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from tests.conftest import NOW
from wojak.db.models import CurrencyTransaction, UserAchievement
from wojak.economy.catalog import AchievementId, ChallengeId, Currency, Metric
from wojak.economy.day_utils import utc_day
from wojak.economy.errors import AlreadyClaimed, NotCompleted
from wojak.economy.ledger import get_balance
from wojak.progress.metrics import completed_ids, track_metric
from wojak.progress.progress_tracker import ProgressKey, ProgressKind, bump, claim, list_records, raise_to

TODAY = utc_day(NOW)


async def _row(db, account_id: str, achievement_id: AchievementId) -> UserAchievement:
    result = await db.execute(
        select(UserAchievement)
        .where(UserAchievement.account_id == account_id, UserAchievement.achievement_id == achievement_id.value)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


class TestProgressKey:
    def test_challenge_needs_day(self):
        with pytest.raises(ValueError):
            ProgressKey(ProgressKind.CHALLENGE, "user_a", ChallengeId.GAMES_PLAYED_5.value)

    def test_unknown_item_rejected(self):
        with pytest.raises(ValueError):
            ProgressKey(ProgressKind.ACHIEVEMENT, "user_a", "no-such-thing")

    def test_idempotency_keys(self):
        assert ProgressKey.achievement("user_a", AchievementId.GAMES_10).idempotency_key == "achievement:user_a:games-10"
        key = ProgressKey.challenge("user_a", ChallengeId.PLAY_TIME_600, TODAY)
        assert key.idempotency_key == "challenge:user_a:2026-03-14:play-time-600"


class TestAdvance:
    @pytest.mark.asyncio
    async def test_bump_accumulates_and_caps(self, db_session, veteran):
        key = ProgressKey.achievement(veteran, AchievementId.GAMES_10)
        for _ in range(4):
            update = await bump(db_session, key, 3, now=NOW)
        assert update.progress == 10
        assert update.target == 10

    @pytest.mark.asyncio
    async def test_completion_stamped_once(self, db_session, veteran):
        key = ProgressKey.achievement(veteran, AchievementId.FIRST_GAME)
        first = await bump(db_session, key, 1, now=NOW)
        second = await bump(db_session, key, 1, now=NOW + timedelta(minutes=1))
        await db_session.commit()

        assert first.completed_now
        assert not second.completed_now
        row = await _row(db_session, veteran, AchievementId.FIRST_GAME)
        assert row.reward_oranges == 50
        assert row.completed_at is not None

    @pytest.mark.asyncio
    async def test_negative_bump_rejected(self, db_session, veteran):
        with pytest.raises(ValueError):
            await bump(db_session, ProgressKey.achievement(veteran, AchievementId.GAMES_10), -1, now=NOW)

    @pytest.mark.asyncio
    async def test_raise_to_never_decreases(self, db_session, veteran):
        key = ProgressKey.achievement(veteran, AchievementId.SCORE_1000)
        await raise_to(db_session, key, 700, now=NOW)
        update = await raise_to(db_session, key, 300, now=NOW)
        assert update.progress == 700
        assert not update.completed_now

        update = await raise_to(db_session, key, 5000, now=NOW)
        assert update.progress == 1000
        assert update.completed_now

    @pytest.mark.asyncio
    async def test_track_metric_feeds_every_matching_achievement(self, db_session, veteran):
        updates = await track_metric(db_session, veteran, Metric.BEST_SCORE, 1200, now=NOW)
        assert completed_ids(updates) == [AchievementId.SCORE_1000]
        records = await list_records(db_session, ProgressKind.ACHIEVEMENT, veteran)
        assert records["score-10000"].progress == 1200

    @pytest.mark.asyncio
    async def test_challenges_are_day_scoped(self, db_session, veteran):
        today = ProgressKey.challenge(veteran, ChallengeId.GAMES_PLAYED_5, TODAY)
        tomorrow = ProgressKey.challenge(veteran, ChallengeId.GAMES_PLAYED_5, TODAY + timedelta(days=1))
        await bump(db_session, today, 4, now=NOW)
        update = await bump(db_session, tomorrow, 1, now=NOW + timedelta(days=1))
        assert update.progress == 1


class TestClaim:
    @pytest.mark.asyncio
    async def test_claim_credits_once(self, db_session, veteran):
        key = ProgressKey.achievement(veteran, AchievementId.SCORE_10000)
        await raise_to(db_session, key, 12000, now=NOW)
        result = await claim(db_session, key, now=NOW)
        await db_session.commit()

        assert (result.reward_oranges, result.reward_gems) == (250, 5)
        assert result.ledger.balance.as_dict() == {"oranges": 350, "gems": 5}

        with pytest.raises(AlreadyClaimed):
            await claim(db_session, key, now=NOW)
        await db_session.commit()

        count = await db_session.execute(
            select(func.count())
            .select_from(CurrencyTransaction)
            .where(CurrencyTransaction.source == "achievement")
        )
        assert count.scalar_one() == 2  # one per currency
        assert (await get_balance(db_session, veteran)).oranges == 350

    @pytest.mark.asyncio
    async def test_claim_in_progress_reports_progress(self, db_session, veteran):
        key = ProgressKey.challenge(veteran, ChallengeId.PLAY_TIME_600, TODAY)
        await bump(db_session, key, 240, now=NOW)
        with pytest.raises(NotCompleted) as exc_info:
            await claim(db_session, key, now=NOW)
        assert exc_info.value.context() == {"progress": 240, "target": 600}

    @pytest.mark.asyncio
    async def test_claim_never_started(self, db_session, veteran):
        with pytest.raises(NotCompleted) as exc_info:
            await claim(db_session, ProgressKey.achievement(veteran, AchievementId.GAMES_500), now=NOW)
        assert exc_info.value.context() == {"progress": 0, "target": 500}

    @pytest.mark.asyncio
    async def test_challenge_reward_is_oranges_only(self, db_session, veteran):
        key = ProgressKey.challenge(veteran, ChallengeId.PERSONAL_BEST_1, TODAY)
        await bump(db_session, key, 1, now=NOW)
        result = await claim(db_session, key, now=NOW)
        assert result.ledger.applied == {Currency.ORANGES: 50}
