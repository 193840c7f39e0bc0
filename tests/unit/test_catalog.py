"""Static economy tables."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from wojak.economy.catalog import (
    ACHIEVEMENTS,
    DAILY_CHALLENGES,
    TIER_REWARDS,
    Activity,
    AchievementId,
    ChallengeId,
    Metric,
    Tier,
    achievements_for,
    daily_login_reward,
)
from wojak.economy.day_utils import day_key, ensure_utc, previous_day, seconds_until_next_day, utc_day


class TestDailyLoginCycle:
    @pytest.mark.parametrize(
        ("day", "oranges", "gems"),
        [(1, 15, 0), (2, 30, 0), (6, 90, 0), (7, 105, 3)],
    )
    def test_rewards(self, day, oranges, gems):
        assert daily_login_reward(day) == (oranges, gems)

    @pytest.mark.parametrize("day", [0, 8, -1])
    def test_out_of_cycle_rejected(self, day):
        with pytest.raises(ValueError):
            daily_login_reward(day)


class TestProgressItems:
    def test_every_achievement_tracks_a_metric(self):
        assert set(ACHIEVEMENTS) == set(AchievementId)
        assert all(item.metric is not None for item in ACHIEVEMENTS.values())

    def test_explorer_target_is_every_game(self):
        assert ACHIEVEMENTS[AchievementId.ALL_GAMES].target == len(Activity) == 15

    def test_games_played_achievements(self):
        assert achievements_for(Metric.GAMES_PLAYED) == [
            AchievementId.FIRST_GAME,
            AchievementId.GAMES_10,
            AchievementId.GAMES_100,
            AchievementId.GAMES_500,
        ]

    def test_daily_challenges(self):
        assert set(DAILY_CHALLENGES) == set(ChallengeId)
        assert DAILY_CHALLENGES[ChallengeId.PLAY_TIME_600].target == 600
        assert DAILY_CHALLENGES[ChallengeId.PERSONAL_BEST_1].reward_oranges == 50

    def test_tier_table(self):
        assert TIER_REWARDS[Tier.MEDIUM].top_ten_bonus == 30


class TestDayUtils:
    def test_utc_day_crosses_midnight_in_utc(self):
        late = datetime(2026, 3, 14, 23, 59, 59, tzinfo=timezone.utc)
        assert day_key(utc_day(late)) == "2026-03-14"
        assert day_key(previous_day(utc_day(late))) == "2026-03-13"

    def test_seconds_until_next_day(self):
        assert seconds_until_next_day(datetime(2026, 3, 14, 23, 59, 0, tzinfo=timezone.utc)) == 60

    def test_ensure_utc(self):
        naive = datetime(2026, 3, 14, 12, 0)
        assert ensure_utc(naive).tzinfo is timezone.utc
