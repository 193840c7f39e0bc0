"""Reward calculator tests: tiers, bonuses, trust decay and the minimum-score gate."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from wojak.economy.catalog import ACTIVITY_RULES, Activity, Tier
from wojak.economy.reward_calculator import calculate_game_reward, is_trust_decayed

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)
OLD_ACCOUNT = NOW - timedelta(days=10)
NEW_ACCOUNT = NOW - timedelta(days=2)


def _quote(activity: Activity, score: int, *, high: bool = False, top: bool = False, created=OLD_ACCOUNT):
    return calculate_game_reward(
        activity,
        score,
        is_high_score=high,
        is_top_ten=top,
        account_created_at=created,
        now=NOW,
    )


class TestTierRewards:
    @pytest.mark.parametrize(
        ("activity", "expected"),
        [
            (Activity.MEMORY_MATCH, 5),
            (Activity.ORANGE_PONG, 10),
            (Activity.FLAPPY_ORANGE, 15),
        ],
    )
    def test_base_reward_per_tier(self, activity, expected):
        assert _quote(activity, 1000).oranges == expected

    def test_hard_tier_high_score(self):
        """Hard tier with a high score on an established account: 15 + 20."""
        quote = _quote(Activity.WOJAK_RUNNER, 500, high=True)
        assert quote.oranges == 35
        assert quote.tier is Tier.HARD
        assert quote.bonuses == ["high_score:+20"]
        assert not quote.trust_decay

    def test_all_bonuses_stack(self):
        quote = _quote(Activity.MERGE_2048, 4096, high=True, top=True)
        assert quote.oranges == 10 + 15 + 30

    def test_breakdown_shape(self):
        breakdown = _quote(Activity.CITRUS_DROP, 10, top=True).breakdown()
        assert breakdown == {
            "base": 5,
            "tier": "easy",
            "bonuses": ["top10:+20"],
            "trust_decay": False,
        }


class TestTrustDecay:
    def test_new_account_earns_half_floored(self):
        """Easy base 5 halves to 2."""
        quote = _quote(Activity.MEMORY_MATCH, 10, created=NEW_ACCOUNT)
        assert quote.oranges == 2
        assert quote.trust_decay
        assert "staged_trust:50%" in quote.bonuses

    def test_decay_applies_after_bonuses(self):
        quote = _quote(Activity.KNIFE_GAME, 50, high=True, top=True, created=NEW_ACCOUNT)
        assert quote.oranges == (15 + 20 + 40) // 2

    def test_boundary_is_exactly_seven_days(self):
        assert is_trust_decayed(NOW - timedelta(days=7) + timedelta(seconds=1), NOW)
        assert not is_trust_decayed(NOW - timedelta(days=7), NOW)

    def test_naive_created_at_is_treated_as_utc(self):
        naive = (NOW - timedelta(days=1)).replace(tzinfo=None)
        assert is_trust_decayed(naive, NOW)


class TestMinimumScore:
    def test_below_minimum_earns_nothing(self):
        quote = _quote(Activity.MERGE_2048, 128, high=True, top=True)
        assert quote.below_minimum
        assert quote.oranges == 0
        assert quote.min_score == 256

    def test_exactly_minimum_is_rewarded(self):
        quote = _quote(Activity.MERGE_2048, 256)
        assert not quote.below_minimum
        assert quote.oranges == 10

    def test_every_activity_has_a_rule(self):
        assert set(ACTIVITY_RULES) == set(Activity)
