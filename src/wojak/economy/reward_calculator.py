"""Tiered gameplay reward calculation with trust decay.

Pure functions, no I/O.

Reward = tier base + high-score bonus (if applicable) + top-ten bonus (if
applicable). Accounts younger than 7 days earn half, floored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from wojak.economy.catalog import ACTIVITY_RULES, TIER_REWARDS, TRUST_DECAY_DAYS, Activity, Tier
from wojak.economy.day_utils import ensure_utc, utc_now


@dataclass(frozen=True)
class RewardQuote:
    activity: Activity
    tier: Tier
    oranges: int
    gems: int = 0
    base: int = 0
    bonuses: list[str] = field(default_factory=list)
    trust_decay: bool = False
    below_minimum: bool = False
    min_score: int = 0

    def breakdown(self) -> dict[str, object]:
        return {
            "base": self.base,
            "tier": self.tier.value,
            "bonuses": list(self.bonuses),
            "trust_decay": self.trust_decay,
        }


def is_trust_decayed(account_created_at: datetime, now: datetime | None = None) -> bool:
    """True while the account is younger than the trust threshold."""
    now = ensure_utc(now or utc_now())
    return now - ensure_utc(account_created_at) < timedelta(days=TRUST_DECAY_DAYS)


def calculate_game_reward(
    activity: Activity,
    score: int,
    *,
    is_high_score: bool,
    is_top_ten: bool,
    account_created_at: datetime,
    now: datetime | None = None,
) -> RewardQuote:
    """Quote the oranges earned for one finished game.

    Scores below the activity's minimum earn nothing and come back with
    ``below_minimum=True``; callers report that as information, not failure.
    """
    rule = ACTIVITY_RULES[activity]
    if score < rule.min_score:
        return RewardQuote(
            activity=activity,
            tier=rule.tier,
            oranges=0,
            below_minimum=True,
            min_score=rule.min_score,
        )

    rewards = TIER_REWARDS[rule.tier]
    oranges = rewards.base
    bonuses: list[str] = []
    if is_high_score:
        oranges += rewards.high_score_bonus
        bonuses.append(f"high_score:+{rewards.high_score_bonus}")
    if is_top_ten:
        oranges += rewards.top_ten_bonus
        bonuses.append(f"top10:+{rewards.top_ten_bonus}")

    decayed = is_trust_decayed(account_created_at, now)
    if decayed:
        oranges //= 2
        bonuses.append("staged_trust:50%")

    return RewardQuote(
        activity=activity,
        tier=rule.tier,
        oranges=oranges,
        base=rewards.base,
        bonuses=bonuses,
        trust_decay=decayed,
        min_score=rule.min_score,
    )
