"""Static economy tables: activities, tiers, achievements and daily challenges.

Every identifier set here is closed. Requests naming anything else are
rejected by request validation before they reach a service.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Currency(str, Enum):
    ORANGES = "oranges"
    GEMS = "gems"


class Tier(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Activity(str, Enum):
    MEMORY_MATCH = "memory-match"
    COLOR_REACTION = "color-reaction"
    ORANGE_SNAKE = "orange-snake"
    CITRUS_DROP = "citrus-drop"
    WOJAK_WHACK = "wojak-whack"
    ORANGE_PONG = "orange-pong"
    MERGE_2048 = "merge-2048"
    BLOCK_PUZZLE = "block-puzzle"
    BRICK_BREAKER = "brick-breaker"
    ORANGE_WORDLE = "orange-wordle"
    FLAPPY_ORANGE = "flappy-orange"
    WOJAK_RUNNER = "wojak-runner"
    ORANGE_STACK = "orange-stack"
    KNIFE_GAME = "knife-game"
    ORANGE_JUGGLE = "orange-juggle"


@dataclass(frozen=True)
class TierRewards:
    base: int
    high_score_bonus: int
    top_ten_bonus: int


@dataclass(frozen=True)
class ActivityRule:
    tier: Tier
    min_score: int


TIER_REWARDS: dict[Tier, TierRewards] = {
    Tier.EASY: TierRewards(base=5, high_score_bonus=10, top_ten_bonus=20),
    Tier.MEDIUM: TierRewards(base=10, high_score_bonus=15, top_ten_bonus=30),
    Tier.HARD: TierRewards(base=15, high_score_bonus=20, top_ten_bonus=40),
}

ACTIVITY_RULES: dict[Activity, ActivityRule] = {
    # Easy
    Activity.MEMORY_MATCH: ActivityRule(Tier.EASY, 4),
    Activity.COLOR_REACTION: ActivityRule(Tier.EASY, 5),
    Activity.ORANGE_SNAKE: ActivityRule(Tier.EASY, 5),
    Activity.CITRUS_DROP: ActivityRule(Tier.EASY, 3),
    Activity.WOJAK_WHACK: ActivityRule(Tier.EASY, 5),
    # Medium
    Activity.ORANGE_PONG: ActivityRule(Tier.MEDIUM, 3),
    Activity.MERGE_2048: ActivityRule(Tier.MEDIUM, 256),
    Activity.BLOCK_PUZZLE: ActivityRule(Tier.MEDIUM, 100),
    Activity.BRICK_BREAKER: ActivityRule(Tier.MEDIUM, 50),
    Activity.ORANGE_WORDLE: ActivityRule(Tier.MEDIUM, 1),
    # Hard
    Activity.FLAPPY_ORANGE: ActivityRule(Tier.HARD, 5),
    Activity.WOJAK_RUNNER: ActivityRule(Tier.HARD, 100),
    Activity.ORANGE_STACK: ActivityRule(Tier.HARD, 5),
    Activity.KNIFE_GAME: ActivityRule(Tier.HARD, 10),
    Activity.ORANGE_JUGGLE: ActivityRule(Tier.HARD, 10),
}

STARTING_ORANGES = 100
STARTING_GEMS = 0

TRUST_DECAY_DAYS = 7
SESSION_TIMEOUT_SECONDS = 120
TOP_TEN = 10


# ---------------------------------------------------------------------------
# Progress items
# ---------------------------------------------------------------------------


class Metric(str, Enum):
    """What an achievement counts. Counters are bumped, high-water marks are raised."""

    GAMES_PLAYED = "games_played"
    BEST_SCORE = "best_score"
    DISTINCT_GAMES = "distinct_games"
    TOP_TEN_PLACEMENTS = "top_ten_placements"
    LOGIN_STREAK = "login_streak"
    LIFETIME_ORANGES = "lifetime_oranges"


COUNTER_METRICS = frozenset({Metric.GAMES_PLAYED, Metric.TOP_TEN_PLACEMENTS})


class AchievementId(str, Enum):
    FIRST_GAME = "first-game"
    SCORE_1000 = "score-1000"
    SCORE_10000 = "score-10000"
    GAMES_10 = "games-10"
    GAMES_100 = "games-100"
    GAMES_500 = "games-500"
    ALL_GAMES = "all-games"
    TOP_10 = "top-10"
    STREAK_7 = "streak-7"
    STREAK_30 = "streak-30"
    ORANGES_10000 = "oranges-10000"
    ORANGES_100000 = "oranges-100000"


class ChallengeId(str, Enum):
    GAMES_PLAYED_5 = "games-played-5"
    PERSONAL_BEST_1 = "personal-best-1"
    PLAY_TIME_600 = "play-time-600"


@dataclass(frozen=True)
class ProgressItem:
    name: str
    description: str
    target: int
    reward_oranges: int
    reward_gems: int = 0
    metric: Metric | None = None


ACHIEVEMENTS: dict[AchievementId, ProgressItem] = {
    AchievementId.FIRST_GAME: ProgressItem(
        "First Steps", "Play your first game", 1, 50, 0, Metric.GAMES_PLAYED
    ),
    AchievementId.SCORE_1000: ProgressItem(
        "Getting Started", "Score 1,000 points in any game", 1000, 100, 0, Metric.BEST_SCORE
    ),
    AchievementId.SCORE_10000: ProgressItem(
        "High Scorer", "Score 10,000 points in any game", 10000, 250, 5, Metric.BEST_SCORE
    ),
    AchievementId.GAMES_10: ProgressItem(
        "Casual Gamer", "Play 10 games", 10, 100, 0, Metric.GAMES_PLAYED
    ),
    AchievementId.GAMES_100: ProgressItem(
        "Dedicated Player", "Play 100 games", 100, 500, 10, Metric.GAMES_PLAYED
    ),
    AchievementId.GAMES_500: ProgressItem(
        "Gaming Legend", "Play 500 games", 500, 1000, 25, Metric.GAMES_PLAYED
    ),
    AchievementId.ALL_GAMES: ProgressItem(
        "Explorer", "Play every game at least once", len(Activity), 300, 10, Metric.DISTINCT_GAMES
    ),
    AchievementId.TOP_10: ProgressItem(
        "Leaderboard Star", "Reach the top 10 on any leaderboard", 1, 500, 15, Metric.TOP_TEN_PLACEMENTS
    ),
    AchievementId.STREAK_7: ProgressItem(
        "Weekly Regular", "Log in 7 days in a row", 7, 200, 5, Metric.LOGIN_STREAK
    ),
    AchievementId.STREAK_30: ProgressItem(
        "Monthly Dedication", "Log in 30 days in a row", 30, 500, 15, Metric.LOGIN_STREAK
    ),
    AchievementId.ORANGES_10000: ProgressItem(
        "Orange Mogul", "Earn 10,000 oranges in total", 10000, 500, 10, Metric.LIFETIME_ORANGES
    ),
    AchievementId.ORANGES_100000: ProgressItem(
        "Orange Tycoon", "Earn 100,000 oranges in total", 100000, 2000, 50, Metric.LIFETIME_ORANGES
    ),
}

DAILY_CHALLENGES: dict[ChallengeId, ProgressItem] = {
    ChallengeId.GAMES_PLAYED_5: ProgressItem("Warm Up", "Play 5 games today", 5, 30),
    ChallengeId.PERSONAL_BEST_1: ProgressItem("Personal Best", "Beat a personal best today", 1, 50),
    ChallengeId.PLAY_TIME_600: ProgressItem("Marathon", "Play for 10 minutes today", 600, 70),
}

# Daily login: 7-day cycle, index 0 is day 1.
DAILY_LOGIN_ORANGES: tuple[int, ...] = (15, 30, 45, 60, 75, 90, 105)
DAILY_LOGIN_DAY7_GEMS = 3


def achievements_for(metric: Metric) -> list[AchievementId]:
    """Achievement ids tracking the given metric."""
    return [aid for aid, item in ACHIEVEMENTS.items() if item.metric is metric]


def daily_login_reward(streak_day: int) -> tuple[int, int]:
    """(oranges, gems) for a 1-based day in the 7-day cycle."""
    if not 1 <= streak_day <= len(DAILY_LOGIN_ORANGES):
        msg = f"streak_day out of range: {streak_day}"
        raise ValueError(msg)
    gems = DAILY_LOGIN_DAY7_GEMS if streak_day == len(DAILY_LOGIN_ORANGES) else 0
    return DAILY_LOGIN_ORANGES[streak_day - 1], gems
