"""Pydantic request/response models for achievements, challenges and daily login."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel

from wojak.economy.catalog import AchievementId, ChallengeId
from wojak.economy.schemas import RewardResponse


# --- Achievements & challenges ---


class ProgressEntry(BaseModel):
    id: str
    name: str
    description: str
    progress: int
    target: int
    reward_oranges: int
    reward_gems: int
    completed: bool
    claimed: bool
    completed_at: datetime | None = None
    claimed_at: datetime | None = None


class AchievementsResponse(BaseModel):
    achievements: list[ProgressEntry]
    claimable: int


class ChallengesResponse(BaseModel):
    day: date
    challenges: list[ProgressEntry]
    claimable: int


class ClaimAchievementRequest(BaseModel):
    achievement_id: AchievementId


class ClaimChallengeRequest(BaseModel):
    challenge_id: ChallengeId


class ClaimResponse(RewardResponse):
    item_id: str


# --- Daily login ---


class DailyLoginStatusResponse(BaseModel):
    claimed_today: bool
    streak_day: int
    streak_length: int
    reward_oranges: int
    reward_gems: int
    seconds_until_reset: int


class DailyLoginClaimResponse(RewardResponse):
    streak_day: int
    streak_length: int
    completed_achievements: list[str] = []
