"""Pydantic request/response models for leaderboard endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from wojak.economy.catalog import Activity


class SubmitScoreRequest(BaseModel):
    activity_id: Activity
    score: int = Field(ge=0)
    level: int | None = Field(default=None, ge=0)
    client_key: str = Field(min_length=8, max_length=64)
    metadata: dict[str, Any] = {}


class SubmitScoreResponse(BaseModel):
    success: bool = True
    score: int
    rank: int
    is_new_high_score: bool
    previous_high_score: int | None
    already_applied: bool = False
    completed_achievements: list[str] = []


class LeaderboardEntryResponse(BaseModel):
    rank: int
    account_id: str
    score: int


class LeaderboardResponse(BaseModel):
    activity_id: Activity
    entries: list[LeaderboardEntryResponse]
