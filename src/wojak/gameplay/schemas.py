"""Pydantic request/response models for gameplay endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from wojak.economy.catalog import Activity
from wojak.economy.schemas import RewardResponse


class StartSessionRequest(BaseModel):
    activity_id: Activity


class HeartbeatRequest(BaseModel):
    session_id: str = Field(min_length=1, max_length=64)


class SessionResponse(BaseModel):
    session_id: str
    activity_id: str
    started_at: datetime
    expires_at: datetime


class CurrentSessionResponse(BaseModel):
    active: bool
    session: SessionResponse | None = None


class CompleteGameRequest(BaseModel):
    session_id: str = Field(min_length=1, max_length=64)
    activity_id: Activity
    score: int = Field(ge=0)
    duration_seconds: int = Field(default=0, ge=0, le=86_400)
    is_high_score: bool = False
    is_top_ten: bool = False


class CompleteGameResponse(RewardResponse):
    error: str | None = None
    min_score: int | None = None
    your_score: int | None = None
    completed_achievements: list[str] = []
    completed_challenges: list[str] = []
