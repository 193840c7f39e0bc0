"""Pydantic request/response models for moderation endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class BanRequest(BaseModel):
    account_id: str = Field(min_length=1, max_length=128)
    reason: str = Field(min_length=1, max_length=500)
    evidence: dict[str, Any] = {}


class AppealResolutionRequest(BaseModel):
    approved: bool


class BanResponse(BaseModel):
    account_id: str
    reason: str
    evidence: dict[str, Any]
    appeal_status: str
    banned: bool
    banned_at: datetime
    updated_at: datetime


class ReconciliationEntry(BaseModel):
    currency: str
    balance: int
    ledger_sum: int
    drift: int


class ReconciliationResponse(BaseModel):
    account_id: str
    balanced: bool
    currencies: list[ReconciliationEntry]
