"""Pydantic request/response models for the economy endpoints.

``RewardResponse`` is the shared success shape of every reward path.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from wojak.economy.catalog import Currency
from wojak.economy.ledger import Balance


class BalanceResponse(BaseModel):
    oranges: int
    gems: int

    @classmethod
    def of(cls, balance: Balance) -> BalanceResponse:
        return cls(oranges=balance.oranges, gems=balance.gems)


class RewardAmount(BaseModel):
    oranges: int = 0
    gems: int = 0
    breakdown: dict[str, Any] | None = None


class RewardResponse(BaseModel):
    success: bool = True
    reward: RewardAmount
    new_balance: BalanceResponse
    already_applied: bool = False


class AccountBalanceResponse(BaseModel):
    account_id: str
    oranges: int
    gems: int
    lifetime_oranges: int
    lifetime_gems: int
    created_at: datetime


class TransactionEntry(BaseModel):
    id: int
    direction: str
    currency: str
    amount: int
    balance_after: int
    source: str
    source_ref: str | None
    metadata: dict[str, Any] = {}
    created_at: datetime


class TransactionsResponse(BaseModel):
    transactions: list[TransactionEntry]
    total: int
    limit: int
    offset: int


class SpendRequest(BaseModel):
    currency: Currency = Currency.ORANGES
    amount: int = Field(gt=0)
    item_id: str = Field(min_length=1, max_length=64)
    request_id: str = Field(min_length=8, max_length=64)


class SpendResponse(BaseModel):
    success: bool = True
    spent: int
    currency: Currency
    new_balance: BalanceResponse
    already_applied: bool = False


class GiftRequest(BaseModel):
    recipient_id: str = Field(min_length=1, max_length=128)
    currency: Currency = Currency.ORANGES
    amount: int = Field(gt=0, le=1_000_000)
    request_id: str = Field(min_length=8, max_length=64)
    message: str | None = Field(default=None, max_length=200)


class GiftResponse(BaseModel):
    success: bool = True
    recipient_id: str
    currency: Currency
    amount: int
    new_balance: BalanceResponse
    already_applied: bool = False
