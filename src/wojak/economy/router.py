"""Economy API endpoints: balance, transaction history, spending and gifts."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wojak.auth.dependencies import get_current_account_id
from wojak.database import atomic, get_session
from wojak.economy.catalog import Currency
from wojak.economy.events import publish_balance_update
from wojak.economy.ledger import get_or_create_account, list_transactions
from wojak.economy.schemas import (
    AccountBalanceResponse,
    BalanceResponse,
    GiftRequest,
    GiftResponse,
    SpendRequest,
    SpendResponse,
    TransactionEntry,
    TransactionsResponse,
)
from wojak.economy.service import send_gift, spend
from wojak.redis_client import get_redis_or_none

router = APIRouter(prefix="/api/v1/economy", tags=["Economy"])


@router.get("/balance", response_model=AccountBalanceResponse)
async def get_account_balance(
    account_id: str = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_session),
):
    """Current balance. First access creates the account with the starting balance."""
    async with atomic(db):
        account = await get_or_create_account(db, account_id)
    return AccountBalanceResponse(
        account_id=account.id,
        oranges=account.oranges,
        gems=account.gems,
        lifetime_oranges=account.lifetime_oranges,
        lifetime_gems=account.lifetime_gems,
        created_at=account.created_at,
    )


@router.get("/transactions", response_model=TransactionsResponse)
async def get_transactions(
    currency: Currency | None = None,
    direction: str | None = Query(default=None, pattern="^(earn|spend)$"),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    account_id: str = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_session),
):
    rows, total = await list_transactions(db, account_id, currency, direction, limit, offset)
    return TransactionsResponse(
        transactions=[
            TransactionEntry(
                id=t.id,
                direction=t.direction,
                currency=t.currency,
                amount=t.amount,
                balance_after=t.balance_after,
                source=t.source,
                source_ref=t.source_ref,
                metadata=t.tx_metadata or {},
                created_at=t.created_at,
            )
            for t in rows
        ],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/spend", response_model=SpendResponse)
async def spend_currency(
    body: SpendRequest,
    account_id: str = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_session),
):
    async with atomic(db):
        result = await spend(db, account_id, body.currency, body.amount, body.item_id, body.request_id)

    if not result.already_applied:
        await publish_balance_update(get_redis_or_none(), account_id, result.balance.as_dict(), "purchase")
    currency, delta = next(iter(result.applied.items()), (body.currency, -body.amount))
    return SpendResponse(
        spent=-delta,
        currency=currency,
        new_balance=BalanceResponse.of(result.balance),
        already_applied=result.already_applied,
    )


@router.post("/gifts", response_model=GiftResponse)
async def gift_currency(
    body: GiftRequest,
    account_id: str = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_session),
):
    async with atomic(db):
        result = await send_gift(
            db, account_id, body.recipient_id, body.currency, body.amount, body.request_id, body.message
        )

    if not result.already_applied:
        redis = get_redis_or_none()
        await publish_balance_update(redis, account_id, result.sender.balance.as_dict(), "gift_sent")
    return GiftResponse(
        recipient_id=result.recipient_id,
        currency=result.currency,
        amount=result.amount,
        new_balance=BalanceResponse.of(result.sender.balance),
        already_applied=result.already_applied,
    )
