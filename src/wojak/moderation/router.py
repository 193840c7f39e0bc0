"""Moderation endpoints: admin ban/appeal tooling, reconciliation and player appeals."""

from __future__ import annotations

import hmac

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from wojak.auth.dependencies import get_current_account_id
from wojak.config import get_settings
from wojak.database import atomic, get_session
from wojak.db.models import BanRecord
from wojak.economy.day_utils import ensure_utc
from wojak.economy.ledger import reconcile_account
from wojak.moderation.ban_gate import APPEAL_APPROVED, ban_user, file_appeal, get_ban, resolve_appeal
from wojak.moderation.schemas import (
    AppealResolutionRequest,
    BanRequest,
    BanResponse,
    ReconciliationEntry,
    ReconciliationResponse,
)


async def require_admin(x_admin_token: str | None = Header(default=None)) -> None:
    """Guard for admin routes. Disabled entirely when no admin token is configured."""
    expected = get_settings().admin_api_token
    if not expected:
        raise HTTPException(status_code=503, detail="Admin API disabled")
    if x_admin_token is None or not hmac.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=401, detail="Invalid admin token")


admin_router = APIRouter(prefix="/api/v1/admin", tags=["Admin"], dependencies=[Depends(require_admin)])
router = APIRouter(prefix="/api/v1/moderation", tags=["Moderation"])


def _ban_response(record: BanRecord) -> BanResponse:
    return BanResponse(
        account_id=record.account_id,
        reason=record.reason,
        evidence=record.evidence or {},
        appeal_status=record.appeal_status,
        banned=record.appeal_status != APPEAL_APPROVED,
        banned_at=ensure_utc(record.banned_at),
        updated_at=ensure_utc(record.updated_at),
    )


@admin_router.post("/bans", response_model=BanResponse)
async def create_ban(body: BanRequest, db: AsyncSession = Depends(get_session)):
    async with atomic(db):
        record = await ban_user(db, body.account_id, body.reason, body.evidence)
    return _ban_response(record)


@admin_router.get("/bans/{account_id}", response_model=BanResponse)
async def read_ban(account_id: str, db: AsyncSession = Depends(get_session)):
    record = await get_ban(db, account_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Account is not banned")
    return _ban_response(record)


@admin_router.post("/bans/{account_id}/appeal", response_model=BanResponse)
async def decide_appeal(
    account_id: str,
    body: AppealResolutionRequest,
    db: AsyncSession = Depends(get_session),
):
    try:
        async with atomic(db):
            record = await resolve_appeal(db, account_id, body.approved)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    if record is None:
        raise HTTPException(status_code=404, detail="Account is not banned")
    return _ban_response(record)


@admin_router.get("/accounts/{account_id}/reconciliation", response_model=ReconciliationResponse)
async def reconciliation_report(account_id: str, db: AsyncSession = Depends(get_session)):
    """Per-currency balance vs. sum of logged transaction amounts."""
    lines = await reconcile_account(db, account_id)
    if not lines:
        raise HTTPException(status_code=404, detail="Account not found")
    return ReconciliationResponse(
        account_id=account_id,
        balanced=all(line.drift == 0 for line in lines),
        currencies=[
            ReconciliationEntry(
                currency=line.currency.value,
                balance=line.balance,
                ledger_sum=line.ledger_sum,
                drift=line.drift,
            )
            for line in lines
        ],
    )


@router.post("/appeal", response_model=BanResponse)
async def submit_appeal(
    account_id: str = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_session),
):
    """File an appeal against the caller's own ban."""
    try:
        async with atomic(db):
            record = await file_appeal(db, account_id)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    if record is None:
        raise HTTPException(status_code=404, detail="Account is not banned")
    return _ban_response(record)
