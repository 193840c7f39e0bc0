"""Gameplay API endpoints: session lifecycle and game completion."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wojak.auth.dependencies import get_current_account_id
from wojak.database import atomic, get_session
from wojak.economy.events import publish_balance_update, publish_score_flagged
from wojak.economy.ledger import get_or_create_account
from wojak.economy.schemas import BalanceResponse, RewardAmount
from wojak.gameplay.schemas import (
    CompleteGameRequest,
    CompleteGameResponse,
    CurrentSessionResponse,
    HeartbeatRequest,
    SessionResponse,
    StartSessionRequest,
)
from wojak.gameplay.service import complete_game
from wojak.gameplay.session_manager import SessionInfo, get_current_session, heartbeat, start_session
from wojak.moderation.ban_gate import ensure_not_banned
from wojak.redis_client import get_redis_or_none

router = APIRouter(prefix="/api/v1/gameplay", tags=["Gameplay"])


def _session_response(info: SessionInfo) -> SessionResponse:
    return SessionResponse(
        session_id=info.session_id,
        activity_id=info.activity_id,
        started_at=info.started_at,
        expires_at=info.expires_at,
    )


@router.post("/sessions", response_model=SessionResponse)
async def start_game_session(
    body: StartSessionRequest,
    account_id: str = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_session),
):
    """Claim the account's single session slot. 409 while another session is live."""
    async with atomic(db):
        await ensure_not_banned(db, account_id)
        await get_or_create_account(db, account_id)
        info = await start_session(db, account_id, body.activity_id)
    return _session_response(info)


@router.post("/sessions/heartbeat", response_model=SessionResponse)
async def session_heartbeat(
    body: HeartbeatRequest,
    account_id: str = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_session),
):
    """Keep a session alive. 404 means it is gone; clients should stop reporting."""
    async with atomic(db):
        info = await heartbeat(db, account_id, body.session_id)
    return _session_response(info)


@router.get("/sessions/current", response_model=CurrentSessionResponse)
async def current_session(
    account_id: str = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_session),
):
    info = await get_current_session(db, account_id)
    if info is None or not info.is_active():
        return CurrentSessionResponse(active=False)
    return CurrentSessionResponse(active=True, session=_session_response(info))


@router.post("/complete", response_model=CompleteGameResponse)
async def complete_game_session(
    body: CompleteGameRequest,
    account_id: str = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_session),
):
    """Reward a finished game. Replays of the same session return ``already_applied``."""
    async with atomic(db):
        result = await complete_game(
            db,
            account_id,
            session_id=body.session_id,
            activity=body.activity_id,
            score=body.score,
            duration_seconds=body.duration_seconds,
            is_high_score=body.is_high_score,
            is_top_ten=body.is_top_ten,
        )

    balance = BalanceResponse.of(result.balance)
    if result.below_minimum:
        return CompleteGameResponse(
            success=False,
            error="BelowMinimum",
            reward=RewardAmount(),
            new_balance=balance,
            min_score=result.min_score,
            your_score=body.score,
        )

    if not result.already_applied:
        redis = get_redis_or_none()
        await publish_balance_update(redis, account_id, result.balance.as_dict(), "gameplay")
        if result.verdict.flagged:
            await publish_score_flagged(
                redis, account_id, body.activity_id.value, body.score, result.verdict.reason or ""
            )

    return CompleteGameResponse(
        reward=RewardAmount(
            oranges=result.reward_oranges,
            gems=result.reward_gems,
            breakdown=result.breakdown,
        ),
        new_balance=balance,
        already_applied=result.already_applied,
        completed_achievements=result.completed_achievements,
        completed_challenges=result.completed_challenges,
    )
