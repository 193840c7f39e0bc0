"""Progress API endpoints: achievements, daily challenges and daily login."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wojak.auth.dependencies import get_current_account_id
from wojak.database import atomic, get_session
from wojak.economy.day_utils import utc_day
from wojak.economy.events import publish_balance_update
from wojak.economy.schemas import BalanceResponse, RewardAmount
from wojak.progress.daily_login_service import claim_daily_login, get_status
from wojak.progress.progress_tracker import ClaimResult
from wojak.progress.schemas import (
    AchievementsResponse,
    ChallengesResponse,
    ClaimAchievementRequest,
    ClaimChallengeRequest,
    ClaimResponse,
    DailyLoginClaimResponse,
    DailyLoginStatusResponse,
    ProgressEntry,
)
from wojak.progress.service import (
    ProgressView,
    claim_achievement,
    claim_challenge,
    list_achievements,
    list_challenges,
)
from wojak.redis_client import get_redis_or_none

router = APIRouter(prefix="/api/v1", tags=["Progress"])


def _entry(view: ProgressView) -> ProgressEntry:
    return ProgressEntry(
        id=view.item_id,
        name=view.name,
        description=view.description,
        progress=view.progress,
        target=view.target,
        reward_oranges=view.reward_oranges,
        reward_gems=view.reward_gems,
        completed=view.completed_at is not None,
        claimed=view.claimed_at is not None,
        completed_at=view.completed_at,
        claimed_at=view.claimed_at,
    )


async def _claim_response(account_id: str, result: ClaimResult, source: str) -> ClaimResponse:
    if not result.ledger.already_applied:
        await publish_balance_update(get_redis_or_none(), account_id, result.ledger.balance.as_dict(), source)
    return ClaimResponse(
        item_id=result.key.item_id,
        reward=RewardAmount(oranges=result.reward_oranges, gems=result.reward_gems),
        new_balance=BalanceResponse.of(result.ledger.balance),
        already_applied=result.ledger.already_applied,
    )


# --- Achievements ---


@router.get("/achievements", response_model=AchievementsResponse)
async def get_achievements(
    account_id: str = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_session),
):
    views = await list_achievements(db, account_id)
    return AchievementsResponse(
        achievements=[_entry(v) for v in views],
        claimable=sum(1 for v in views if v.claimable),
    )


@router.post("/achievements/claim", response_model=ClaimResponse)
async def claim_achievement_reward(
    body: ClaimAchievementRequest,
    account_id: str = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_session),
):
    async with atomic(db):
        result = await claim_achievement(db, account_id, body.achievement_id)
    return await _claim_response(account_id, result, "achievement")


# --- Daily challenges ---


@router.get("/challenges", response_model=ChallengesResponse)
async def get_daily_challenges(
    account_id: str = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_session),
):
    """Today's (UTC) challenges with progress."""
    today = utc_day()
    views = await list_challenges(db, account_id, today)
    return ChallengesResponse(
        day=today,
        challenges=[_entry(v) for v in views],
        claimable=sum(1 for v in views if v.claimable),
    )


@router.post("/challenges/claim", response_model=ClaimResponse)
async def claim_challenge_reward(
    body: ClaimChallengeRequest,
    account_id: str = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_session),
):
    async with atomic(db):
        result = await claim_challenge(db, account_id, body.challenge_id)
    return await _claim_response(account_id, result, "daily_challenge")


# --- Daily login ---


@router.get("/daily-login", response_model=DailyLoginStatusResponse)
async def daily_login_status(
    account_id: str = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_session),
):
    status = await get_status(db, account_id)
    return DailyLoginStatusResponse(
        claimed_today=status.claimed_today,
        streak_day=status.streak_day,
        streak_length=status.streak_length,
        reward_oranges=status.reward_oranges,
        reward_gems=status.reward_gems,
        seconds_until_reset=status.seconds_until_reset,
    )


@router.post("/daily-login", response_model=DailyLoginClaimResponse)
async def daily_login_claim(
    account_id: str = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_session),
):
    async with atomic(db):
        result = await claim_daily_login(db, account_id)

    if not result.already_applied:
        await publish_balance_update(get_redis_or_none(), account_id, result.balance.as_dict(), "daily_login")
    return DailyLoginClaimResponse(
        reward=RewardAmount(oranges=result.reward_oranges, gems=result.reward_gems),
        new_balance=BalanceResponse.of(result.balance),
        already_applied=result.already_applied,
        streak_day=result.streak_day,
        streak_length=result.streak_length,
        completed_achievements=result.completed_achievements,
    )
