"""Leaderboard API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wojak.auth.dependencies import get_current_account_id
from wojak.database import atomic, get_session
from wojak.economy.catalog import Activity
from wojak.leaderboard.schemas import (
    LeaderboardEntryResponse,
    LeaderboardResponse,
    SubmitScoreRequest,
    SubmitScoreResponse,
)
from wojak.leaderboard.service import submit_score, top_scores

router = APIRouter(prefix="/api/v1/leaderboard", tags=["Leaderboard"])


@router.post("/submit", response_model=SubmitScoreResponse)
async def submit_leaderboard_score(
    body: SubmitScoreRequest,
    account_id: str = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_session),
):
    async with atomic(db):
        result = await submit_score(
            db,
            account_id,
            body.activity_id,
            body.score,
            body.client_key,
            level=body.level,
            metadata=body.metadata,
        )
    return SubmitScoreResponse(
        score=result.score,
        rank=result.rank,
        is_new_high_score=result.is_new_high_score,
        previous_high_score=result.previous_high_score,
        already_applied=result.already_applied,
        completed_achievements=list(result.completed_achievements),
    )


@router.get("/{activity_id}", response_model=LeaderboardResponse)
async def get_leaderboard(
    activity_id: Activity,
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
):
    """Public top list: each player's best score for the game."""
    entries = await top_scores(db, activity_id, limit)
    return LeaderboardResponse(
        activity_id=activity_id,
        entries=[LeaderboardEntryResponse(rank=e.rank, account_id=e.account_id, score=e.score) for e in entries],
    )
