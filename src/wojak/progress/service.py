"""Achievement and daily-challenge claims and listings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from wojak.economy.catalog import ACHIEVEMENTS, DAILY_CHALLENGES, AchievementId, ChallengeId
from wojak.economy.day_utils import ensure_utc, utc_day, utc_now
from wojak.moderation.ban_gate import ensure_not_banned
from wojak.progress.metrics import track_lifetime_oranges
from wojak.progress.progress_tracker import ClaimResult, ProgressKey, ProgressKind, claim, list_records


@dataclass(frozen=True)
class ProgressView:
    item_id: str
    name: str
    description: str
    progress: int
    target: int
    reward_oranges: int
    reward_gems: int
    completed_at: datetime | None
    claimed_at: datetime | None

    @property
    def claimable(self) -> bool:
        return self.completed_at is not None and self.claimed_at is None


async def claim_achievement(
    db: AsyncSession,
    account_id: str,
    achievement_id: AchievementId,
    now: datetime | None = None,
) -> ClaimResult:
    now = now or utc_now()
    await ensure_not_banned(db, account_id)
    result = await claim(db, ProgressKey.achievement(account_id, achievement_id), now)
    await track_lifetime_oranges(db, account_id, now)
    return result


async def claim_challenge(
    db: AsyncSession,
    account_id: str,
    challenge_id: ChallengeId,
    now: datetime | None = None,
) -> ClaimResult:
    """Claim today's (UTC) instance of a daily challenge."""
    now = now or utc_now()
    await ensure_not_banned(db, account_id)
    result = await claim(db, ProgressKey.challenge(account_id, challenge_id, utc_day(now)), now)
    await track_lifetime_oranges(db, account_id, now)
    return result


def _view(item_id: str, item, row) -> ProgressView:  # noqa: ANN001
    # Completed rows show the frozen reward; others the catalog reward.
    completed = row is not None and row.completed_at is not None
    return ProgressView(
        item_id=item_id,
        name=item.name,
        description=item.description,
        progress=row.progress if row else 0,
        target=item.target,
        reward_oranges=row.reward_oranges if completed else item.reward_oranges,
        reward_gems=row.reward_gems if completed else item.reward_gems,
        completed_at=ensure_utc(row.completed_at) if completed else None,
        claimed_at=ensure_utc(row.claimed_at) if row and row.claimed_at else None,
    )


async def list_achievements(db: AsyncSession, account_id: str) -> list[ProgressView]:
    rows = await list_records(db, ProgressKind.ACHIEVEMENT, account_id)
    return [_view(aid.value, item, rows.get(aid.value)) for aid, item in ACHIEVEMENTS.items()]


async def list_challenges(db: AsyncSession, account_id: str, day: date | None = None) -> list[ProgressView]:
    day = day or utc_day()
    rows = await list_records(db, ProgressKind.CHALLENGE, account_id, day)
    return [_view(cid.value, item, rows.get(cid.value)) for cid, item in DAILY_CHALLENGES.items()]
