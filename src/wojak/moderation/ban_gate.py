"""Ban gate: blocks every reward path for suspended accounts."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wojak.database import upsert
from wojak.db.models import ActiveSession, BanRecord, DailyChallengeProgress, UserAchievement
from wojak.economy.day_utils import utc_now
from wojak.economy.errors import AccountBanned

logger = logging.getLogger(__name__)

APPEAL_NONE = "none"
APPEAL_PENDING = "pending"
APPEAL_APPROVED = "approved"
APPEAL_DENIED = "denied"

VALID_APPEAL_TRANSITIONS: dict[str, set[str]] = {
    APPEAL_NONE: {APPEAL_PENDING},
    APPEAL_PENDING: {APPEAL_APPROVED, APPEAL_DENIED},
    APPEAL_DENIED: {APPEAL_PENDING},
    APPEAL_APPROVED: set(),
}


def validate_appeal_transition(current: str, target: str) -> None:
    """Raise ValueError if the appeal status change is not allowed."""
    allowed = VALID_APPEAL_TRANSITIONS.get(current, set())
    if target not in allowed:
        msg = f"Invalid appeal transition: {current} -> {target}"
        raise ValueError(msg)


async def is_banned(db: AsyncSession, account_id: str) -> bool:
    """True if a ban record exists and its appeal has not been approved."""
    result = await db.execute(
        select(BanRecord.appeal_status).where(BanRecord.account_id == account_id)
    )
    status = result.scalar_one_or_none()
    return status is not None and status != APPEAL_APPROVED


async def ensure_not_banned(db: AsyncSession, account_id: str) -> None:
    if await is_banned(db, account_id):
        logger.info("Rejected reward path for banned account %s", account_id)
        raise AccountBanned


async def ban_user(
    db: AsyncSession,
    account_id: str,
    reason: str,
    evidence: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> BanRecord:
    """Ban an account. Safe to call repeatedly.

    Discards the live session and zeroes the frozen rewards of every
    completed-but-unclaimed achievement and challenge, so a later appeal
    approval does not release them.
    """
    now = now or utc_now()
    stmt = upsert(db, BanRecord).values(
        account_id=account_id,
        reason=reason,
        evidence=evidence or {},
        appeal_status=APPEAL_NONE,
        banned_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["account_id"],
        set_={
            "reason": stmt.excluded.reason,
            "evidence": stmt.excluded.evidence,
            "appeal_status": APPEAL_NONE,
            "updated_at": now,
        },
    )
    await db.execute(stmt)

    await db.execute(delete(ActiveSession).where(ActiveSession.account_id == account_id))

    for model in (UserAchievement, DailyChallengeProgress):
        await db.execute(
            update(model)
            .where(
                model.account_id == account_id,
                model.completed_at.is_not(None),
                model.claimed_at.is_(None),
            )
            .values(reward_oranges=0, reward_gems=0, updated_at=now)
            .execution_options(synchronize_session=False)
        )

    logger.info("Banned account %s: %s", account_id, reason)
    result = await db.execute(
        select(BanRecord)
        .where(BanRecord.account_id == account_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def get_ban(db: AsyncSession, account_id: str) -> BanRecord | None:
    result = await db.execute(select(BanRecord).where(BanRecord.account_id == account_id))
    return result.scalar_one_or_none()


async def set_appeal_status(
    db: AsyncSession,
    account_id: str,
    target: str,
    now: datetime | None = None,
) -> BanRecord | None:
    """Move a ban's appeal to ``target``. Returns None if the account is not banned."""
    record = await get_ban(db, account_id)
    if record is None:
        return None
    validate_appeal_transition(record.appeal_status, target)
    record.appeal_status = target
    record.updated_at = now or utc_now()
    await db.flush()
    logger.info("Appeal for %s is now %s", account_id, target)
    return record


async def file_appeal(db: AsyncSession, account_id: str, now: datetime | None = None) -> BanRecord | None:
    return await set_appeal_status(db, account_id, APPEAL_PENDING, now)


async def resolve_appeal(
    db: AsyncSession,
    account_id: str,
    approved: bool,
    now: datetime | None = None,
) -> BanRecord | None:
    """Approve (lifting the gate) or deny a pending appeal."""
    target = APPEAL_APPROVED if approved else APPEAL_DENIED
    return await set_appeal_status(db, account_id, target, now)
