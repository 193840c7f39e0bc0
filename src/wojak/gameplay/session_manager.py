"""Single-active-session gate.

Per account: NoSession -> Active -> (Expired | Completed). A session is
active while its last heartbeat is younger than the timeout; the timeout is
the only liveness signal, so crashed clients simply age out.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wojak.database import upsert
from wojak.db.models import ActiveSession
from wojak.economy.catalog import SESSION_TIMEOUT_SECONDS, Activity
from wojak.economy.day_utils import ensure_utc, utc_now
from wojak.economy.errors import SessionConflict, SessionNotFound

logger = logging.getLogger(__name__)

SESSION_TIMEOUT = timedelta(seconds=SESSION_TIMEOUT_SECONDS)


@dataclass(frozen=True)
class SessionInfo:
    session_id: str
    activity_id: str
    started_at: datetime
    last_heartbeat: datetime

    @property
    def expires_at(self) -> datetime:
        return ensure_utc(self.last_heartbeat) + SESSION_TIMEOUT

    def is_active(self, now: datetime | None = None) -> bool:
        return ensure_utc(now or utc_now()) < self.expires_at


def _info(row: ActiveSession) -> SessionInfo:
    return SessionInfo(
        session_id=row.session_id,
        activity_id=row.activity_id,
        started_at=ensure_utc(row.started_at),
        last_heartbeat=ensure_utc(row.last_heartbeat),
    )


async def get_current_session(db: AsyncSession, account_id: str) -> SessionInfo | None:
    """The account's session row, expired or not."""
    result = await db.execute(
        select(ActiveSession)
        .where(ActiveSession.account_id == account_id)
        .execution_options(populate_existing=True)
    )
    row = result.scalar_one_or_none()
    return _info(row) if row else None


async def start_session(
    db: AsyncSession,
    account_id: str,
    activity: Activity,
    now: datetime | None = None,
) -> SessionInfo:
    """Claim the account's session slot for a new game.

    One conditional upsert: an existing row is overwritten only if its
    heartbeat is older than the timeout. Otherwise raises SessionConflict and
    the live session keeps its id.
    """
    now = ensure_utc(now or utc_now())
    cutoff = now - SESSION_TIMEOUT
    session_id = uuid.uuid4().hex

    stmt = upsert(db, ActiveSession).values(
        account_id=account_id,
        session_id=session_id,
        activity_id=activity.value,
        started_at=now,
        last_heartbeat=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["account_id"],
        set_={
            "session_id": stmt.excluded.session_id,
            "activity_id": stmt.excluded.activity_id,
            "started_at": stmt.excluded.started_at,
            "last_heartbeat": stmt.excluded.last_heartbeat,
        },
        where=ActiveSession.last_heartbeat < cutoff,
    ).returning(ActiveSession.session_id)

    claimed = (await db.execute(stmt)).scalar_one_or_none()
    if claimed is None:
        live = await get_current_session(db, account_id)
        if live is None:
            # Deleted between the upsert and the read; the slot is free now.
            return await start_session(db, account_id, activity, now)
        expires_in = max(0, int((live.expires_at - now).total_seconds()))
        logger.info("Session conflict for %s: %s still live", account_id, live.activity_id)
        raise SessionConflict(live.activity_id, expires_in)

    logger.debug("Started session %s for %s on %s", session_id, account_id, activity.value)
    return SessionInfo(
        session_id=session_id,
        activity_id=activity.value,
        started_at=now,
        last_heartbeat=now,
    )


async def heartbeat(
    db: AsyncSession,
    account_id: str,
    session_id: str,
    now: datetime | None = None,
) -> SessionInfo:
    """Refresh a live session. Raises SessionNotFound if it expired or was superseded."""
    now = ensure_utc(now or utc_now())
    cutoff = now - SESSION_TIMEOUT
    result = await db.execute(
        update(ActiveSession)
        .where(
            ActiveSession.account_id == account_id,
            ActiveSession.session_id == session_id,
            ActiveSession.last_heartbeat >= cutoff,
        )
        .values(last_heartbeat=now)
        .returning(ActiveSession.activity_id, ActiveSession.started_at)
        .execution_options(synchronize_session=False)
    )
    row = result.one_or_none()
    if row is None:
        raise SessionNotFound
    return SessionInfo(
        session_id=session_id,
        activity_id=row.activity_id,
        started_at=ensure_utc(row.started_at),
        last_heartbeat=now,
    )


async def complete_session(db: AsyncSession, account_id: str) -> None:
    """Drop the account's session row, whatever state it is in."""
    await db.execute(
        delete(ActiveSession)
        .where(ActiveSession.account_id == account_id)
        .execution_options(synchronize_session=False)
    )
