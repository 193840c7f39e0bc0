"""UTC calendar-day helpers.

Every day-scoped key (daily login, daily challenges) uses the UTC date of the
server clock at processing time.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_day(now: datetime | None = None) -> date:
    return ensure_utc(now or utc_now()).date()


def day_key(day: date) -> str:
    """ISO form used inside idempotency keys, e.g. ``2026-10-18``."""
    return day.isoformat()


def previous_day(day: date) -> date:
    return day - timedelta(days=1)


def seconds_until_next_day(now: datetime | None = None) -> int:
    now = ensure_utc(now or utc_now())
    tomorrow = datetime.combine(now.date() + timedelta(days=1), datetime.min.time(), tzinfo=timezone.utc)
    return int((tomorrow - now).total_seconds())
