"""Best-effort Redis pub/sub fan-out of economy events.

Publishing happens after the unit of work commits. A Redis outage never
fails the request that produced the event.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from wojak.config import get_settings

logger = logging.getLogger(__name__)

BALANCE_CHANNEL = "pubsub:balance_update"
SCORE_FLAG_CHANNEL = "pubsub:score_flagged"


async def publish(redis: object | None, channel: str, payload: dict[str, Any]) -> bool:
    """Publish a JSON payload. Returns False when skipped or failed."""
    if redis is None or not get_settings().publish_events:
        return False
    try:
        await redis.publish(channel, json.dumps(payload))  # type: ignore[union-attr]
    except Exception:
        logger.warning("Failed to publish %s event", channel, exc_info=True)
        return False
    return True


async def publish_balance_update(
    redis: object | None,
    account_id: str,
    balance: dict[str, int],
    source: str,
) -> bool:
    return await publish(redis, BALANCE_CHANNEL, {
        "account_id": account_id,
        "oranges": balance["oranges"],
        "gems": balance["gems"],
        "source": source,
    })


async def publish_score_flagged(
    redis: object | None,
    account_id: str,
    activity_id: str,
    score: int,
    reason: str,
) -> bool:
    return await publish(redis, SCORE_FLAG_CHANNEL, {
        "account_id": account_id,
        "activity_id": activity_id,
        "score": score,
        "reason": reason,
    })
