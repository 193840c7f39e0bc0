"""Redis connection pool.

Redis is optional at runtime: it backs rate limiting and event fan-out only,
so callers that can live without it use ``get_redis_or_none``.
"""

import logging

import redis.asyncio as redis

logger = logging.getLogger(__name__)

_pool: redis.Redis | None = None


async def init_redis(url: str) -> None:
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )
    logger.info("Redis pool configured for %s", url.rsplit("@", 1)[-1])


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Redis client for callers that require it. Raises RuntimeError when not initialised."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


def get_redis_or_none() -> redis.Redis | None:
    """Redis client for best-effort publishing; None when Redis is not configured."""
    return _pool


async def redis_status() -> str:
    """``ok`` or the error seen while pinging, for the readiness probe."""
    try:
        await get_redis().ping()
    except Exception as exc:
        return f"error: {exc}"
    return "ok"
