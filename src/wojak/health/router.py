"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from wojak.config import get_settings
from wojak.database import get_session
from wojak.db.models import Account
from wojak.redis_client import redis_status

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe.

    The store and its schema are required; Redis only powers rate limiting and
    event fan-out, so losing it degrades the service without failing the probe.
    """
    checks: dict[str, object] = {}

    try:
        await db.execute(text("SELECT 1"))
        await db.execute(select(Account.id).limit(1))
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    checks["redis"] = await redis_status()

    jwks = getattr(request.app.state, "jwks_cache", None)
    checks["identity_keys"] = "cached" if jwks is not None and jwks.is_fresh else "cold"

    if checks["database"] != "ok":
        response.status_code = 503
        status = "unavailable"
    elif checks["redis"] != "ok":
        status = "degraded"
    else:
        status = "ready"
    return {"status": status, "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
