"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from wojak.auth.identity import create_jwks_cache
from wojak.config import get_settings
from wojak.database import close_db, init_db
from wojak.economy.router import router as economy_router
from wojak.gameplay.router import router as gameplay_router
from wojak.health.router import router as health_router
from wojak.leaderboard.router import router as leaderboard_router
from wojak.middleware import setup_middleware
from wojak.moderation.router import admin_router
from wojak.moderation.router import router as moderation_router
from wojak.progress.router import router as progress_router
from wojak.redis_client import close_redis, init_redis


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    app.state.jwks_cache = create_jwks_cache(settings)

    yield

    await app.state.jwks_cache.aclose()
    app.state.jwks_cache = None
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Wojak Arcade Economy API",
        description="Reward ledger, sessions and progress for the Wojak arcade",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(economy_router)
    app.include_router(gameplay_router)
    app.include_router(progress_router)
    app.include_router(leaderboard_router)
    app.include_router(moderation_router)
    app.include_router(admin_router)

    return app


app = create_app()
