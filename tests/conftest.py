"""Shared test fixtures.

Each test gets a fresh SQLite file with the full schema. API tests talk to the
app through httpx's ASGITransport with bearer verification replaced by an
``X-Test-Account`` header.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from fastapi import HTTPException, Request
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from wojak.auth.dependencies import get_current_account_id
from wojak.config import get_settings
from wojak.database import close_db, get_engine, init_db
from wojak.db import models  # noqa: F401
from wojak.db.base import Base
from wojak.economy.ledger import get_or_create_account
from wojak.main import create_app
from wojak.redis_client import close_redis

NOW = datetime(2026, 3, 14, 15, 0, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite store with every table created."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'wojak_test.db'}")
    eng = get_engine()
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await close_db()


@pytest_asyncio.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for service calls and assertions."""
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def veteran(db_session: AsyncSession) -> str:
    """Account created 10 days ago: past trust decay, starting balance of 100 oranges."""
    account_id = "user_veteran"
    await get_or_create_account(db_session, account_id, now=NOW - timedelta(days=10))
    await db_session.commit()
    return account_id


@pytest_asyncio.fixture
async def newcomer(db_session: AsyncSession) -> str:
    """Account created an hour ago: still under trust decay."""
    account_id = "user_newcomer"
    await get_or_create_account(db_session, account_id, now=NOW - timedelta(hours=1))
    await db_session.commit()
    return account_id


async def _account_from_header(request: Request) -> str:
    account_id = request.headers.get("X-Test-Account")
    if not account_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return account_id


@pytest_asyncio.fixture
async def client(engine: AsyncEngine) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over the app, sharing the per-test store."""
    await close_redis()
    app = create_app()
    app.dependency_overrides[get_current_account_id] = _account_from_header

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_token(monkeypatch) -> str:
    """Enable the admin API with a known token."""
    token = "test-admin-token"
    monkeypatch.setenv("WJK_ADMIN_API_TOKEN", token)
    get_settings.cache_clear()
    yield token
    get_settings.cache_clear()
