"""
Best Bike Paths Backend - Test Configuration (conftest.py)
===========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment overrides are applied BEFORE any bbp import so that the
       settings singleton, the engine and the tenacity decorators are built
       with test values (in-memory SQLite, no retry waits).

Fixtures:
    Plain objects (no I/O):
    ├── policy:            default HealthPolicy
    ├── now:               fixed evaluation instant
    ├── make_report:       report factory (SimpleNamespace)
    └── make_path_row:     PathSegment-like row factory

    Mocks:
    └── mock_db_session:   AsyncMock standing in for AsyncSession

    Real stack:
    ├── db_engine:         in-memory SQLite with every table created
    └── test_client:       httpx AsyncClient over ASGITransport, with
                           get_db_session bound to db_engine
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RETRY_MAX_ATTEMPTS"] = "3"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"
os.environ["RETRY_JITTER"] = "0"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"

from datetime import datetime, timedelta, timezone  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from bbp.config import HealthPolicy  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Plain Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def policy() -> HealthPolicy:
    return HealthPolicy()


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_report(now):
    """
    Builds report-like objects for the engine.

    Usage:
        make_report("MEDIUM")                       # CREATED, age 0
        make_report("CLOSED", status="REJECTED", age_minutes=60)
    """
    def _make(path_status, status="CREATED", age_minutes=0.0, segment_id="seg-1", **extra):
        return SimpleNamespace(
            path_status=path_status,
            status=status,
            created_at=now - timedelta(minutes=age_minutes),
            segment_id=segment_id,
            **extra,
        )
    return _make


@pytest.fixture
def make_path_row():
    def _make(segment_id, status, next_segment_id=None):
        return SimpleNamespace(
            segment_id=segment_id,
            status=status,
            next_segment_id=next_segment_id,
        )
    return _make


# ══════════════════════════════════════════════════════════════════════════
# Mocks
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Mock async session. Services under test talk to a patched query_service,
    so the session is only passed through (and flushed).
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Real Stack (in-memory SQLite)
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    Fresh in-memory database per test. StaticPool keeps the single
    connection alive so every session sees the same tables.
    """
    from bbp.database import Base
    import bbp.models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def test_client(db_engine):
    """
    HTTP client against the real app, one committed session per request.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    from bbp.database import get_db_session
    from bbp.main import app

    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db_session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
