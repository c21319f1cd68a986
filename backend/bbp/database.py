"""
Best Bike Paths Backend - Database Session Management
======================================================

What:  Async SQLAlchemy engine, session factory, declarative base and the
       FastAPI session dependency.
How:   One pooled async engine per process; one session per request that
       commits on success and rolls back on any error.

Transactions and the cascade:
    A report write and the status cascade it triggers run in the same
    request session, so they commit together. Concurrent writers on the same
    segment are serialized (or not) by the database; the cascade is
    idempotent and the last committed run reflects every prior report.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from bbp.config import settings


def _engine_options() -> dict:
    options = {
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": 3600,
        "echo": settings.log_level == "DEBUG",
    }
    # SQLite (tests, local runs) does not take QueuePool sizing arguments
    if not settings.database_url.startswith("sqlite"):
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return options


engine = create_async_engine(settings.database_url, **_engine_options())

# expire_on_commit=False: ORM objects stay readable after the request commits
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic."""
    pass


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    1. Creates a session from the factory
    2. Yields it to the route handler
    3. Commits on success, rolls back on any exception (then re-raises)
    4. Always closes the session, returning the connection to the pool

    Example:
        @router.get("/paths")
        async def list_paths(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def dispose_engine() -> None:
    """Closes every pooled connection. Called from the shutdown lifespan."""
    await engine.dispose()
