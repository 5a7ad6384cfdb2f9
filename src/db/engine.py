"""Database and Redis connections for the quotation request service.

One async engine (asyncpg) per process, sized from DatabaseSettings; request
handlers get a session through `get_session`, which commits on success and
rolls back on error. The Redis client backs rate limiting and, when
CACHE_BACKEND=redis, the shared result cache.
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import AsyncGenerator

import redis.asyncio as aioredis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.config import settings

logger = logging.getLogger(__name__)

# ── PostgreSQL ───────────────────────────────────────────────────────

engine: AsyncEngine = create_async_engine(
    settings.db.database_url,
    echo=settings.db.echo_sql,
    pool_size=settings.db.pool_size,
    max_overflow=settings.db.max_overflow,
    pool_pre_ping=True,
    pool_recycle=3600,
)

# Rows stay readable after commit; services map them to read models afterwards.
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping_database(db: AsyncSession) -> int:
    """Run a trivial query and return its latency in milliseconds."""
    start = time.monotonic()
    await db.execute(text("SELECT 1"))
    return int((time.monotonic() - start) * 1000)


# ── Redis ────────────────────────────────────────────────────────────

redis_client: aioredis.Redis = aioredis.from_url(settings.db.redis_url, decode_responses=True)


# ── Lifecycle ────────────────────────────────────────────────────────


async def init_db() -> None:
    """Open the pool; outside production also create missing tables.

    Production schemas come from the Alembic revisions only.
    """
    from src.models import Base

    async with engine.begin() as conn:
        if settings.is_production:
            await conn.execute(text("SELECT 1"))
        else:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Ensured %d tables exist", len(Base.metadata.tables))


async def close_db() -> None:
    await engine.dispose()
    await redis_client.aclose()


@contextlib.asynccontextmanager
async def db_lifespan() -> AsyncGenerator[None, None]:
    """Wrap the app lifespan: init on enter, dispose pools on exit."""
    await init_db()
    try:
        yield
    finally:
        await close_db()
