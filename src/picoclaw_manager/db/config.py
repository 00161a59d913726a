"""Database engine and session management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from picoclaw_manager.config.settings import Settings
from picoclaw_manager.db.models import Base


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine described by ``settings``.

    Pool sizing only applies to server databases; SQLite URLs get the
    dialect's default pool.
    """
    kwargs: dict = {"echo": settings.DEBUG}
    if not settings.DATABASE_URL.startswith("sqlite"):
        if settings.ENVIRONMENT == "test":
            kwargs["poolclass"] = NullPool
        else:
            kwargs["pool_size"] = settings.DATABASE_POOL_SIZE
            kwargs["max_overflow"] = settings.DATABASE_MAX_OVERFLOW
    return create_async_engine(settings.DATABASE_URL, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create missing tables.

    Called during application startup; existing tables are left alone.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_db(engine: AsyncEngine) -> None:
    """Round-trip a trivial query. Raises on connectivity failure."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db(engine: AsyncEngine) -> None:
    """Release all pooled connections. Called during application shutdown."""
    await engine.dispose()


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Session that commits on success and rolls back on error.

    Usage:
        async with session_scope(factory) as session:
            session.add(record)
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
