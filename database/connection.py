"""
Async engine and session wiring.

The API builds its own engine and session factory at startup and passes them
to the components explicitly. Scripts (seeds, one-off tools) use
``get_async_session()``, whose engine is built on first use.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from shared.config import get_settings


def build_engine(url: str | None = None, **kwargs) -> AsyncEngine:
    """Create an AsyncEngine for the given URL (defaults to DATABASE_URL)."""
    settings = get_settings()
    kwargs.setdefault("pool_size", settings.DATABASE_POOL_SIZE)
    kwargs.setdefault("echo", settings.DATABASE_ECHO)
    return create_async_engine(
        url or settings.DATABASE_URL,
        pool_pre_ping=True,
        **kwargs,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by the reservation and reconciliation workflows."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Process-default session factory for scripts, created on first call."""
    return build_session_factory(build_engine())


@asynccontextmanager
async def get_async_session() -> AsyncIterator[AsyncSession]:
    """
    Yield a session from the process-default factory.

    Usage:
        async with get_async_session() as session:
            await session.execute(text("SELECT 1"))
    """
    async with get_session_factory()() as session:
        yield session
