"""
Database Configuration

Async SQLAlchemy engine and session factory management.

The engine and session factory are created once at startup from the
Settings object and handed to the service context. Request handlers get
their session through the get_db dependency, background jobs open their
own sessions from the same factory.
"""

import logging
from collections.abc import AsyncIterator
from datetime import UTC, datetime

from fastapi import Request
from sqlalchemy import DateTime, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from research_engine.core.config import Settings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None


class Base(DeclarativeBase):
    """Declarative base for all models."""


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime column stored as UTC.

    Aware values are converted to UTC before binding; naive values coming
    back from the store (SQLite keeps no offset) are tagged as UTC so that
    comparisons against Clock.now() never mix naive and aware datetimes.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine from settings."""
    return create_async_engine(
        settings.database_url,
        echo=settings.database_echo,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Create a session factory bound to the engine.

    expire_on_commit=False keeps loaded attributes usable after commit,
    which async code relies on (no implicit lazy loads).
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(settings: Settings) -> async_sessionmaker[AsyncSession]:
    """
    Initialize the database engine and verify connectivity.

    Call this on application startup.

    Returns:
        The session factory to share with services and jobs
    """
    global _engine

    _engine = create_engine(settings)

    async with _engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

    logger.info("Database engine initialized")
    return create_session_factory(_engine)


async def close_db() -> None:
    """Dispose the engine on shutdown."""
    global _engine

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        logger.info("Database engine disposed")


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency yielding a session for one request.

    Usage:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    session_factory = request.app.state.context.session_factory
    async with session_factory() as session:
        yield session
