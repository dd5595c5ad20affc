"""Database engine, session factory and startup connection retry."""

import asyncio
import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine

from backend.organizer.config import Settings, get_settings
from backend.organizer.docs.errors import DatabaseUnavailableError

logger = logging.getLogger(__name__)


def create_async_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create async SQLAlchemy engine from settings."""
    return create_async_engine(settings.resolved_database_url, pool_pre_ping=True, echo=False)


# Global async engine shared by all requests
_async_engine: AsyncEngine | None = None


def get_async_engine() -> AsyncEngine:
    """Get global async engine instance."""
    global _async_engine
    if _async_engine is None:
        _async_engine = create_async_engine_from_settings(get_settings())
    return _async_engine


async def dispose_async_engine() -> None:
    """Dispose the global engine, if one was created."""
    global _async_engine
    if _async_engine is not None:
        await _async_engine.dispose()
        _async_engine = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for async database session.

    Yields:
        AsyncSession instance
    """
    async with AsyncSession(get_async_engine(), expire_on_commit=False) as session:
        yield session


async def connect_with_retry(
    engine: AsyncEngine,
    *,
    attempts: int,
    backoff_seconds: float,
) -> None:
    """Verify the database is reachable, retrying with a fixed backoff.

    Args:
        engine: Engine to probe
        attempts: Maximum number of connection attempts
        backoff_seconds: Sleep between failed attempts

    Raises:
        DatabaseUnavailableError: If every attempt fails
    """
    for attempt in range(1, attempts + 1):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("[db] connected to database")
            return
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                f"[db] error connecting to database, retrying: {e}",
                extra={"structured": {"attempt": attempt, "attempts": attempts}},
            )
            if attempt < attempts:
                await asyncio.sleep(backoff_seconds)

    raise DatabaseUnavailableError(
        f"after {attempts} attempts, connection failed",
        operation="connect",
    )
