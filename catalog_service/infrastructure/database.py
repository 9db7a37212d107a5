"""Database configuration and session management.

Provides the async SQLAlchemy engine/session factory and the transaction
helper every multi-row write goes through.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from catalog_service.domain.exceptions import ConflictError
from catalog_service.infrastructure.config import Settings

logger = structlog.get_logger()


class Base(DeclarativeBase):
    """Base class for ORM models."""


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured store.

    Args:
        settings: Application settings.

    Returns:
        AsyncEngine bound to ``settings.database_url``.
    """
    kwargs: dict = {"echo": settings.debug}
    if not settings.database_url.startswith("sqlite"):
        kwargs["pool_pre_ping"] = True
    return create_async_engine(settings.database_url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory.

    Args:
        engine: Engine to bind sessions to.

    Returns:
        Session factory producing AsyncSession instances.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    # Import for side effects: registers every mapped table on Base.metadata.
    from catalog_service.catalog import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session that is closed (and rolled back) on exit.

    Closing the session releases the pooled connection, including when the
    caller is cancelled mid-request.

    Args:
        factory: Session factory.

    Yields:
        AsyncSession for database operations.
    """
    async with factory() as session:
        yield session


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run a block of writes as one transaction.

    Commits when the block exits normally and rolls back on any exception,
    cancellation included. Integrity violations surfacing at flush or commit
    time are reported as a ConflictError.

    Args:
        session: Session holding the request's connection.

    Yields:
        The same session.
    """
    try:
        yield session
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        logger.warning("Integrity violation rolled back", error=str(e.orig))
        raise ConflictError(
            "The change conflicts with existing catalog data",
            error_code="CONFLICT",
        ) from e
    except BaseException:
        await session.rollback()
        raise
