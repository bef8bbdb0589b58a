"""
Database connection management.

Provides the async SQLAlchemy engine, session factory, FastAPI dependency
for database session injection, and the process-wide single-writer guard.

Dependencies: sqlalchemy, workspace_chat.configs
System role: Database connection lifecycle management
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from workspace_chat.configs import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_async_engine() -> AsyncEngine:
    """
    Create the async SQLAlchemy engine once per process.

    pool_pre_ping=True verifies connections before use to detect
    stale/broken connections early. Pool sizing is skipped for SQLite.

    Returns:
        AsyncEngine: Configured async SQLAlchemy engine

    Raises:
        ArgumentError: If database URL is invalid or engine creation fails
    """
    db_config = get_settings().database

    if db_config.is_sqlite:
        return create_async_engine(db_config.async_database_url, echo=db_config.echo_sql)

    return create_async_engine(
        db_config.async_database_url,
        echo=db_config.echo_sql,
        pool_size=db_config.pool_size,
        max_overflow=db_config.max_overflow,
        pool_timeout=db_config.pool_timeout,
        pool_pre_ping=True,
    )


@lru_cache
def get_async_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Create async session factory for database operations.

    Sessions use autoflush=False and expire_on_commit=False so ORM objects
    stay readable after the writer commits.

    Returns:
        async_sessionmaker: Async session factory
    """
    return async_sessionmaker(
        bind=get_async_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for async database session injection with automatic cleanup.

    Yields:
        AsyncSession: Async SQLAlchemy database session (scoped to request lifetime)
    """
    session_factory = get_async_session_factory()
    async with session_factory() as session:
        yield session


class DatabaseWriter:
    """
    Single-writer discipline for the relational store.

    Every write transaction runs under one asyncio lock so writes are
    serialized process-wide; reads never take the lock.

    Usage:
        async with database_writer.transaction(db):
            await message_crud.append(db, ...)
    """

    def __init__(self) -> None:
        self._lock: asyncio.Lock | None = None

    @property
    def lock(self) -> asyncio.Lock:
        # Created lazily so the lock binds to the running loop.
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    @asynccontextmanager
    async def transaction(self, db: AsyncSession) -> AsyncIterator[AsyncSession]:
        """
        Run a write unit of work and commit it, rolling back on failure.

        Args:
            db: Request-scoped async session

        Yields:
            AsyncSession: The same session, for convenience
        """
        async with self.lock:
            try:
                yield db
                await db.commit()
            except BaseException:
                await db.rollback()
                raise


database_writer = DatabaseWriter()
