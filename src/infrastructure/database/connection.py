# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database connection management using SQLAlchemy async.

The Database object owns the engine and session factory for the relational
store. It is created once by the process bootstrap and passed explicitly to
every service that needs it.

Uses SQLAlchemy 2.0 async API with the asyncpg driver in deployment and
aiosqlite for local runs and tests.

Example:
    from src.infrastructure.database.connection import Database

    database = Database(settings.database)

    async with database.session() as session:
        result = await session.execute(select(Assessment))
        assessments = result.scalars().all()

    await database.dispose()
"""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.infrastructure.database.models import Base

if TYPE_CHECKING:
    from src.core.config.settings import DatabaseSettings

SQLITE_BUSY_TIMEOUT_MS = 30000


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def _configure_sqlite(engine: AsyncEngine) -> None:
    """Make SQLite honour foreign keys, savepoints and writer serialization.

    The driver's own implicit BEGIN is disabled and replaced by
    ``BEGIN IMMEDIATE`` so every transaction takes the write lock up front.
    Concurrent writers then queue on ``busy_timeout`` instead of failing
    with a lock upgrade error halfway through a multi-step write.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """Engine and session factory for the relational store.

    Attributes:
        settings: Database settings the engine was built from.
    """

    def __init__(self, settings: "DatabaseSettings") -> None:
        """Create the engine and session factory.

        No connection is opened until the first session is used.

        Args:
            settings: Database configuration.

        Raises:
            DatabaseError: If the engine cannot be created.
        """
        self.settings = settings

        engine_kwargs: dict = {"echo": settings.echo}
        if not settings.is_sqlite:
            engine_kwargs.update(
                pool_size=settings.pool_size,
                max_overflow=settings.max_overflow,
                pool_pre_ping=True,
                pool_recycle=1800,
            )

        try:
            self._engine = create_async_engine(settings.url, **engine_kwargs)
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to initialize database connection", e) from e

        if settings.is_sqlite:
            _configure_sqlite(self._engine)

        self._sessionmaker = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @property
    def engine(self) -> AsyncEngine:
        """The SQLAlchemy async engine."""
        return self._engine

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        """The SQLAlchemy async sessionmaker."""
        return self._sessionmaker

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session wrapped in one transaction.

        The session is committed when the block exits normally and rolled
        back on any exception.

        Yields:
            AsyncSession for database operations.

        Raises:
            DatabaseError: If a database operation or the commit fails.

        Example:
            async with database.session() as session:
                session.add(assessment)
        """
        async with self._sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError("Database operation failed", e) from e
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Create all tables that do not exist yet."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        """Drop all tables."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def check_connection(self) -> bool:
        """Check if the database is reachable.

        Returns:
            True if the database is reachable, False otherwise.
        """
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self._engine.dispose()
