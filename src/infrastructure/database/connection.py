# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Credential store connection management using SQLAlchemy async.

The credential store holds accounts, one-time codes and verification link
tokens. Uses SQLAlchemy 2.0 async API with the asyncpg driver.

Example:
    from src.infrastructure.database.connection import (
        init_central_database,
        get_central_session,
    )

    await init_central_database(settings)

    async with get_central_session() as session:
        account = await session.get(Account, 42)
"""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from src.core.config.settings import Settings

logger = logging.getLogger(__name__)

_central_engine: Optional[AsyncEngine] = None
_central_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


async def init_central_database(settings: "Settings") -> None:
    """Initialize the credential store connection pool.

    Called once at application startup.

    Args:
        settings: Application settings containing database configuration.

    Raises:
        DatabaseError: If connection pool creation fails.
    """
    global _central_engine, _central_sessionmaker

    try:
        _central_engine = create_async_engine(
            settings.central_db.url,
            pool_size=settings.central_db.pool_size,
            max_overflow=settings.central_db.max_overflow,
            pool_pre_ping=True,
            pool_recycle=1800,
            echo=settings.debug,
        )

        _central_sessionmaker = async_sessionmaker(
            bind=_central_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize credential store connection", e) from e


async def create_schema() -> None:
    """Create all credential store tables that do not exist yet.

    Raises:
        DatabaseError: If the database is not initialized or DDL fails.
    """
    from src.infrastructure.database.models import Base

    engine = get_central_engine()
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to create credential store schema", e) from e

    logger.info("Credential store schema ensured: %s", ", ".join(sorted(Base.metadata.tables)))


async def close_central_database() -> None:
    """Close the credential store connection pool."""
    global _central_engine, _central_sessionmaker

    if _central_engine is not None:
        await _central_engine.dispose()
        _central_engine = None
        _central_sessionmaker = None


def get_central_engine() -> AsyncEngine:
    """Get the credential store async engine.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _central_engine is None:
        raise DatabaseError(
            "Credential store not initialized. Call init_central_database() first."
        )
    return _central_engine


def get_central_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the credential store sessionmaker.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _central_sessionmaker is None:
        raise DatabaseError(
            "Credential store not initialized. Call init_central_database() first."
        )
    return _central_sessionmaker


@asynccontextmanager
async def get_central_session() -> AsyncIterator[AsyncSession]:
    """Get an async session for the credential store.

    The session is committed on success and rolled back on exception.
    Application errors raised inside the block propagate unchanged so the
    API layer can map them to status codes.

    Yields:
        AsyncSession for database operations.

    Raises:
        DatabaseError: If the database has not been initialized or
            if a database operation fails.
    """
    sessionmaker = get_central_sessionmaker()

    async with sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


async def check_central_database_connection() -> bool:
    """Check if the credential store is reachable.

    Returns:
        True if the database is reachable, False otherwise.
    """
    if _central_engine is None:
        return False

    try:
        async with _central_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
