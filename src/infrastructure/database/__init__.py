# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the PostgreSQL credential store.

Example:
    from src.infrastructure.database import get_central_session

    async with get_central_session() as session:
        result = await session.execute(select(Account))
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    check_central_database_connection,
    close_central_database,
    create_schema,
    get_central_engine,
    get_central_session,
    get_central_sessionmaker,
    init_central_database,
)

__all__ = [
    "DatabaseError",
    "check_central_database_connection",
    "close_central_database",
    "create_schema",
    "get_central_engine",
    "get_central_session",
    "get_central_sessionmaker",
    "init_central_database",
]
