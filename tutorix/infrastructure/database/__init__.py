# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the Tutorix auth core.

This package provides the SQLAlchemy async connection, the auth models and
the CredentialStore persistence surface.

Example:
    from tutorix.infrastructure.database import get_session, SQLAlchemyCredentialStore

    async with get_session() as session:
        store = SQLAlchemyCredentialStore(session)
        user = await store.get_user(42)
"""

from tutorix.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    create_tables,
    get_session,
    get_sessionmaker,
    init_database,
)
from tutorix.infrastructure.database.store import (
    CredentialStore,
    SessionCounts,
    SQLAlchemyCredentialStore,
)

__all__ = [
    "DatabaseError",
    "init_database",
    "close_database",
    "create_tables",
    "get_session",
    "get_sessionmaker",
    "check_database_connection",
    "CredentialStore",
    "SQLAlchemyCredentialStore",
    "SessionCounts",
]
