# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Async engine and per-request sessions for the credential database.

One engine per process, created by init_database() at startup. Request
handlers open a session with get_session() and hand it to
build_auth_service().

Example:
    await init_database(settings)

    async with get_session() as db:
        result = await build_auth_service(db, settings).refresh(refresh_token)
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

from tutorix.infrastructure.database.models import Base

if TYPE_CHECKING:
    from tutorix.core.config.settings import Settings

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


class DatabaseError(Exception):
    """Infrastructure failure talking to the credential database.

    Never converted into an auth Result; it propagates to the caller.

    Attributes:
        message: Human-readable error description.
        original_error: Underlying SQLAlchemy error, if any.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


async def init_database(settings: "Settings") -> None:
    """Create the engine and sessionmaker.

    Raises:
        DatabaseError: If the engine cannot be created.
    """
    global _engine, _sessionmaker

    db = settings.database
    try:
        _engine = create_async_engine(
            db.url,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_pre_ping=True,
            echo=settings.debug and settings.log_level == "DEBUG",
        )
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize database connection", e) from e

    # Objects stay usable after commit, services read them after saving
    _sessionmaker = async_sessionmaker(_engine, expire_on_commit=False, autoflush=False)
    logger.info("Database engine created for %s:%s/%s", db.host, db.port, db.database)


async def create_tables() -> None:
    """Create the auth tables that do not exist yet (development setups)."""
    engine = _require(_engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_database() -> None:
    """Dispose of the engine at shutdown."""
    global _engine, _sessionmaker

    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _sessionmaker = None


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the sessionmaker.

    Raises:
        DatabaseError: If init_database() has not run.
    """
    return _require(_sessionmaker)


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Open a session, commit on success and roll back on error.

    SQLAlchemy errors are re-raised as DatabaseError, anything else is
    re-raised unchanged.
    """
    async with get_sessionmaker()() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


async def check_database_connection() -> bool:
    """Return True when a trivial query succeeds."""
    if _engine is None:
        return False

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Database health check failed: %s", str(e))
        return False
    return True


def _require(value):
    if value is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return value
