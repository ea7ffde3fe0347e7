# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Credential persistence.

CredentialStore is the persistence surface the auth services depend on:
named finders over users, refresh sessions, passcodes and password reset
tokens, plus create, save and conditional-update operations. Every
mutation is atomic at the single-row (or single-statement) level; no
operation needs a multi-row transaction.

SQLAlchemyCredentialStore implements it on top of an AsyncSession.

Example:
    >>> async with get_session() as session:
    ...     store = SQLAlchemyCredentialStore(session)
    ...     user = await store.find_user_by_email("admin@tutorix.com")
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from tutorix.infrastructure.database.models import (
    Otp,
    OtpPurpose,
    PasswordResetToken,
    RefreshSession,
    User,
)

logger = logging.getLogger(__name__)


@dataclass
class SessionCounts:
    """Raw counts over live (non-revoked, non-expired) sessions.

    Attributes:
        total: Number of live sessions.
        active: Live sessions seen at or after the activity threshold.
        by_platform: Live session count per raw platform tag.
    """

    total: int = 0
    active: int = 0
    by_platform: dict[str | None, int] = field(default_factory=dict)


class CredentialStore(ABC):
    """Persistence operations used by the auth services."""

    # Users

    @abstractmethod
    async def get_user(
        self,
        user_id: int,
        *,
        live_only: bool = False,
        include_password: bool = False,
    ) -> User | None:
        """Get a user by id.

        Args:
            user_id: User identifier.
            live_only: Only return active, non-deleted users.
            include_password: Load the password hash column.
        """

    @abstractmethod
    async def find_user_by_email(
        self,
        email: str,
        *,
        include_password: bool = False,
    ) -> User | None:
        """Find a user by email."""

    @abstractmethod
    async def find_user_by_mobile(
        self,
        *mobiles: str,
        mobile_number: str | None = None,
        include_password: bool = False,
    ) -> User | None:
        """Find a user whose full mobile is one of ``mobiles``.

        When ``mobile_number`` is given, a match on the national number
        part also counts.
        """

    @abstractmethod
    async def add_user(self, user: User) -> User:
        """Persist a new user and assign its id."""

    @abstractmethod
    async def save_user(self, user: User) -> User:
        """Persist changes to an existing user."""

    # Refresh sessions

    @abstractmethod
    async def add_session(self, session: RefreshSession) -> RefreshSession:
        """Persist a new refresh session and assign its id."""

    @abstractmethod
    async def find_session_by_hash(
        self,
        token_hash: str,
        *,
        include_revoked: bool = False,
    ) -> RefreshSession | None:
        """Find a refresh session by secret hash."""

    @abstractmethod
    async def save_session(self, session: RefreshSession) -> RefreshSession:
        """Persist changes to an existing refresh session."""

    @abstractmethod
    async def revoke_sessions_by_hash(self, token_hash: str, revoked_at: datetime) -> int:
        """Revoke the session matching a secret hash.

        Returns:
            Number of rows updated.
        """

    @abstractmethod
    async def revoke_user_sessions(self, user_id: int, revoked_at: datetime) -> int:
        """Revoke every non-revoked session of a user.

        Returns:
            Number of rows updated.
        """

    @abstractmethod
    async def touch_session(
        self,
        session_id: int,
        at: datetime,
        stale_before: datetime,
    ) -> bool:
        """Set last_activity_at when the session is not revoked and its
        last activity is null or older than ``stale_before``.

        Returns:
            True if the row was updated.
        """

    @abstractmethod
    async def count_sessions(self, now: datetime, active_since: datetime) -> SessionCounts:
        """Count live sessions.

        A session is live when not revoked and ``expires_at > now``; it is
        active when ``coalesce(last_activity_at, created_at) >= active_since``.
        """

    # One-time passcodes

    @abstractmethod
    async def find_otp(self, user_id: int, purpose: OtpPurpose) -> Otp | None:
        """Get the passcode row for a (user, purpose) pair."""

    @abstractmethod
    async def save_otp(self, otp: Otp) -> Otp:
        """Insert or update a passcode row."""

    # Password reset tokens

    @abstractmethod
    async def add_reset_token(self, token: PasswordResetToken) -> PasswordResetToken:
        """Persist a new password reset token."""

    @abstractmethod
    async def find_reset_token_by_hash(self, token_hash: str) -> PasswordResetToken | None:
        """Find a password reset token by hash."""

    @abstractmethod
    async def save_reset_token(self, token: PasswordResetToken) -> PasswordResetToken:
        """Persist changes to a password reset token."""

    @abstractmethod
    async def invalidate_reset_tokens(self, user_id: int, used_at: datetime) -> int:
        """Mark all unused reset tokens of a user as used.

        Returns:
            Number of rows updated.
        """


class SQLAlchemyCredentialStore(CredentialStore):
    """CredentialStore backed by an async SQLAlchemy session.

    Each mutation commits immediately.

    Attributes:
        _db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the store.

        Args:
            db: Async database session.
        """
        self._db = db

    # =========================================================================
    # Users
    # =========================================================================

    async def get_user(
        self,
        user_id: int,
        *,
        live_only: bool = False,
        include_password: bool = False,
    ) -> User | None:
        stmt = select(User).where(User.id == user_id)
        if live_only:
            stmt = stmt.where(
                User.is_active == True,  # noqa: E712
                User.deleted_at == None,  # noqa: E711
            )
        if include_password:
            stmt = stmt.options(undefer(User.password_hash))
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_user_by_email(
        self,
        email: str,
        *,
        include_password: bool = False,
    ) -> User | None:
        stmt = select(User).where(User.email == email)
        if include_password:
            stmt = stmt.options(undefer(User.password_hash))
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_user_by_mobile(
        self,
        *mobiles: str,
        mobile_number: str | None = None,
        include_password: bool = False,
    ) -> User | None:
        conditions = [User.mobile.in_(mobiles)] if mobiles else []
        if mobile_number:
            conditions.append(User.mobile_number == mobile_number)
        if not conditions:
            return None

        stmt = select(User).where(or_(*conditions)).order_by(User.id).limit(1)
        if include_password:
            stmt = stmt.options(undefer(User.password_hash))
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def add_user(self, user: User) -> User:
        self._db.add(user)
        await self._db.flush()
        await self._db.commit()
        return user

    async def save_user(self, user: User) -> User:
        self._db.add(user)
        await self._db.commit()
        return user

    # =========================================================================
    # Refresh sessions
    # =========================================================================

    async def add_session(self, session: RefreshSession) -> RefreshSession:
        self._db.add(session)
        await self._db.flush()
        await self._db.commit()
        return session

    async def find_session_by_hash(
        self,
        token_hash: str,
        *,
        include_revoked: bool = False,
    ) -> RefreshSession | None:
        stmt = select(RefreshSession).where(RefreshSession.token_hash == token_hash)
        if not include_revoked:
            stmt = stmt.where(RefreshSession.is_revoked == False)  # noqa: E712
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def save_session(self, session: RefreshSession) -> RefreshSession:
        self._db.add(session)
        await self._db.commit()
        return session

    async def revoke_sessions_by_hash(self, token_hash: str, revoked_at: datetime) -> int:
        stmt = (
            update(RefreshSession)
            .where(RefreshSession.token_hash == token_hash)
            .values(is_revoked=True, revoked_at=revoked_at)
        )
        result = await self._db.execute(stmt)
        await self._db.commit()
        return result.rowcount or 0

    async def revoke_user_sessions(self, user_id: int, revoked_at: datetime) -> int:
        stmt = (
            update(RefreshSession)
            .where(
                RefreshSession.user_id == user_id,
                RefreshSession.is_revoked == False,  # noqa: E712
            )
            .values(is_revoked=True, revoked_at=revoked_at)
        )
        result = await self._db.execute(stmt)
        await self._db.commit()
        return result.rowcount or 0

    async def touch_session(
        self,
        session_id: int,
        at: datetime,
        stale_before: datetime,
    ) -> bool:
        stmt = (
            update(RefreshSession)
            .where(
                RefreshSession.id == session_id,
                RefreshSession.is_revoked == False,  # noqa: E712
                or_(
                    RefreshSession.last_activity_at == None,  # noqa: E711
                    RefreshSession.last_activity_at < stale_before,
                ),
            )
            .values(last_activity_at=at)
            .execution_options(synchronize_session=False)
        )
        result = await self._db.execute(stmt)
        await self._db.commit()
        return bool(result.rowcount)

    async def count_sessions(self, now: datetime, active_since: datetime) -> SessionCounts:
        live = (
            RefreshSession.is_revoked == False,  # noqa: E712
            RefreshSession.expires_at > now,
        )
        last_seen = func.coalesce(RefreshSession.last_activity_at, RefreshSession.created_at)

        total_result = await self._db.execute(
            select(func.count()).select_from(RefreshSession).where(*live)
        )
        active_result = await self._db.execute(
            select(func.count())
            .select_from(RefreshSession)
            .where(*live, last_seen >= active_since)
        )
        platform_result = await self._db.execute(
            select(RefreshSession.platform, func.count())
            .where(*live)
            .group_by(RefreshSession.platform)
        )

        return SessionCounts(
            total=total_result.scalar_one(),
            active=active_result.scalar_one(),
            by_platform={platform: count for platform, count in platform_result.all()},
        )

    # =========================================================================
    # One-time passcodes
    # =========================================================================

    async def find_otp(self, user_id: int, purpose: OtpPurpose) -> Otp | None:
        stmt = select(Otp).where(Otp.user_id == user_id, Otp.purpose == purpose)
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def save_otp(self, otp: Otp) -> Otp:
        self._db.add(otp)
        await self._db.flush()
        await self._db.commit()
        return otp

    # =========================================================================
    # Password reset tokens
    # =========================================================================

    async def add_reset_token(self, token: PasswordResetToken) -> PasswordResetToken:
        self._db.add(token)
        await self._db.flush()
        await self._db.commit()
        return token

    async def find_reset_token_by_hash(self, token_hash: str) -> PasswordResetToken | None:
        stmt = select(PasswordResetToken).where(PasswordResetToken.token_hash == token_hash)
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def save_reset_token(self, token: PasswordResetToken) -> PasswordResetToken:
        self._db.add(token)
        await self._db.commit()
        return token

    async def invalidate_reset_tokens(self, user_id: int, used_at: datetime) -> int:
        stmt = (
            update(PasswordResetToken)
            .where(
                PasswordResetToken.user_id == user_id,
                PasswordResetToken.is_used == False,  # noqa: E712
            )
            .values(is_used=True, used_at=used_at)
        )
        result = await self._db.execute(stmt)
        await self._db.commit()
        if result.rowcount:
            logger.debug("Invalidated %d outstanding reset tokens for user %s", result.rowcount, user_id)
        return result.rowcount or 0
