# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Refresh session model.

One row per issued refresh secret. A user may hold many concurrent
sessions (one per device). Rows are revoked, never hard-deleted.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tutorix.infrastructure.database.models.base import Base, IntegerPKMixin, TimestampMixin
from tutorix.utils.datetime import ensure_utc, utc_now


class RefreshSession(Base, IntegerPKMixin, TimestampMixin):
    """Server-side record backing one refresh secret.

    Attributes:
        token_hash: SHA-256 hex digest of the raw refresh secret.
        user_id: Owning user.
        expires_at: End of validity.
        is_revoked: Explicitly revoked.
        revoked_at: Revocation timestamp.
        platform: Platform tag (web, ios, android).
        last_activity_at: Last heartbeat or authenticated call.
    """

    __tablename__ = "refresh_sessions"

    token_hash: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    platform: Mapped[str | None] = mapped_column(String(20))
    last_activity_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def is_expired(self, at: datetime | None = None) -> bool:
        """Check whether the session is past its expiry."""
        reference = ensure_utc(at) if at is not None else utc_now()
        return reference > ensure_utc(self.expires_at)  # type: ignore[operator]

    def is_active(self, at: datetime | None = None) -> bool:
        """Check whether the session is neither revoked nor expired."""
        return not self.is_revoked and not self.is_expired(at)

    def revoke(self, at: datetime | None = None) -> None:
        """Mark the session as revoked."""
        self.is_revoked = True
        self.revoked_at = at or utc_now()

    @property
    def last_seen_at(self) -> datetime:
        """Last activity, falling back to creation time."""
        return ensure_utc(self.last_activity_at or self.created_at)  # type: ignore[return-value]

    def __repr__(self) -> str:
        return (
            f"<RefreshSession(id={self.id}, user_id={self.user_id}, "
            f"platform={self.platform!r}, revoked={self.is_revoked})>"
        )
