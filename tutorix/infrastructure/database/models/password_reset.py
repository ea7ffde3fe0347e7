# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Password reset token model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tutorix.infrastructure.database.models.base import Base, IntegerPKMixin, TimestampMixin
from tutorix.utils.datetime import is_expired, utc_now


class PasswordResetToken(Base, IntegerPKMixin, TimestampMixin):
    """Single-use password reset token, stored hashed.

    Attributes:
        user_id: Owning user.
        token_hash: SHA-256 hex digest of the raw token.
        expires_at: End of validity.
        is_used: Consumed by a reset (or superseded by a newer request).
        used_at: Consumption timestamp.
    """

    __tablename__ = "password_reset_tokens"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    @property
    def is_consumed(self) -> bool:
        """Check whether the token was already used."""
        return bool(self.is_used or self.used_at)

    def is_valid(self, at: datetime | None = None) -> bool:
        """Check whether the token can still be redeemed."""
        return not self.is_consumed and not is_expired(self.expires_at, at)

    def mark_used(self, at: datetime | None = None) -> None:
        """Consume the token."""
        self.is_used = True
        self.used_at = at or utc_now()
