# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""One-time passcode model."""

from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tutorix.infrastructure.database.models.base import Base, IntegerPKMixin, TimestampMixin
from tutorix.infrastructure.database.models.enums import OtpPurpose


class Otp(Base, IntegerPKMixin, TimestampMixin):
    """Current passcode for a (user, purpose) pair.

    There is at most one row per pair; generating a new code overwrites
    the hash and expiry in place, which invalidates the previous code.

    Attributes:
        user_id: Owning user.
        purpose: What the code proves.
        otp_hash: SHA-256 hex digest of the code.
        expires_at: End of validity.
    """

    __tablename__ = "otps"
    __table_args__ = (UniqueConstraint("user_id", "purpose", name="uq_otps_user_purpose"),)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    purpose: Mapped[OtpPurpose] = mapped_column(Enum(OtpPurpose, name="otp_purpose"), nullable=False)
    otp_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<Otp(user_id={self.user_id}, purpose={self.purpose})>"
