# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User identity model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, String
from sqlalchemy.orm import Mapped, deferred, mapped_column

from tutorix.infrastructure.database.models.base import (
    ActiveFlagMixin,
    Base,
    IntegerPKMixin,
    SoftDeleteMixin,
    TimestampMixin,
)
from tutorix.infrastructure.database.models.enums import UserRole


class User(Base, IntegerPKMixin, TimestampMixin, SoftDeleteMixin, ActiveFlagMixin):
    """A platform user (tutor, student or admin).

    The password hash is a deferred column: ordinary reads do not load it,
    callers that need it ask for it explicitly.

    Attributes:
        email: Unique email, required for admins.
        mobile: Unique full mobile number (country code + national number),
            required for tutors and students.
        mobile_country_code: Country code part of the mobile number.
        mobile_number: National number part of the mobile number.
        password_hash: bcrypt hash of the password.
        role: User role.
        is_mobile_verified: Mobile ownership proven by OTP.
        is_email_verified: Email ownership proven by OTP.
        is_signup_complete: Both verifications done.
        last_login_at: Timestamp of the last successful login.
    """

    __tablename__ = "users"

    email: Mapped[str | None] = mapped_column(String(255), unique=True, index=True)
    mobile: Mapped[str | None] = mapped_column(String(20), unique=True, index=True)
    mobile_country_code: Mapped[str | None] = mapped_column(String(5))
    mobile_number: Mapped[str | None] = mapped_column(String(15), index=True)
    password_hash: Mapped[str] = deferred(mapped_column(String(255), nullable=False))
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.STUDENT,
    )
    first_name: Mapped[str | None] = mapped_column(String(100))
    last_name: Mapped[str | None] = mapped_column(String(100))
    is_email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_mobile_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_signup_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    @property
    def login_id(self) -> str | None:
        """Identifier the user signs in with (email for admins, mobile otherwise)."""
        if self.role == UserRole.ADMIN:
            return self.email
        return self.mobile

    def mark_verified(self, *, mobile: bool = False, email: bool = False) -> None:
        """Set verification flags and derive signup completion.

        Signup is complete once both flags are true, whatever the role.
        """
        if mobile:
            self.is_mobile_verified = True
        if email:
            self.is_email_verified = True
        if self.is_mobile_verified and self.is_email_verified:
            self.is_signup_complete = True

    def __repr__(self) -> str:
        return f"<User(id={self.id}, role={self.role}, login_id={self.login_id!r})>"
