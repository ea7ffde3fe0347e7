# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for the Tutorix auth core.

Exports:
    Base: Declarative base.
    User: Identity record.
    RefreshSession: One row per issued refresh secret.
    Otp: Current one-time passcode per (user, purpose).
    PasswordResetToken: Single-use password reset token.
"""

from tutorix.infrastructure.database.models.base import (
    ActiveFlagMixin,
    Base,
    IntegerPKMixin,
    SoftDeleteMixin,
    TimestampMixin,
)
from tutorix.infrastructure.database.models.enums import OtpPurpose, SessionPlatform, UserRole
from tutorix.infrastructure.database.models.otp import Otp
from tutorix.infrastructure.database.models.password_reset import PasswordResetToken
from tutorix.infrastructure.database.models.session import RefreshSession
from tutorix.infrastructure.database.models.user import User

__all__ = [
    "Base",
    "IntegerPKMixin",
    "TimestampMixin",
    "SoftDeleteMixin",
    "ActiveFlagMixin",
    "UserRole",
    "OtpPurpose",
    "SessionPlatform",
    "User",
    "RefreshSession",
    "Otp",
    "PasswordResetToken",
]
