# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enumerations shared by the auth models."""

from enum import Enum


class UserRole(str, Enum):
    """User roles in the system.

    Tutors and students sign in with their mobile number, admins with
    their email address. UNKNOWN marks a staged signup that has not
    declared its intent yet.
    """

    TUTOR = "TUTOR"
    STUDENT = "STUDENT"
    ADMIN = "ADMIN"
    UNKNOWN = "UNKNOWN"

    @property
    def uses_email_login(self) -> bool:
        """Check whether the role signs in with email."""
        return self is UserRole.ADMIN


class OtpPurpose(str, Enum):
    """Tasks for which one-time passcodes are issued."""

    MOBILE_VERIFICATION = "MOBILE_VERIFICATION"
    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"
    WHATSAPP_VERIFICATION = "WHATSAPP_VERIFICATION"
    PASSWORD_RESET = "PASSWORD_RESET"
    OTHER = "OTHER"


class SessionPlatform(str, Enum):
    """Platform from which a session was opened."""

    WEB = "web"
    IOS = "ios"
    ANDROID = "android"

    @classmethod
    def coerce(cls, value: "str | SessionPlatform | None") -> "SessionPlatform":
        """Map a raw platform tag onto a known platform.

        Missing and unrecognized tags are treated as web.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls((value or cls.WEB.value).strip().lower())
        except ValueError:
            return cls.WEB
