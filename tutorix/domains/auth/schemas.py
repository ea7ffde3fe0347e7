# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Schemas for the auth domain.

This module defines the Pydantic models exchanged with the auth services:
- AuthTokens / AuthResponse: Issued credentials
- SessionStats: Live session statistics
- GeneratedOtp / OtpVerification: Passcode results
- RegisterInput / RegisterUserInput / UserSignupInput / UpdateUserInput: User inputs
- LoginIdentifier: Explicit email or mobile login identifier
- PasswordResetDelivery: Payload handed to the reset link sender
"""

import re
from datetime import datetime
from typing import TYPE_CHECKING, Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tutorix.infrastructure.database.models import OtpPurpose, SessionPlatform, UserRole

if TYPE_CHECKING:
    from tutorix.infrastructure.database.models import User

_NON_DIGITS = re.compile(r"\D")
_WHITESPACE = re.compile(r"\s")


# =============================================================================
# Credentials
# =============================================================================


class AuthTokens(BaseModel):
    """Access token and refresh secret pair.

    The refresh secret is only ever returned here; the database keeps its
    hash.
    """

    access_token: str
    refresh_token: str
    expires_in: int = Field(description="Access token lifetime in seconds")
    token_type: str = "Bearer"


class AuthResponse(NamedTuple):
    """Issued credentials together with the authenticated user."""

    tokens: AuthTokens
    user: "User"


class PlatformBreakdown(BaseModel):
    """Live session count per platform."""

    web: int = 0
    ios: int = 0
    android: int = 0


class SessionStats(BaseModel):
    """Statistics over live (non-revoked, non-expired) sessions.

    Attributes:
        total: Number of live sessions.
        active: Sessions with activity inside the inactivity window.
        inactive: Logged in but idle sessions (total - active).
        by_platform: Live sessions per platform.
    """

    total: int = 0
    active: int = 0
    inactive: int = 0
    by_platform: PlatformBreakdown = Field(default_factory=PlatformBreakdown)


# =============================================================================
# One-time passcodes
# =============================================================================


class GeneratedOtp(BaseModel):
    """A freshly generated passcode, also the delivery payload."""

    user_id: int
    purpose: OtpPurpose
    expires_at: datetime
    code: str


class OtpVerification(BaseModel):
    """Outcome of a successful passcode verification."""

    success: bool
    message: str


# =============================================================================
# User inputs
# =============================================================================


class RegisterInput(BaseModel):
    """Direct registration input.

    Admins need an email, every other role needs a mobile number.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    role: UserRole
    password: str
    email: str | None = None
    mobile: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    platform: SessionPlatform = SessionPlatform.WEB

    @field_validator("platform", mode="before")
    @classmethod
    def coerce_platform(cls, value: object) -> SessionPlatform:
        return SessionPlatform.coerce(value)  # type: ignore[arg-type]


class RegisterUserInput(BaseModel):
    """Staged signup input (mobile and email required, password optional)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    mobile_number: str
    email: str
    mobile_country_code: str | None = None
    password: str | None = None
    role: UserRole | None = None
    first_name: str | None = None
    last_name: str | None = None


class UserSignupInput(BaseModel):
    """Self-service signup input (email, mobile and password required)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str
    mobile_number: str
    password: str
    mobile_country_code: str | None = None
    role: UserRole = UserRole.UNKNOWN
    first_name: str | None = None
    last_name: str | None = None
    platform: SessionPlatform = SessionPlatform.WEB

    @field_validator("platform", mode="before")
    @classmethod
    def coerce_platform(cls, value: object) -> SessionPlatform:
        return SessionPlatform.coerce(value)  # type: ignore[arg-type]


class UpdateUserInput(BaseModel):
    """Profile maintenance input; unset fields are left untouched."""

    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: int
    email: str | None = None
    mobile_country_code: str | None = None
    mobile_number: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    role: UserRole | None = None
    is_signup_complete: bool | None = None


class LoginIdentifier(BaseModel):
    """Explicit login identifier.

    Example:
        >>> LoginIdentifier.email("admin@tutorix.com")
        >>> LoginIdentifier.mobile("+91 98765 43210").normalized
        '+919876543210'
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["email", "mobile"]
    value: str

    @classmethod
    def parse(cls, raw: str) -> "LoginIdentifier":
        """Classify a bare login string: email if it contains '@', else mobile."""
        kind: Literal["email", "mobile"] = "email" if "@" in raw else "mobile"
        return cls(kind=kind, value=raw)

    @classmethod
    def email(cls, value: str) -> "LoginIdentifier":
        return cls(kind="email", value=value)

    @classmethod
    def mobile(cls, value: str) -> "LoginIdentifier":
        return cls(kind="mobile", value=value)

    @property
    def normalized(self) -> str:
        """Lookup value.

        Emails are only trimmed. Mobiles lose their whitespace and get a
        leading '+' (keeping digits only) when it is missing.
        """
        if self.kind == "email":
            return self.value.strip()
        compact = _WHITESPACE.sub("", self.value)
        if compact.startswith("+"):
            return compact
        return "+" + _NON_DIGITS.sub("", compact)

    @property
    def compact(self) -> str:
        """Value without whitespace, as typed."""
        return _WHITESPACE.sub("", self.value)


class PasswordResetDelivery(BaseModel):
    """Payload handed to the password reset link sender."""

    user_id: int
    email: str
    token: str
    reset_link: str
    expires_at: datetime
    first_name: str | None = None
