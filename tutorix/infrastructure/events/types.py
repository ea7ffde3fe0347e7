# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Centralized event type definitions for Tutorix.

Using constants instead of string literals keeps a single source of truth
for event names, which pattern subscribers rely on.
"""


class EventTypes:
    """All event types published by the auth core, organized by domain."""

    class Auth:
        """Authentication and account events."""

        USER_REGISTERED = "auth.user.registered"
        USER_LOGGED_IN = "auth.user.logged_in"
        USER_LOGGED_OUT = "auth.user.logged_out"
        PASSWORD_RESET = "auth.password.reset"
        OTP_GENERATED = "auth.otp.generated"
        OTP_VERIFIED = "auth.otp.verified"


class EventPatterns:
    """Wildcard patterns for subscribing to event families."""

    ALL_AUTH = "auth.*"
    ALL_USER = "auth.user.*"
    ALL_OTP = "auth.otp.*"
