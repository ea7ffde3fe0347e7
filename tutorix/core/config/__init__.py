# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for Tutorix.

Pydantic-based settings loaded from environment variables.

Example:
    >>> from tutorix.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from tutorix.core.config.settings import (
    AuthSettings,
    DatabaseSettings,
    JWTSettings,
    OtpSettings,
    PasswordSettings,
    SessionSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "DatabaseSettings",
    "JWTSettings",
    "SessionSettings",
    "OtpSettings",
    "PasswordSettings",
    "AuthSettings",
]
