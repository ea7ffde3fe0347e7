# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the Tutorix
auth core. Settings are loaded from environment variables with sensible
defaults, once at startup.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for the composition root.

Example:
    >>> from tutorix.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.jwt.access_token_expire_minutes
    1440
"""

from datetime import timedelta
from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-this-in-production"


class DatabaseSettings(BaseSettings):
    """Relational database configuration.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "tutorix"
    password: SecretStr = SecretStr("tutorix_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "tutorix"
    pool_size: int = 10
    max_overflow: int = 20

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class JWTSettings(BaseSettings):
    """JWT authentication configuration.

    Attributes:
        secret_key: Secret key for signing access tokens.
        algorithm: JWT signing algorithm.
        access_token_expire_minutes: Access token lifetime (24 hours).
        refresh_token_expire_days: Refresh secret lifetime (30 days).
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        extra="ignore",
    )

    secret_key: SecretStr = SecretStr(DEFAULT_JWT_SECRET)
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 24 * 60
    refresh_token_expire_days: int = 30


class SessionSettings(BaseSettings):
    """Refresh session bookkeeping configuration.

    Attributes:
        heartbeat_throttle_seconds: Minimum age of last_activity_at before
            a heartbeat writes it again.
        inactivity_minutes: Sessions without activity in this window count
            as inactive in session statistics.
        revoke_on_rotate: Revoke the presented session when rotating.
    """

    model_config = SettingsConfigDict(
        env_prefix="SESSION_",
        extra="ignore",
    )

    heartbeat_throttle_seconds: int = 60
    inactivity_minutes: int = 5
    revoke_on_rotate: bool = False

    @property
    def heartbeat_throttle(self) -> timedelta:
        """Heartbeat throttle window."""
        return timedelta(seconds=self.heartbeat_throttle_seconds)

    @property
    def inactivity_window(self) -> timedelta:
        """Inactivity window used by session statistics."""
        return timedelta(minutes=self.inactivity_minutes)


class OtpSettings(BaseSettings):
    """One-time passcode configuration.

    Attributes:
        expire_minutes: Validity of a generated code.
        length: Number of digits in a code.
    """

    model_config = SettingsConfigDict(
        env_prefix="OTP_",
        extra="ignore",
    )

    expire_minutes: int = 30
    length: int = Field(default=6, ge=4, le=10)


class PasswordSettings(BaseSettings):
    """Password hashing and recovery configuration.

    Attributes:
        bcrypt_rounds: bcrypt work factor.
        reset_token_expire_minutes: Validity of a password reset token.
    """

    model_config = SettingsConfigDict(
        env_prefix="PASSWORD_",
        extra="ignore",
    )

    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    reset_token_expire_minutes: int = 60


class AuthSettings(BaseSettings):
    """Auth flow configuration.

    Attributes:
        require_signup_complete: Reject logins of users whose signup is not
            complete.
        default_country_code: Country code used when a staged signup omits it.
        frontend_url: Base URL used to build password reset links.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        extra="ignore",
    )

    require_signup_complete: bool = False
    default_country_code: str = "+91"
    frontend_url: str = "http://localhost:4200"


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        database: Database settings.
        jwt: JWT settings.
        session: Refresh session settings.
        otp: One-time passcode settings.
        password: Password hashing and recovery settings.
        auth: Auth flow settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    otp: OtpSettings = Field(default_factory=OtpSettings)
    password: PasswordSettings = Field(default_factory=PasswordSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.jwt.secret_key.get_secret_value() == DEFAULT_JWT_SECRET:
                raise ValueError(
                    "JWT secret key must be changed from default in production. "
                    "Set JWT_SECRET_KEY environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing.
    """
    get_settings.cache_clear()
