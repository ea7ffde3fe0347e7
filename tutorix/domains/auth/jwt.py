# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""JWT token management utilities.

This module provides access token creation and validation using python-jose,
plus the opaque refresh secrets that back refresh sessions.

Refresh secrets are not JWTs: they are 64 random bytes, hex encoded, and
only their SHA-256 digest is persisted.

Example:
    >>> from tutorix.core.config import get_settings
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> token = jwt_manager.create_access_token(user_id=42, session_id=7, role="TUTOR")
    >>> claims = jwt_manager.decode_token(token)
    >>> claims.sub
    42
"""

import hashlib
import logging
import secrets
from datetime import timedelta

from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from tutorix.core.config.settings import JWTSettings
from tutorix.domains.auth.errors import InvalidTokenError
from tutorix.utils.datetime import utc_now

logger = logging.getLogger(__name__)

REFRESH_SECRET_BYTES = 64


class AccessTokenClaims(BaseModel):
    """Decoded access token claims.

    Attributes:
        sub: User id.
        sid: Refresh session id the token was issued with.
        email: User email.
        mobile: User full mobile number.
        role: User role.
        login_id: Identifier the user signs in with.
        exp: Expiration timestamp.
        iat: Issued at timestamp.
        jti: JWT ID.
    """

    model_config = ConfigDict(populate_by_name=True)

    sub: int
    sid: int | None = None
    email: str | None = None
    mobile: str | None = None
    role: str | None = None
    login_id: str | None = Field(default=None, alias="loginId")
    exp: int
    iat: int
    jti: str


class JWTManager:
    """Access token creation and validation manager.

    Attributes:
        _settings: JWT configuration settings.
    """

    def __init__(self, settings: JWTSettings) -> None:
        """Initialize the JWT manager.

        Args:
            settings: JWT configuration settings.
        """
        self._settings = settings

    @property
    def access_token_expires_in(self) -> int:
        """Access token lifetime in seconds."""
        return self._settings.access_token_expire_minutes * 60

    @property
    def refresh_token_ttl(self) -> timedelta:
        """Refresh secret lifetime."""
        return timedelta(days=self._settings.refresh_token_expire_days)

    def create_access_token(
        self,
        user_id: int,
        session_id: int | None = None,
        role: str | None = None,
        email: str | None = None,
        mobile: str | None = None,
        login_id: str | None = None,
    ) -> str:
        """Create a signed access token.

        Args:
            user_id: User identifier.
            session_id: Refresh session the token belongs to.
            role: User role.
            email: User email.
            mobile: User full mobile number.
            login_id: Identifier the user signs in with.

        Returns:
            JWT access token string.
        """
        now = utc_now()
        exp = now + timedelta(minutes=self._settings.access_token_expire_minutes)

        payload = {
            # jose requires a string subject
            "sub": str(user_id),
            "sid": session_id,
            "email": email,
            "mobile": mobile,
            "role": role,
            "loginId": login_id,
            "exp": int(exp.timestamp()),
            "iat": int(now.timestamp()),
            "jti": secrets.token_urlsafe(16),
        }

        return jwt.encode(
            payload,
            self._settings.secret_key.get_secret_value(),
            algorithm=self._settings.algorithm,
        )

    def decode_token(self, token: str) -> AccessTokenClaims:
        """Decode and validate an access token.

        Args:
            token: JWT token string.

        Returns:
            AccessTokenClaims with decoded claims.

        Raises:
            InvalidTokenError: If the token is malformed, expired or badly signed.
        """
        if not token:
            raise InvalidTokenError("Invalid or expired token")

        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key.get_secret_value(),
                algorithms=[self._settings.algorithm],
            )
            return AccessTokenClaims.model_validate(payload)
        except (JWTError, PydanticValidationError) as e:
            logger.debug("Token decode failed: %s", type(e).__name__)
            raise InvalidTokenError("Invalid or expired token") from e

    def verify_token(self, token: str) -> bool:
        """Check whether an access token is valid."""
        try:
            self.decode_token(token)
            return True
        except InvalidTokenError:
            return False

    @staticmethod
    def generate_refresh_secret() -> str:
        """Generate a raw refresh secret (128 hex characters)."""
        return secrets.token_hex(REFRESH_SECRET_BYTES)

    @staticmethod
    def hash_token(token: str) -> str:
        """Create a SHA-256 hash of a token.

        Used for storing refresh secrets and reset tokens in the database
        instead of the raw values.

        Args:
            token: Token string to hash.

        Returns:
            SHA-256 hash of the token as hex string.
        """
        return hashlib.sha256(token.encode()).hexdigest()
