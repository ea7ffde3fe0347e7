# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Refresh session lifecycle.

The SessionManager issues access tokens together with opaque refresh
secrets, rotates and revokes them, records throttled activity heartbeats
and reports statistics over live sessions.

A session is live while it is neither revoked nor past ``expires_at``.
Rows are never deleted: revocation and expiry are terminal states.

Example:
    >>> manager = SessionManager(store, JWTManager(settings.jwt), settings.session)
    >>> tokens = await manager.issue(user, platform="ios")
    >>> claims = manager.verify_access_token(tokens.access_token)
    >>> claims.sub == user.id
    True
"""

import logging

from tutorix.core.config.settings import SessionSettings
from tutorix.domains.auth.errors import ExpiredError, InvalidTokenError, ValidationError
from tutorix.domains.auth.jwt import AccessTokenClaims, JWTManager
from tutorix.domains.auth.schemas import AuthTokens, PlatformBreakdown, SessionStats
from tutorix.infrastructure.database.models import RefreshSession, SessionPlatform, User, UserRole
from tutorix.infrastructure.database.store import CredentialStore
from tutorix.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class SessionManager:
    """Manages refresh sessions and the access tokens bound to them.

    Attributes:
        _store: Credential persistence.
        _jwt_manager: Access token signer.
        _settings: Session bookkeeping settings.
    """

    def __init__(
        self,
        store: CredentialStore,
        jwt_manager: JWTManager,
        settings: SessionSettings | None = None,
    ) -> None:
        """Initialize the session manager.

        Args:
            store: Credential persistence.
            jwt_manager: Access token signer.
            settings: Session bookkeeping settings.
        """
        self._store = store
        self._jwt_manager = jwt_manager
        self._settings = settings or SessionSettings()

    @property
    def jwt_manager(self) -> JWTManager:
        return self._jwt_manager

    async def issue(
        self,
        user: User,
        platform: str | SessionPlatform | None = None,
    ) -> AuthTokens:
        """Open a new refresh session for a user.

        Args:
            user: Authenticated user.
            platform: Platform tag, web when missing or unknown.

        Returns:
            AuthTokens carrying the raw refresh secret. It is never
            retrievable again.

        Raises:
            ValidationError: If the user lacks the identifier its role signs
                in with.
        """
        login_id = user.login_id
        if not login_id:
            if user.role == UserRole.ADMIN:
                raise ValidationError("Admin user must have an email address")
            raise ValidationError("Tutor/Student user must have a mobile number")

        now = utc_now()
        refresh_secret = self._jwt_manager.generate_refresh_secret()
        session = RefreshSession(
            token_hash=self._jwt_manager.hash_token(refresh_secret),
            user_id=user.id,
            expires_at=now + self._jwt_manager.refresh_token_ttl,
            is_revoked=False,
            platform=SessionPlatform.coerce(platform).value,
            last_activity_at=now,
        )
        session = await self._store.add_session(session)

        access_token = self._jwt_manager.create_access_token(
            user_id=user.id,
            session_id=session.id,
            role=user.role.value if user.role else None,
            email=user.email,
            mobile=user.mobile,
            login_id=login_id,
        )

        logger.info("Session %s issued for user %s (%s)", session.id, user.id, session.platform)
        return AuthTokens(
            access_token=access_token,
            refresh_token=refresh_secret,
            expires_in=self._jwt_manager.access_token_expires_in,
        )

    async def rotate(
        self,
        raw_secret: str,
        platform: str | SessionPlatform | None = None,
    ) -> AuthTokens:
        """Exchange a refresh secret for a brand new session.

        The new session inherits the platform of the presented one unless
        ``platform`` overrides it. The presented session stays valid unless
        ``revoke_on_rotate`` is enabled.

        Raises:
            InvalidTokenError: If no live session matches the secret or its
                owner no longer exists.
            ExpiredError: If the session is past its expiry.
        """
        if not raw_secret:
            raise InvalidTokenError("Invalid refresh token")

        token_hash = self._jwt_manager.hash_token(raw_secret)
        session = await self._store.find_session_by_hash(token_hash)
        if session is None:
            raise InvalidTokenError("Invalid refresh token")

        now = utc_now()
        if session.is_expired(now):
            raise ExpiredError("Refresh token has expired")

        user = await self._store.get_user(session.user_id)
        if user is None:
            raise InvalidTokenError("Invalid refresh token")

        if self._settings.revoke_on_rotate:
            session.revoke(now)
            await self._store.save_session(session)

        return await self.issue(user, platform if platform is not None else session.platform)

    async def revoke(self, raw_secret: str) -> bool:
        """Revoke the session behind a refresh secret.

        Returns:
            True if a session was revoked, False if the secret is unknown.
        """
        if not raw_secret:
            return False
        updated = await self._store.revoke_sessions_by_hash(
            self._jwt_manager.hash_token(raw_secret),
            utc_now(),
        )
        return updated > 0

    async def revoke_all(self, user_id: int) -> int:
        """Revoke every non-revoked session of a user.

        Returns:
            Number of sessions revoked.
        """
        revoked = await self._store.revoke_user_sessions(user_id, utc_now())
        logger.info("Revoked %d sessions for user %s", revoked, user_id)
        return revoked

    def verify_access_token(self, token: str) -> AccessTokenClaims:
        """Validate an access token.

        Raises:
            InvalidTokenError: For malformed, expired or badly signed tokens.
        """
        return self._jwt_manager.decode_token(token)

    async def record_activity(self, session_id: int) -> bool:
        """Record a heartbeat for a session.

        At most one write per throttle window: the update only applies when
        the session is not revoked and its last activity is unset or older
        than the window.

        Returns:
            True if last_activity_at was written.
        """
        now = utc_now()
        return await self._store.touch_session(
            session_id,
            at=now,
            stale_before=now - self._settings.heartbeat_throttle,
        )

    async def session_stats(self) -> SessionStats:
        """Statistics over live sessions.

        A live session is active when its last activity (or creation, when
        it never sent a heartbeat) falls inside the inactivity window.
        Unknown or missing platform tags count as web.
        """
        now = utc_now()
        counts = await self._store.count_sessions(
            now=now,
            active_since=now - self._settings.inactivity_window,
        )

        breakdown = PlatformBreakdown()
        for tag, count in counts.by_platform.items():
            platform = SessionPlatform.coerce(tag).value
            setattr(breakdown, platform, getattr(breakdown, platform) + count)

        return SessionStats(
            total=counts.total,
            active=counts.active,
            inactive=counts.total - counts.active,
            by_platform=breakdown,
        )

    async def find_session_owner(self, raw_secret: str) -> int | None:
        """User id owning a refresh secret, revoked or not."""
        if not raw_secret:
            return None
        session = await self._store.find_session_by_hash(
            self._jwt_manager.hash_token(raw_secret),
            include_revoked=True,
        )
        return session.user_id if session is not None else None
