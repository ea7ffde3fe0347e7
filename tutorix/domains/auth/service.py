# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication service.

This module provides the AuthService that orchestrates:
- Registration (direct, self-service and staged signup) and profile maintenance
- Login with an email or mobile identifier
- Token refresh, logout and logout from all devices
- Password recovery (forgot / reset / validate reset token)
- One-time passcode issuance and verification
- Bearer token authentication and activity heartbeats

Every public operation returns a Result: Ok with the value, or Err with
the ErrorKind of the failure. Auth flow errors never escape as
exceptions; infrastructure failures (DatabaseError) still propagate.

Example:
    >>> auth_service = build_auth_service(db_session)
    >>> result = await auth_service.login(LoginIdentifier.mobile("+911234567890"), "secret")
    >>> if result.ok:
    ...     tokens = result.value.tokens
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Awaitable, Callable

from tutorix.core.config.settings import Settings
from tutorix.domains.auth.analytics import AuthAnalytics
from tutorix.domains.auth.errors import (
    AuthenticationError,
    ConflictError,
    ExpiredError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from tutorix.domains.auth.jwt import JWTManager
from tutorix.domains.auth.otp import OtpService
from tutorix.domains.auth.password import PasswordHasher
from tutorix.domains.auth.results import as_result
from tutorix.domains.auth.schemas import (
    AuthResponse,
    GeneratedOtp,
    LoginIdentifier,
    OtpVerification,
    PasswordResetDelivery,
    RegisterInput,
    RegisterUserInput,
    SessionStats,
    UpdateUserInput,
    UserSignupInput,
)
from tutorix.domains.auth.sessions import SessionManager
from tutorix.infrastructure.database.models import (
    OtpPurpose,
    PasswordResetToken,
    SessionPlatform,
    User,
    UserRole,
)
from tutorix.infrastructure.database.store import CredentialStore
from tutorix.utils.datetime import utc_now

logger = logging.getLogger(__name__)

ResetLinkSender = Callable[[PasswordResetDelivery], Awaitable[None]]

RESET_TOKEN_BYTES = 32
PLACEHOLDER_PASSWORD_BYTES = 12


class AuthService:
    """Authentication and account lifecycle service.

    Attributes:
        _store: Credential persistence.
        _sessions: Refresh session manager.
        _otp: One-time passcode service.
        _hasher: Password hasher.
        _settings: Application settings.
        _analytics: Best-effort analytics publisher.
        _reset_delivery: Optional sender for password reset links.
    """

    def __init__(
        self,
        store: CredentialStore,
        sessions: SessionManager,
        otp_service: OtpService,
        hasher: PasswordHasher,
        settings: Settings,
        analytics: AuthAnalytics | None = None,
        reset_delivery: ResetLinkSender | None = None,
    ) -> None:
        self._store = store
        self._sessions = sessions
        self._otp = otp_service
        self._hasher = hasher
        self._settings = settings
        self._analytics = analytics or AuthAnalytics(None)
        self._reset_delivery = reset_delivery

    # =========================================================================
    # Registration and login
    # =========================================================================

    @as_result
    async def register(self, data: RegisterInput) -> AuthResponse:
        """Register a user and open a first session.

        Admins need an email; tutors, students and undeclared users need a
        mobile number. Any identifier provided must be unused.

        Raises:
            ValidationError: If the role-required identifier is missing.
            ConflictError: If the email or mobile is already registered.
        """
        email = data.email or None
        mobile = LoginIdentifier.mobile(data.mobile).normalized if data.mobile else None

        if data.role == UserRole.ADMIN and not email:
            raise ValidationError("Email is required for admin registration", {"field": "email"})
        if data.role != UserRole.ADMIN and not mobile:
            raise ValidationError(
                "Mobile number is required for tutor/student registration",
                {"field": "mobile"},
            )

        if email and await self._store.find_user_by_email(email) is not None:
            raise ConflictError("Email already registered", {"field": "email"})
        if mobile and await self._store.find_user_by_mobile(mobile) is not None:
            raise ConflictError("Mobile number already registered", {"field": "mobile"})

        user = User(
            email=email,
            mobile=mobile,
            password_hash=await self._hash_password(data.password),
            role=data.role,
            first_name=data.first_name,
            last_name=data.last_name,
            is_active=True,
            is_email_verified=False,
            is_mobile_verified=False,
            is_signup_complete=False,
        )
        user = await self._store.add_user(user)

        user.last_login_at = utc_now()
        await self._store.save_user(user)

        tokens = await self._sessions.issue(user, data.platform)
        logger.info("User registered: %s (%s)", user.id, user.role.value)

        method = "email" if data.role.uses_email_login else "mobile"
        await self._analytics.track_registration(user, method)
        return AuthResponse(tokens=tokens, user=user)

    @as_result
    async def login(
        self,
        identifier: LoginIdentifier | str,
        password: str,
        platform: str | SessionPlatform | None = None,
    ) -> AuthResponse:
        """Authenticate with an email or mobile identifier and a password.

        A bare string identifier is classified as email when it contains
        '@', mobile otherwise.

        Raises:
            AuthenticationError: On unknown user, wrong password or an
                inactive account.
            ValidationError: If signup completion is required and missing.
        """
        if isinstance(identifier, str):
            identifier = LoginIdentifier.parse(identifier)

        if identifier.kind == "email":
            user = await self._store.find_user_by_email(
                identifier.normalized,
                include_password=True,
            )
        else:
            user = await self._store.find_user_by_mobile(
                identifier.normalized,
                identifier.compact,
                include_password=True,
            )

        # Same message for unknown account and wrong password
        if user is None or user.is_deleted:
            raise AuthenticationError("Invalid login credentials")
        if not await self._hasher.averify(password, user.password_hash):
            raise AuthenticationError("Invalid login credentials")

        if not user.is_active:
            raise AuthenticationError("Account is inactive")

        if self._settings.auth.require_signup_complete and not user.is_signup_complete:
            raise ValidationError(
                "Please complete your signup before logging in",
                {
                    "user_id": user.id,
                    "is_mobile_verified": bool(user.is_mobile_verified),
                    "is_email_verified": bool(user.is_email_verified),
                },
            )

        if self._hasher.needs_rehash(user.password_hash):
            user.password_hash = await self._hasher.ahash(password)

        user.last_login_at = utc_now()
        await self._store.save_user(user)

        tokens = await self._sessions.issue(user, platform)
        logger.info("User logged in: %s via %s", user.id, identifier.kind)

        await self._analytics.track_login(user, identifier.kind, SessionPlatform.coerce(platform).value)
        return AuthResponse(tokens=tokens, user=user)

    # =========================================================================
    # Sessions
    # =========================================================================

    @as_result
    async def refresh(
        self,
        raw_secret: str,
        platform: str | SessionPlatform | None = None,
    ) -> AuthResponse:
        """Rotate a refresh secret into a new session.

        Raises:
            InvalidTokenError: If the secret is unknown or revoked.
            ExpiredError: If the session is past its expiry.
            AuthenticationError: If the user disappeared meanwhile.
        """
        tokens = await self._sessions.rotate(raw_secret, platform)
        claims = self._sessions.verify_access_token(tokens.access_token)

        user = await self._store.get_user(claims.sub)
        if user is None:
            raise AuthenticationError("User not found")

        logger.info("Tokens refreshed for user: %s", user.id)
        return AuthResponse(tokens=tokens, user=user)

    @as_result
    async def logout(self, raw_secret: str) -> bool:
        """Revoke the session behind a refresh secret.

        Returns:
            True if a session was revoked.
        """
        try:
            owner_id = await self._sessions.find_session_owner(raw_secret)
        except Exception as e:
            logger.warning("Could not resolve session owner on logout: %s", str(e))
            owner_id = None

        revoked = await self._sessions.revoke(raw_secret)

        if owner_id is not None:
            await self._analytics.track_logout(owner_id)
        return revoked

    @as_result
    async def logout_all(self, user_id: int) -> int:
        """Revoke every session of a user.

        Returns:
            Number of sessions revoked.
        """
        revoked = await self._sessions.revoke_all(user_id)
        await self._analytics.track_logout(user_id, all_sessions=True)
        return revoked

    @as_result
    async def authenticate(self, access_token: str) -> User:
        """Resolve the user behind a bearer access token.

        Also records a throttled activity heartbeat for the token session.

        Raises:
            InvalidTokenError: If the token is invalid or expired.
            AuthenticationError: If the user is missing, inactive or deleted.
        """
        claims = self._sessions.verify_access_token(access_token)

        user = await self._store.get_user(claims.sub, live_only=True)
        if user is None:
            raise AuthenticationError("User not found or inactive")

        if claims.sid is not None:
            await self._sessions.record_activity(claims.sid)
        return user

    @as_result
    async def heartbeat(self, access_token: str) -> bool:
        """Record activity for the session of an access token.

        Returns:
            True if last activity was written, False when throttled or the
            token carries no session.
        """
        claims = self._sessions.verify_access_token(access_token)
        if claims.sid is None:
            return False
        return await self._sessions.record_activity(claims.sid)

    @as_result
    async def session_stats(self) -> SessionStats:
        """Statistics over live sessions."""
        return await self._sessions.session_stats()

    # =========================================================================
    # Password recovery
    # =========================================================================

    @as_result
    async def forgot_password(self, email: str) -> bool:
        """Start a password reset.

        Always succeeds, whether or not the email belongs to an account.
        For an active account, outstanding reset tokens are invalidated and
        a new link is handed to the reset link sender.
        """
        user = await self._store.find_user_by_email(email.strip()) if email else None
        if user is None or not user.is_active or user.is_deleted:
            return True

        now = utc_now()
        await self._store.invalidate_reset_tokens(user.id, now)

        token = secrets.token_hex(RESET_TOKEN_BYTES)
        expires_at = now + timedelta(minutes=self._settings.password.reset_token_expire_minutes)
        await self._store.add_reset_token(
            PasswordResetToken(
                user_id=user.id,
                token_hash=JWTManager.hash_token(token),
                expires_at=expires_at,
                is_used=False,
            )
        )
        logger.info("Password reset requested for user %s", user.id)

        await self._deliver_reset_link(user, token, expires_at)
        return True

    @as_result
    async def reset_password(self, token: str, new_password: str) -> bool:
        """Set a new password using a reset token.

        Raises:
            InvalidTokenError: If the token is unknown or already used.
            ExpiredError: If the token is past its expiry.
            NotFoundError: If the owner is missing or inactive.
            ValidationError: If the new password is empty.
        """
        reset_token = (
            await self._store.find_reset_token_by_hash(JWTManager.hash_token(token))
            if token
            else None
        )
        if reset_token is None:
            raise InvalidTokenError("Invalid or expired reset token")
        if reset_token.is_consumed:
            raise InvalidTokenError("Reset token has already been used")

        now = utc_now()
        if not reset_token.is_valid(now):
            raise ExpiredError("Reset token has expired")

        user = await self._store.get_user(reset_token.user_id, live_only=True, include_password=True)
        if user is None:
            raise NotFoundError("User not found or inactive")

        user.password_hash = await self._hash_password(new_password)
        await self._store.save_user(user)

        reset_token.mark_used(now)
        await self._store.save_reset_token(reset_token)

        logger.info("Password reset completed for user %s", user.id)
        await self._analytics.track_password_reset(user.id)
        return True

    @as_result
    async def validate_reset_token(self, token: str) -> bool:
        """Check whether a reset token exists, is unused and unexpired."""
        if not token:
            return False
        reset_token = await self._store.find_reset_token_by_hash(JWTManager.hash_token(token))
        return reset_token is not None and reset_token.is_valid(utc_now())

    # =========================================================================
    # One-time passcodes
    # =========================================================================

    @as_result
    async def generate_otp(self, user_id: int, purpose: OtpPurpose) -> GeneratedOtp:
        """Generate a passcode for a user and purpose."""
        generated = await self._otp.generate(user_id, purpose)
        await self._analytics.track_otp_generated(user_id, purpose)
        return generated

    @as_result
    async def verify_otp(
        self,
        user_id: int,
        purpose: OtpPurpose,
        client_timestamp: datetime | str | int | float | None,
        code: str,
    ) -> OtpVerification:
        """Verify a passcode against the caller-supplied timestamp."""
        verification = await self._otp.verify(user_id, purpose, client_timestamp, code)
        await self._analytics.track_otp_verified(user_id, purpose)
        return verification

    # =========================================================================
    # Staged signup and profile maintenance
    # =========================================================================

    @as_result
    async def register_user(self, data: RegisterUserInput) -> User:
        """Create a user for staged signup, or resume an incomplete one.

        An existing user with the same mobile or email is updated in place
        while its signup is incomplete. New users without a password get a
        random placeholder, replaced later through set_password.

        Raises:
            ValidationError: If the email or mobile number is missing.
            ConflictError: If the matching user already completed signup.
        """
        if not data.email:
            raise ValidationError("Email is required for user registration", {"field": "email"})
        if not data.mobile_number:
            raise ValidationError(
                "Mobile number is required for user registration",
                {"field": "mobile_number"},
            )

        country_code = data.mobile_country_code or self._settings.auth.default_country_code
        full_mobile = f"{country_code}{data.mobile_number}"

        existing = await self._store.find_user_by_mobile(full_mobile, mobile_number=data.mobile_number)
        if existing is None:
            existing = await self._store.find_user_by_email(data.email)

        if existing is not None:
            if existing.is_signup_complete:
                raise ConflictError("User already registered and signup completed")

            if data.first_name is not None:
                existing.first_name = data.first_name
            if data.last_name is not None:
                existing.last_name = data.last_name
            if data.role is not None and existing.role == UserRole.UNKNOWN:
                existing.role = data.role
            if data.password:
                existing.password_hash = await self._hash_password(data.password)

            if not existing.email:
                existing.email = data.email
            if not existing.mobile:
                existing.mobile = full_mobile
            if not existing.mobile_country_code:
                existing.mobile_country_code = country_code
            if not existing.mobile_number:
                existing.mobile_number = data.mobile_number

            logger.info("Resuming signup for user %s", existing.id)
            return await self._store.save_user(existing)

        password = data.password or secrets.token_hex(PLACEHOLDER_PASSWORD_BYTES)
        user = User(
            email=data.email,
            mobile=full_mobile,
            mobile_country_code=country_code,
            mobile_number=data.mobile_number,
            password_hash=await self._hash_password(password),
            role=data.role or UserRole.UNKNOWN,
            first_name=data.first_name,
            last_name=data.last_name,
            is_active=True,
            is_email_verified=False,
            is_mobile_verified=False,
            is_signup_complete=False,
        )
        user = await self._store.add_user(user)
        logger.info("Signup started for user %s (%s)", user.id, user.role.value)
        return user

    @as_result
    async def user_signup(self, data: UserSignupInput) -> AuthResponse:
        """Self-service signup with email, mobile and password in one step.

        The mobile number is taken as national digits plus a country code
        (the configured default when omitted). The new user starts with an
        unverified mobile and an incomplete signup, and gets a first session.

        Raises:
            ValidationError: If the email or mobile number is missing.
            ConflictError: If the email or mobile is already registered.
        """
        if not data.email:
            raise ValidationError("Email is required for user signup", {"field": "email"})
        if not data.mobile_number:
            raise ValidationError("Mobile number is required for user signup", {"field": "mobile_number"})

        country_code = data.mobile_country_code or self._settings.auth.default_country_code
        full_mobile = f"{country_code}{data.mobile_number}"

        if await self._store.find_user_by_email(data.email) is not None:
            raise ConflictError("Email already registered", {"field": "email"})
        if await self._store.find_user_by_mobile(full_mobile, mobile_number=data.mobile_number) is not None:
            raise ConflictError("Mobile number already registered", {"field": "mobile"})

        user = User(
            email=data.email,
            mobile=full_mobile,
            mobile_country_code=country_code,
            mobile_number=data.mobile_number,
            password_hash=await self._hash_password(data.password),
            role=data.role,
            first_name=data.first_name,
            last_name=data.last_name,
            is_active=True,
            is_email_verified=False,
            is_mobile_verified=False,
            is_signup_complete=False,
        )
        user = await self._store.add_user(user)

        tokens = await self._sessions.issue(user, data.platform)
        logger.info("User signed up: %s (%s)", user.id, user.role.value)

        await self._analytics.track_registration(user, "mobile")
        return AuthResponse(tokens=tokens, user=user)

    @as_result
    async def set_password(self, user_id: int, password: str) -> bool:
        """Set or replace the password of an active user.

        Raises:
            NotFoundError: If the user is missing, inactive or deleted.
            ValidationError: If the password is empty.
        """
        user = await self._store.get_user(user_id, live_only=True, include_password=True)
        if user is None:
            raise NotFoundError("User not found or inactive")

        user.password_hash = await self._hash_password(password)
        await self._store.save_user(user)
        return True

    @as_result
    async def update_user(self, data: UpdateUserInput) -> User:
        """Update email, mobile, names, role or signup flag of a user.

        Changing the mobile number clears its verification.

        Raises:
            NotFoundError: If the user is missing or deleted.
            ConflictError: If the new email or mobile belongs to someone else.
        """
        user = await self._store.get_user(data.user_id)
        if user is None or user.is_deleted:
            raise NotFoundError("User not found or inactive")

        if data.email and data.email != user.email:
            if await self._store.find_user_by_email(data.email) is not None:
                raise ConflictError("Email already registered", {"field": "email"})
            user.email = data.email

        if data.mobile_number:
            country_code = (
                data.mobile_country_code
                or user.mobile_country_code
                or self._settings.auth.default_country_code
            )
            full_mobile = f"{country_code}{data.mobile_number}"
            if (
                full_mobile != user.mobile
                or data.mobile_number != user.mobile_number
                or country_code != user.mobile_country_code
            ):
                other = await self._store.find_user_by_mobile(
                    full_mobile,
                    mobile_number=data.mobile_number,
                )
                if other is not None and other.id != user.id:
                    raise ConflictError("Mobile number already registered", {"field": "mobile"})
                user.mobile_country_code = country_code
                user.mobile_number = data.mobile_number
                user.mobile = full_mobile
                user.is_mobile_verified = False

        if data.first_name is not None:
            user.first_name = data.first_name
        if data.last_name is not None:
            user.last_name = data.last_name
        if data.role is not None:
            user.role = data.role
        if data.is_signup_complete is not None:
            user.is_signup_complete = data.is_signup_complete

        return await self._store.save_user(user)

    @as_result
    async def get_user(self, user_id: int) -> User:
        """Get a user by id.

        Raises:
            NotFoundError: If the user is missing or deleted.
        """
        user = await self._store.get_user(user_id)
        if user is None or user.is_deleted:
            raise NotFoundError("User not found")
        return user

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _hash_password(self, password: str) -> str:
        try:
            return await self._hasher.ahash(password)
        except ValueError as e:
            raise ValidationError(str(e), {"field": "password"}) from e

    async def _deliver_reset_link(self, user: User, token: str, expires_at: datetime) -> None:
        if self._reset_delivery is None:
            logger.warning("No reset link sender configured, reset link for user %s not sent", user.id)
            return

        frontend_url = self._settings.auth.frontend_url.rstrip("/")
        delivery = PasswordResetDelivery(
            user_id=user.id,
            email=user.email or "",
            token=token,
            reset_link=f"{frontend_url}/reset-password?token={token}",
            expires_at=expires_at,
            first_name=user.first_name,
        )
        try:
            await self._reset_delivery(delivery)
        except Exception as e:
            logger.error(
                "Reset link delivery failed for user %s: %s",
                user.id,
                str(e),
                exc_info=True,
            )
