# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Composition root for the auth core.

Builds an AuthService and its collaborators from settings and a
per-request database session. Transport layers call build_auth_service()
once per request.

Example:
    >>> async with get_session() as db:
    ...     auth_service = build_auth_service(db)
    ...     result = await auth_service.refresh(refresh_token)
"""

from sqlalchemy.ext.asyncio import AsyncSession

from tutorix.core.config.settings import Settings, get_settings
from tutorix.domains.auth.analytics import AuthAnalytics
from tutorix.domains.auth.jwt import JWTManager
from tutorix.domains.auth.otp import OtpDelivery, OtpService
from tutorix.domains.auth.otp_codes import OtpCoder
from tutorix.domains.auth.password import PasswordHasher
from tutorix.domains.auth.service import AuthService, ResetLinkSender
from tutorix.domains.auth.sessions import SessionManager
from tutorix.infrastructure.database.store import CredentialStore, SQLAlchemyCredentialStore
from tutorix.infrastructure.events import EventBus, get_event_bus


def get_jwt_manager(settings: Settings | None = None) -> JWTManager:
    """Get a JWTManager for the configured signing settings."""
    settings = settings or get_settings()
    return JWTManager(settings.jwt)


def get_password_hasher(settings: Settings | None = None) -> PasswordHasher:
    """Get a PasswordHasher for the configured work factor."""
    settings = settings or get_settings()
    return PasswordHasher(rounds=settings.password.bcrypt_rounds)


def build_auth_service(
    db: AsyncSession | None = None,
    settings: Settings | None = None,
    *,
    store: CredentialStore | None = None,
    event_bus: EventBus | None = None,
    otp_delivery: OtpDelivery | None = None,
    reset_delivery: ResetLinkSender | None = None,
) -> AuthService:
    """Wire an AuthService.

    Args:
        db: Async database session, used when no store is given.
        settings: Application settings, cached settings when omitted.
        store: Credential store overriding the SQLAlchemy one.
        event_bus: Analytics bus, the process-wide bus when omitted.
        otp_delivery: Sender for generated passcodes.
        reset_delivery: Sender for password reset links.

    Returns:
        Ready to use AuthService.

    Raises:
        ValueError: If neither a database session nor a store is given.
    """
    settings = settings or get_settings()
    if store is None:
        if db is None:
            raise ValueError("Either a database session or a credential store is required")
        store = SQLAlchemyCredentialStore(db)

    jwt_manager = get_jwt_manager(settings)
    sessions = SessionManager(store, jwt_manager, settings.session)
    otp_service = OtpService(
        store,
        OtpCoder(settings.otp.length),
        settings.otp,
        delivery=otp_delivery,
    )

    return AuthService(
        store=store,
        sessions=sessions,
        otp_service=otp_service,
        hasher=get_password_hasher(settings),
        settings=settings,
        analytics=AuthAnalytics(event_bus or get_event_bus()),
        reset_delivery=reset_delivery,
    )
