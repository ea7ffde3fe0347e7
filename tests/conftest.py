# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across the unit tests:
- Test settings (low bcrypt cost, fixed JWT secret)
- An in-memory CredentialStore
- Wired auth services and seeded users
"""

from collections import Counter
from datetime import datetime
from typing import Any

import pytest
from pydantic import SecretStr

from tutorix.core.config.settings import (
    AuthSettings,
    JWTSettings,
    OtpSettings,
    PasswordSettings,
    SessionSettings,
    Settings,
)
from tutorix.domains.auth import (
    AuthService,
    GeneratedOtp,
    JWTManager,
    OtpCoder,
    OtpService,
    PasswordHasher,
    PasswordResetDelivery,
    SessionManager,
    build_auth_service,
)
from tutorix.infrastructure.database.models import (
    Otp,
    OtpPurpose,
    PasswordResetToken,
    RefreshSession,
    User,
    UserRole,
)
from tutorix.infrastructure.database.store import CredentialStore, SessionCounts
from tutorix.infrastructure.events import EventBus, EventData
from tutorix.utils.datetime import ensure_utc, utc_now

TEST_PASSWORD = "correct-horse-battery"


# =============================================================================
# In-memory store
# =============================================================================


class InMemoryCredentialStore(CredentialStore):
    """CredentialStore keeping rows in dictionaries.

    Ids are assigned on add, created_at is stamped when missing.
    """

    def __init__(self) -> None:
        self.users: dict[int, User] = {}
        self.sessions: dict[int, RefreshSession] = {}
        self.otps: dict[tuple[int, OtpPurpose], Otp] = {}
        self.reset_tokens: dict[int, PasswordResetToken] = {}
        self._ids: Counter[str] = Counter()

    def _assign(self, kind: str, row: Any) -> None:
        if row.id is None:
            self._ids[kind] += 1
            row.id = self._ids[kind]
        if row.created_at is None:
            row.created_at = utc_now()

    def seed_user(self, **fields: Any) -> User:
        """Insert a user synchronously (for fixtures)."""
        fields.setdefault("is_active", True)
        fields.setdefault("is_email_verified", False)
        fields.setdefault("is_mobile_verified", False)
        fields.setdefault("is_signup_complete", False)
        user = User(**fields)
        self._assign("user", user)
        self.users[user.id] = user
        return user

    # Users

    async def get_user(
        self,
        user_id: int,
        *,
        live_only: bool = False,
        include_password: bool = False,
    ) -> User | None:
        user = self.users.get(user_id)
        if user is None:
            return None
        if live_only and (not user.is_active or user.is_deleted):
            return None
        return user

    async def find_user_by_email(self, email: str, *, include_password: bool = False) -> User | None:
        return next((u for u in self.users.values() if u.email == email), None)

    async def find_user_by_mobile(
        self,
        *mobiles: str,
        mobile_number: str | None = None,
        include_password: bool = False,
    ) -> User | None:
        for user in sorted(self.users.values(), key=lambda u: u.id):
            if user.mobile in mobiles:
                return user
            if mobile_number and user.mobile_number == mobile_number:
                return user
        return None

    async def add_user(self, user: User) -> User:
        self._assign("user", user)
        self.users[user.id] = user
        return user

    async def save_user(self, user: User) -> User:
        self.users[user.id] = user
        return user

    # Refresh sessions

    async def add_session(self, session: RefreshSession) -> RefreshSession:
        self._assign("session", session)
        self.sessions[session.id] = session
        return session

    async def find_session_by_hash(
        self,
        token_hash: str,
        *,
        include_revoked: bool = False,
    ) -> RefreshSession | None:
        for session in self.sessions.values():
            if session.token_hash == token_hash and (include_revoked or not session.is_revoked):
                return session
        return None

    async def save_session(self, session: RefreshSession) -> RefreshSession:
        self.sessions[session.id] = session
        return session

    async def revoke_sessions_by_hash(self, token_hash: str, revoked_at: datetime) -> int:
        matched = [s for s in self.sessions.values() if s.token_hash == token_hash]
        for session in matched:
            session.revoke(revoked_at)
        return len(matched)

    async def revoke_user_sessions(self, user_id: int, revoked_at: datetime) -> int:
        matched = [
            s for s in self.sessions.values() if s.user_id == user_id and not s.is_revoked
        ]
        for session in matched:
            session.revoke(revoked_at)
        return len(matched)

    async def touch_session(self, session_id: int, at: datetime, stale_before: datetime) -> bool:
        session = self.sessions.get(session_id)
        if session is None or session.is_revoked:
            return False
        if session.last_activity_at is not None and ensure_utc(session.last_activity_at) >= stale_before:
            return False
        session.last_activity_at = at
        return True

    async def count_sessions(self, now: datetime, active_since: datetime) -> SessionCounts:
        live = [s for s in self.sessions.values() if not s.is_revoked and not s.is_expired(now)]
        return SessionCounts(
            total=len(live),
            active=sum(1 for s in live if s.last_seen_at >= active_since),
            by_platform=dict(Counter(s.platform for s in live)),
        )

    # One-time passcodes

    async def find_otp(self, user_id: int, purpose: OtpPurpose) -> Otp | None:
        return self.otps.get((user_id, purpose))

    async def save_otp(self, otp: Otp) -> Otp:
        self._assign("otp", otp)
        self.otps[(otp.user_id, otp.purpose)] = otp
        return otp

    # Password reset tokens

    async def add_reset_token(self, token: PasswordResetToken) -> PasswordResetToken:
        self._assign("reset_token", token)
        self.reset_tokens[token.id] = token
        return token

    async def find_reset_token_by_hash(self, token_hash: str) -> PasswordResetToken | None:
        return next((t for t in self.reset_tokens.values() if t.token_hash == token_hash), None)

    async def save_reset_token(self, token: PasswordResetToken) -> PasswordResetToken:
        self.reset_tokens[token.id] = token
        return token

    async def invalidate_reset_tokens(self, user_id: int, used_at: datetime) -> int:
        matched = [t for t in self.reset_tokens.values() if t.user_id == user_id and not t.is_used]
        for token in matched:
            token.mark_used(used_at)
        return len(matched)


# =============================================================================
# Settings and primitives
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings with a fixed JWT secret and a cheap bcrypt cost."""
    return Settings(
        environment="development",
        jwt=JWTSettings(secret_key=SecretStr("test-secret-key-for-testing-only")),
        session=SessionSettings(),
        otp=OtpSettings(),
        password=PasswordSettings(bcrypt_rounds=4),
        auth=AuthSettings(frontend_url="https://app.tutorix.test/"),
    )


@pytest.fixture
def hasher() -> PasswordHasher:
    """Password hasher with the minimum bcrypt cost."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def jwt_manager(settings: Settings) -> JWTManager:
    """JWT manager with test settings."""
    return JWTManager(settings.jwt)


@pytest.fixture
def store() -> InMemoryCredentialStore:
    """Empty in-memory credential store."""
    return InMemoryCredentialStore()


@pytest.fixture
def event_bus() -> EventBus:
    """Fresh event bus."""
    return EventBus()


@pytest.fixture
def published_events(event_bus: EventBus) -> list[EventData]:
    """Events published on the test bus, in order."""
    events: list[EventData] = []

    async def record(event: EventData) -> None:
        events.append(event)

    event_bus.subscribe("auth.*", record)
    return events


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def session_manager(store: InMemoryCredentialStore, jwt_manager: JWTManager, settings: Settings) -> SessionManager:
    """Session manager over the in-memory store."""
    return SessionManager(store, jwt_manager, settings.session)


@pytest.fixture
def otp_service(store: InMemoryCredentialStore, settings: Settings) -> OtpService:
    """Passcode service over the in-memory store."""
    return OtpService(store, OtpCoder(settings.otp.length), settings.otp)


@pytest.fixture
def sent_otps() -> list[GeneratedOtp]:
    """Passcodes handed to the delivery callable."""
    return []


@pytest.fixture
def sent_reset_links() -> list[PasswordResetDelivery]:
    """Reset links handed to the delivery callable."""
    return []


@pytest.fixture
def auth_service(
    store: InMemoryCredentialStore,
    settings: Settings,
    event_bus: EventBus,
    sent_otps: list[GeneratedOtp],
    sent_reset_links: list[PasswordResetDelivery],
) -> AuthService:
    """AuthService wired through the composition root."""

    async def deliver_otp(generated: GeneratedOtp) -> None:
        sent_otps.append(generated)

    async def deliver_reset_link(delivery: PasswordResetDelivery) -> None:
        sent_reset_links.append(delivery)

    return build_auth_service(
        settings=settings,
        store=store,
        event_bus=event_bus,
        otp_delivery=deliver_otp,
        reset_delivery=deliver_reset_link,
    )


# =============================================================================
# Seeded users
# =============================================================================


@pytest.fixture
def tutor(store: InMemoryCredentialStore, hasher: PasswordHasher) -> User:
    """Active tutor signing in with a mobile number."""
    return store.seed_user(
        mobile="+911234567890",
        mobile_country_code="+91",
        mobile_number="1234567890",
        email="tutor@tutorix.test",
        password_hash=hasher.hash(TEST_PASSWORD),
        role=UserRole.TUTOR,
        first_name="Asha",
    )


@pytest.fixture
def admin(store: InMemoryCredentialStore, hasher: PasswordHasher) -> User:
    """Active admin signing in with an email."""
    return store.seed_user(
        email="admin@tutorix.test",
        password_hash=hasher.hash(TEST_PASSWORD),
        role=UserRole.ADMIN,
    )


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
