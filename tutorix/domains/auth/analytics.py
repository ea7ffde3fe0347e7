# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Best-effort analytics for auth events.

AuthAnalytics publishes auth events on the event bus. Tracking never
fails the calling flow: any error is logged and dropped, never retried.
"""

from typing import Any

from tutorix.infrastructure.events import EventBus, EventTypes
from tutorix.infrastructure.database.models import OtpPurpose, User
from tutorix.utils.logging import get_logger

logger = get_logger(__name__)


class AuthAnalytics:
    """Publishes auth analytics events.

    Attributes:
        _bus: Event bus the events are published on.
    """

    def __init__(self, bus: EventBus | None) -> None:
        self._bus = bus

    async def _track(self, event_type: str, payload: dict[str, Any]) -> None:
        if self._bus is None:
            return
        try:
            await self._bus.publish(event_type, payload)
        except Exception as e:
            logger.warning("analytics_event_failed", event_type=event_type, error=str(e))

    async def track_registration(self, user: User, method: str) -> None:
        await self._track(
            EventTypes.Auth.USER_REGISTERED,
            {"user_id": user.id, "user_role": user.role.value, "method": method},
        )

    async def track_login(self, user: User, method: str, platform: str | None = None) -> None:
        await self._track(
            EventTypes.Auth.USER_LOGGED_IN,
            {
                "user_id": user.id,
                "user_role": user.role.value,
                "method": method,
                "platform": platform,
            },
        )

    async def track_logout(self, user_id: int, all_sessions: bool = False) -> None:
        await self._track(
            EventTypes.Auth.USER_LOGGED_OUT,
            {"user_id": user_id, "all_sessions": all_sessions},
        )

    async def track_password_reset(self, user_id: int) -> None:
        await self._track(EventTypes.Auth.PASSWORD_RESET, {"user_id": user_id})

    async def track_otp_generated(self, user_id: int, purpose: OtpPurpose) -> None:
        await self._track(
            EventTypes.Auth.OTP_GENERATED,
            {"user_id": user_id, "purpose": purpose.value},
        )

    async def track_otp_verified(self, user_id: int, purpose: OtpPurpose) -> None:
        await self._track(
            EventTypes.Auth.OTP_VERIFIED,
            {"user_id": user_id, "purpose": purpose.value},
        )
