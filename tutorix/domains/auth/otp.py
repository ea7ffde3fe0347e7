# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""One-time passcode issuance and verification.

There is at most one passcode per (user, purpose). Generating a new one
overwrites the stored hash and expiry, which invalidates the previous
code. Verification is idempotent: the same code keeps verifying until it
expires or is overwritten.

Example:
    >>> service = OtpService(store, OtpCoder())
    >>> generated = await service.generate(user.id, OtpPurpose.MOBILE_VERIFICATION)
    >>> await service.verify(user.id, OtpPurpose.MOBILE_VERIFICATION, utc_now(), generated.code)
    OtpVerification(success=True, message='OTP verified successfully')
"""

import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable

from tutorix.core.config.settings import OtpSettings
from tutorix.domains.auth.errors import (
    ExpiredError,
    InvalidCredentialError,
    NotFoundError,
    ValidationError,
)
from tutorix.domains.auth.otp_codes import OtpCoder
from tutorix.domains.auth.schemas import GeneratedOtp, OtpVerification
from tutorix.infrastructure.database.models import Otp, OtpPurpose
from tutorix.infrastructure.database.store import CredentialStore
from tutorix.utils.datetime import ensure_utc, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

OtpDelivery = Callable[[GeneratedOtp], Awaitable[None]]

# Verification flag set by a successful check, per purpose
_MOBILE_PURPOSES = frozenset({OtpPurpose.MOBILE_VERIFICATION, OtpPurpose.WHATSAPP_VERIFICATION})
_EMAIL_PURPOSES = frozenset({OtpPurpose.EMAIL_VERIFICATION})


class OtpService:
    """Issues and verifies one-time passcodes.

    Attributes:
        _store: Credential persistence.
        _coder: Code generator and hasher.
        _settings: Passcode settings.
        _delivery: Optional sender for generated codes (SMS, email, WhatsApp).
    """

    def __init__(
        self,
        store: CredentialStore,
        coder: OtpCoder | None = None,
        settings: OtpSettings | None = None,
        delivery: OtpDelivery | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or OtpSettings()
        self._coder = coder or OtpCoder(self._settings.length)
        self._delivery = delivery

    async def generate(self, user_id: int, purpose: OtpPurpose) -> GeneratedOtp:
        """Generate a passcode for a user and purpose.

        Args:
            user_id: Target user.
            purpose: What the code proves.

        Returns:
            GeneratedOtp carrying the plaintext code.

        Raises:
            NotFoundError: If the user does not exist, is inactive or deleted.
        """
        user = await self._store.get_user(user_id, live_only=True)
        if user is None:
            raise NotFoundError("User not found or inactive")

        code = self._coder.generate_code()
        expires_at = utc_now() + timedelta(minutes=self._settings.expire_minutes)

        otp = await self._store.find_otp(user_id, purpose)
        if otp is None:
            otp = Otp(user_id=user_id, purpose=purpose)
        otp.otp_hash = self._coder.hash(code)
        otp.expires_at = expires_at
        await self._store.save_otp(otp)

        generated = GeneratedOtp(user_id=user_id, purpose=purpose, expires_at=expires_at, code=code)
        logger.info("OTP generated for user %s (%s)", user_id, purpose.value)

        if self._delivery is not None:
            try:
                await self._delivery(generated)
            except Exception as e:
                logger.error(
                    "OTP delivery failed for user %s (%s): %s",
                    user_id,
                    purpose.value,
                    str(e),
                    exc_info=True,
                )

        return generated

    async def verify(
        self,
        user_id: int,
        purpose: OtpPurpose,
        client_timestamp: datetime | str | int | float | None,
        code: str,
    ) -> OtpVerification:
        """Verify a passcode.

        Expiry is judged against the caller-supplied timestamp, not the
        server clock. The timestamp may be a datetime, an ISO 8601
        string or Unix epoch seconds or milliseconds.

        Raises:
            NotFoundError: If no passcode exists for the pair.
            ValidationError: If the timestamp is not a parseable date.
            ExpiredError: If the timestamp is past the code expiry.
            InvalidCredentialError: If the code does not match.
        """
        otp = await self._store.find_otp(user_id, purpose)
        if otp is None:
            raise NotFoundError("OTP not found for this user and purpose")

        try:
            at = parse_timestamp(client_timestamp)
        except (TypeError, ValueError) as e:
            raise ValidationError("Invalid timestamp", {"timestamp": str(client_timestamp)}) from e

        if at > ensure_utc(otp.expires_at):  # type: ignore[operator]
            raise ExpiredError("OTP has expired")

        if not self._coder.matches(code, otp.otp_hash):
            raise InvalidCredentialError("Invalid OTP")

        mobile = purpose in _MOBILE_PURPOSES
        email = purpose in _EMAIL_PURPOSES
        if mobile or email:
            user = await self._store.get_user(user_id)
            if user is None:
                raise NotFoundError("User not found")
            user.mark_verified(mobile=mobile, email=email)
            await self._store.save_user(user)

        logger.info("OTP verified for user %s (%s)", user_id, purpose.value)
        return OtpVerification(success=True, message="OTP verified successfully")
