# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for one-time passcode issuance and verification."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from tutorix.domains.auth.errors import (
    ExpiredError,
    InvalidCredentialError,
    NotFoundError,
    ValidationError,
)
from tutorix.domains.auth.otp import OtpService
from tutorix.domains.auth.otp_codes import OtpCoder
from tutorix.infrastructure.database.models import OtpPurpose
from tutorix.utils.datetime import utc_now


class TestGenerate:
    """Tests for passcode generation."""

    @pytest.mark.asyncio
    async def test_generate_stores_hash_and_expiry(self, otp_service, tutor, store) -> None:
        before = utc_now()

        generated = await otp_service.generate(tutor.id, OtpPurpose.MOBILE_VERIFICATION)

        otp = store.otps[(tutor.id, OtpPurpose.MOBILE_VERIFICATION)]
        assert len(generated.code) == 6
        assert otp.otp_hash == OtpCoder.hash(generated.code)
        assert otp.otp_hash != generated.code
        assert generated.expires_at == otp.expires_at
        assert timedelta(minutes=29) < otp.expires_at - before <= timedelta(minutes=30, seconds=1)

    @pytest.mark.asyncio
    async def test_regeneration_overwrites_single_row(self, otp_service, tutor, store) -> None:
        first = await otp_service.generate(tutor.id, OtpPurpose.MOBILE_VERIFICATION)
        row_id = store.otps[(tutor.id, OtpPurpose.MOBILE_VERIFICATION)].id

        second = await otp_service.generate(tutor.id, OtpPurpose.MOBILE_VERIFICATION)

        assert len(store.otps) == 1
        assert store.otps[(tutor.id, OtpPurpose.MOBILE_VERIFICATION)].id == row_id
        if first.code != second.code:
            with pytest.raises(InvalidCredentialError):
                await otp_service.verify(tutor.id, OtpPurpose.MOBILE_VERIFICATION, utc_now(), first.code)

    @pytest.mark.asyncio
    async def test_second_generation_invalidates_first_code(self, store, tutor) -> None:
        codes = iter(["111111", "222222"])
        coder = OtpCoder()
        coder.generate_code = lambda: next(codes)  # type: ignore[method-assign]
        service = OtpService(store, coder)

        await service.generate(tutor.id, OtpPurpose.EMAIL_VERIFICATION)
        await service.generate(tutor.id, OtpPurpose.EMAIL_VERIFICATION)

        with pytest.raises(InvalidCredentialError):
            await service.verify(tutor.id, OtpPurpose.EMAIL_VERIFICATION, utc_now(), "111111")
        result = await service.verify(tutor.id, OtpPurpose.EMAIL_VERIFICATION, utc_now(), "222222")
        assert result.success is True

    @pytest.mark.asyncio
    async def test_purposes_are_independent(self, otp_service, tutor, store) -> None:
        await otp_service.generate(tutor.id, OtpPurpose.MOBILE_VERIFICATION)
        await otp_service.generate(tutor.id, OtpPurpose.EMAIL_VERIFICATION)

        assert len(store.otps) == 2

    @pytest.mark.asyncio
    async def test_unknown_user_raises_error(self, otp_service) -> None:
        with pytest.raises(NotFoundError, match="User not found or inactive"):
            await otp_service.generate(999, OtpPurpose.MOBILE_VERIFICATION)

    @pytest.mark.asyncio
    async def test_inactive_or_deleted_user_raises_error(self, otp_service, tutor, admin) -> None:
        tutor.is_active = False
        admin.deleted_at = utc_now()

        with pytest.raises(NotFoundError):
            await otp_service.generate(tutor.id, OtpPurpose.MOBILE_VERIFICATION)
        with pytest.raises(NotFoundError):
            await otp_service.generate(admin.id, OtpPurpose.EMAIL_VERIFICATION)

    @pytest.mark.asyncio
    async def test_delivery_receives_code(self, store, tutor) -> None:
        delivery = AsyncMock()
        service = OtpService(store, delivery=delivery)

        generated = await service.generate(tutor.id, OtpPurpose.WHATSAPP_VERIFICATION)

        delivery.assert_awaited_once_with(generated)

    @pytest.mark.asyncio
    async def test_delivery_failure_does_not_fail_generation(self, store, tutor) -> None:
        service = OtpService(store, delivery=AsyncMock(side_effect=RuntimeError("sms gateway down")))

        generated = await service.generate(tutor.id, OtpPurpose.MOBILE_VERIFICATION)

        assert generated.code


class TestVerify:
    """Tests for passcode verification."""

    @pytest.mark.asyncio
    async def test_tutor_mobile_verification_scenario(self, otp_service, tutor) -> None:
        assert tutor.is_mobile_verified is False
        generated = await otp_service.generate(tutor.id, OtpPurpose.MOBILE_VERIFICATION)

        result = await otp_service.verify(
            tutor.id, OtpPurpose.MOBILE_VERIFICATION, utc_now(), generated.code
        )

        assert result.success is True
        assert tutor.is_mobile_verified is True
        assert tutor.is_signup_complete is False

    @pytest.mark.asyncio
    async def test_verification_is_idempotent(self, otp_service, tutor) -> None:
        generated = await otp_service.generate(tutor.id, OtpPurpose.MOBILE_VERIFICATION)

        for _ in range(3):
            result = await otp_service.verify(
                tutor.id, OtpPurpose.MOBILE_VERIFICATION, utc_now(), generated.code
            )
            assert result.success is True

    @pytest.mark.asyncio
    async def test_both_flags_complete_signup(self, otp_service, tutor) -> None:
        for purpose in (OtpPurpose.WHATSAPP_VERIFICATION, OtpPurpose.EMAIL_VERIFICATION):
            generated = await otp_service.generate(tutor.id, purpose)
            await otp_service.verify(tutor.id, purpose, utc_now(), generated.code)

        assert tutor.is_mobile_verified is True
        assert tutor.is_email_verified is True
        assert tutor.is_signup_complete is True

    @pytest.mark.asyncio
    async def test_password_reset_purpose_touches_no_flags(self, otp_service, tutor) -> None:
        generated = await otp_service.generate(tutor.id, OtpPurpose.PASSWORD_RESET)

        result = await otp_service.verify(tutor.id, OtpPurpose.PASSWORD_RESET, utc_now(), generated.code)

        assert result.success is True
        assert tutor.is_mobile_verified is False
        assert tutor.is_email_verified is False

    @pytest.mark.asyncio
    async def test_timestamp_at_expiry_is_accepted(self, otp_service, tutor) -> None:
        generated = await otp_service.generate(tutor.id, OtpPurpose.MOBILE_VERIFICATION)

        result = await otp_service.verify(
            tutor.id, OtpPurpose.MOBILE_VERIFICATION, generated.expires_at, generated.code
        )

        assert result.success is True

    @pytest.mark.asyncio
    async def test_timestamp_past_expiry_is_rejected(self, otp_service, tutor) -> None:
        generated = await otp_service.generate(tutor.id, OtpPurpose.MOBILE_VERIFICATION)
        late = (generated.expires_at + timedelta(seconds=1)).isoformat()

        with pytest.raises(ExpiredError):
            await otp_service.verify(tutor.id, OtpPurpose.MOBILE_VERIFICATION, late, generated.code)

    @pytest.mark.asyncio
    async def test_client_clock_is_trusted(self, otp_service, tutor, store) -> None:
        """An expired row still verifies when the caller's timestamp is earlier."""
        generated = await otp_service.generate(tutor.id, OtpPurpose.MOBILE_VERIFICATION)
        otp = store.otps[(tutor.id, OtpPurpose.MOBILE_VERIFICATION)]
        otp.expires_at = utc_now() - timedelta(hours=1)
        early = (otp.expires_at - timedelta(minutes=5)).strftime("%Y-%m-%dT%H:%M:%SZ")

        result = await otp_service.verify(tutor.id, OtpPurpose.MOBILE_VERIFICATION, early, generated.code)

        assert result.success is True

    @pytest.mark.asyncio
    async def test_unparseable_timestamp_is_rejected(self, otp_service, tutor) -> None:
        generated = await otp_service.generate(tutor.id, OtpPurpose.MOBILE_VERIFICATION)

        with pytest.raises(ValidationError):
            await otp_service.verify(tutor.id, OtpPurpose.MOBILE_VERIFICATION, "yesterday", generated.code)
        with pytest.raises(ValidationError):
            await otp_service.verify(tutor.id, OtpPurpose.MOBILE_VERIFICATION, None, generated.code)

    @pytest.mark.asyncio
    async def test_wrong_code_is_rejected(self, otp_service, tutor) -> None:
        generated = await otp_service.generate(tutor.id, OtpPurpose.MOBILE_VERIFICATION)
        wrong = "000000" if generated.code != "000000" else "111111"

        with pytest.raises(InvalidCredentialError):
            await otp_service.verify(tutor.id, OtpPurpose.MOBILE_VERIFICATION, utc_now(), wrong)
        assert tutor.is_mobile_verified is False

    @pytest.mark.asyncio
    async def test_missing_row_is_rejected(self, otp_service, tutor) -> None:
        with pytest.raises(NotFoundError):
            await otp_service.verify(tutor.id, OtpPurpose.MOBILE_VERIFICATION, utc_now(), "123456")
