# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for staged signup and profile maintenance."""

import pytest

from tutorix.domains.auth import (
    Err,
    ErrorKind,
    LoginIdentifier,
    Ok,
    RegisterUserInput,
    UpdateUserInput,
    UserSignupInput,
)
from tutorix.infrastructure.database.models import UserRole
from tutorix.infrastructure.events import EventTypes
from tutorix.utils.datetime import utc_now


class TestRegisterUser:
    """Tests for register_user."""

    @pytest.mark.asyncio
    async def test_new_user(self, auth_service, store) -> None:
        result = await auth_service.register_user(
            RegisterUserInput(
                email="new@tutorix.test",
                mobile_number="9876543210",
                first_name="Ravi",
            )
        )

        assert isinstance(result, Ok)
        user = result.value
        assert user.mobile == "+919876543210"
        assert user.mobile_country_code == "+91"
        assert user.role == UserRole.UNKNOWN
        assert user.is_signup_complete is False
        assert user.password_hash
        assert store.users[user.id] is user

    @pytest.mark.asyncio
    async def test_new_user_with_password_can_log_in(self, auth_service) -> None:
        await auth_service.register_user(
            RegisterUserInput(
                email="new@tutorix.test",
                mobile_country_code="+44",
                mobile_number="7700900123",
                password="chosen-password",
                role=UserRole.STUDENT,
            )
        )

        result = await auth_service.login(LoginIdentifier.mobile("+447700900123"), "chosen-password")

        assert result.ok is True

    @pytest.mark.asyncio
    async def test_email_and_mobile_are_required(self, auth_service) -> None:
        no_email = await auth_service.register_user(RegisterUserInput(email="", mobile_number="9876543210"))
        no_mobile = await auth_service.register_user(RegisterUserInput(email="new@tutorix.test", mobile_number=""))

        assert no_email.kind is ErrorKind.VALIDATION
        assert no_mobile.kind is ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_resume_incomplete_signup(self, auth_service, store, tutor) -> None:
        tutor.role = UserRole.UNKNOWN
        tutor.email = None

        result = await auth_service.register_user(
            RegisterUserInput(
                email="asha@tutorix.test",
                mobile_number=tutor.mobile_number,
                role=UserRole.TUTOR,
                last_name="Rao",
            )
        )

        assert result == Ok(tutor)
        assert len(store.users) == 1
        assert tutor.role == UserRole.TUTOR
        assert tutor.email == "asha@tutorix.test"
        assert tutor.first_name == "Asha"
        assert tutor.last_name == "Rao"

    @pytest.mark.asyncio
    async def test_resume_keeps_declared_role(self, auth_service, tutor) -> None:
        await auth_service.register_user(
            RegisterUserInput(
                email=tutor.email,
                mobile_number=tutor.mobile_number,
                role=UserRole.STUDENT,
            )
        )

        assert tutor.role == UserRole.TUTOR

    @pytest.mark.asyncio
    async def test_resume_matches_by_email(self, auth_service, admin) -> None:
        result = await auth_service.register_user(
            RegisterUserInput(email=admin.email, mobile_number="9000000000")
        )

        assert result == Ok(admin)
        assert admin.mobile == "+919000000000"

    @pytest.mark.asyncio
    async def test_completed_signup_conflicts(self, auth_service, tutor) -> None:
        tutor.is_signup_complete = True

        result = await auth_service.register_user(
            RegisterUserInput(email=tutor.email, mobile_number=tutor.mobile_number)
        )

        assert result == Err(ErrorKind.CONFLICT, "User already registered and signup completed")


class TestUserSignup:
    """Tests for user_signup."""

    @pytest.mark.asyncio
    async def test_signup_opens_session(self, auth_service, store, published_events) -> None:
        result = await auth_service.user_signup(
            UserSignupInput(
                email="meera@tutorix.test",
                mobile_number="9876543210",
                password="chosen-password",
                first_name="Meera",
                platform="android",
            )
        )

        assert isinstance(result, Ok)
        user = result.value.user
        assert user.mobile == "+919876543210"
        assert user.mobile_country_code == "+91"
        assert user.mobile_number == "9876543210"
        assert user.is_mobile_verified is False
        assert user.is_signup_complete is False
        assert result.value.tokens.refresh_token

        (session,) = store.sessions.values()
        assert session.user_id == user.id
        assert session.platform == "android"

        (event,) = published_events
        assert event.event_type == EventTypes.Auth.USER_REGISTERED
        assert event.payload["method"] == "mobile"

    @pytest.mark.asyncio
    async def test_role_defaults_to_unknown(self, auth_service) -> None:
        result = await auth_service.user_signup(
            UserSignupInput(email="new@tutorix.test", mobile_number="9876543210", password="chosen-password")
        )

        assert result.value.user.role == UserRole.UNKNOWN

    @pytest.mark.asyncio
    async def test_declared_role_and_country_code(self, auth_service) -> None:
        result = await auth_service.user_signup(
            UserSignupInput(
                email="new@tutorix.test",
                mobile_country_code="+44",
                mobile_number="7700900123",
                password="chosen-password",
                role=UserRole.STUDENT,
            )
        )

        assert result.value.user.role == UserRole.STUDENT
        login = await auth_service.login(LoginIdentifier.mobile("+447700900123"), "chosen-password")
        assert login.ok is True

    @pytest.mark.asyncio
    async def test_duplicate_email(self, auth_service, store, tutor) -> None:
        result = await auth_service.user_signup(
            UserSignupInput(email=tutor.email, mobile_number="9000000000", password="chosen-password")
        )

        assert result == Err(ErrorKind.CONFLICT, "Email already registered", {"field": "email"})
        assert len(store.users) == 1
        assert store.sessions == {}

    @pytest.mark.asyncio
    async def test_duplicate_full_mobile(self, auth_service, tutor) -> None:
        result = await auth_service.user_signup(
            UserSignupInput(email="new@tutorix.test", mobile_number=tutor.mobile_number, password="chosen-password")
        )

        assert result == Err(ErrorKind.CONFLICT, "Mobile number already registered", {"field": "mobile"})

    @pytest.mark.asyncio
    async def test_duplicate_national_number(self, auth_service, tutor) -> None:
        result = await auth_service.user_signup(
            UserSignupInput(
                email="new@tutorix.test",
                mobile_country_code="+1",
                mobile_number=tutor.mobile_number,
                password="chosen-password",
            )
        )

        assert result.kind is ErrorKind.CONFLICT

    @pytest.mark.asyncio
    async def test_empty_password(self, auth_service, store) -> None:
        result = await auth_service.user_signup(
            UserSignupInput(email="new@tutorix.test", mobile_number="9876543210", password="")
        )

        assert result.kind is ErrorKind.VALIDATION
        assert store.users == {}


class TestSetPassword:
    """Tests for set_password."""

    @pytest.mark.asyncio
    async def test_set_password(self, auth_service, tutor) -> None:
        assert await auth_service.set_password(tutor.id, "replacement") == Ok(True)

        result = await auth_service.login(LoginIdentifier.mobile(tutor.mobile), "replacement")
        assert result.ok is True

    @pytest.mark.asyncio
    async def test_inactive_user(self, auth_service, tutor) -> None:
        tutor.is_active = False

        result = await auth_service.set_password(tutor.id, "replacement")

        assert result.kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_empty_password(self, auth_service, tutor) -> None:
        result = await auth_service.set_password(tutor.id, "")

        assert result.kind is ErrorKind.VALIDATION


class TestUpdateUser:
    """Tests for update_user and get_user."""

    @pytest.mark.asyncio
    async def test_update_names_and_role(self, auth_service, tutor) -> None:
        result = await auth_service.update_user(
            UpdateUserInput(user_id=tutor.id, first_name="Asha", last_name="Iyer", role=UserRole.STUDENT)
        )

        assert result == Ok(tutor)
        assert tutor.last_name == "Iyer"
        assert tutor.role == UserRole.STUDENT

    @pytest.mark.asyncio
    async def test_mobile_change_resets_verification(self, auth_service, tutor) -> None:
        tutor.is_mobile_verified = True

        await auth_service.update_user(UpdateUserInput(user_id=tutor.id, mobile_number="5555555555"))

        assert tutor.mobile == "+915555555555"
        assert tutor.is_mobile_verified is False

    @pytest.mark.asyncio
    async def test_same_mobile_keeps_verification(self, auth_service, tutor) -> None:
        tutor.is_mobile_verified = True

        await auth_service.update_user(
            UpdateUserInput(user_id=tutor.id, mobile_number=tutor.mobile_number)
        )

        assert tutor.is_mobile_verified is True

    @pytest.mark.asyncio
    async def test_mobile_taken_by_other_user(self, auth_service, store, tutor) -> None:
        other = store.seed_user(
            mobile="+915555555555",
            mobile_country_code="+91",
            mobile_number="5555555555",
            password_hash="x",
            role=UserRole.STUDENT,
        )

        result = await auth_service.update_user(
            UpdateUserInput(user_id=tutor.id, mobile_number=other.mobile_number)
        )

        assert result.kind is ErrorKind.CONFLICT
        assert tutor.mobile == "+911234567890"

    @pytest.mark.asyncio
    async def test_email_taken_by_other_user(self, auth_service, tutor, admin) -> None:
        result = await auth_service.update_user(UpdateUserInput(user_id=tutor.id, email=admin.email))

        assert result == Err(ErrorKind.CONFLICT, "Email already registered", {"field": "email"})

    @pytest.mark.asyncio
    async def test_mark_signup_complete(self, auth_service, tutor) -> None:
        await auth_service.update_user(UpdateUserInput(user_id=tutor.id, is_signup_complete=True))

        assert tutor.is_signup_complete is True

    @pytest.mark.asyncio
    async def test_deleted_user(self, auth_service, tutor) -> None:
        tutor.deleted_at = utc_now()

        update = await auth_service.update_user(UpdateUserInput(user_id=tutor.id, first_name="X"))
        lookup = await auth_service.get_user(tutor.id)

        assert update.kind is ErrorKind.NOT_FOUND
        assert lookup == Err(ErrorKind.NOT_FOUND, "User not found")

    @pytest.mark.asyncio
    async def test_get_user(self, auth_service, admin) -> None:
        assert await auth_service.get_user(admin.id) == Ok(admin)
        assert (await auth_service.get_user(12345)).ok is False
