"""AuthService: registration, login and phone/email verification."""

from datetime import timedelta
from unittest.mock import patch

import pytest

from helperhive.auth import decode_access_token
from helperhive.core.exceptions import (
    ConflictException,
    ForbiddenException,
    UnauthorizedException,
    ValidationException,
)
from helperhive.services.auth_service import AuthService, generate_verification_code

from ..factories import builders

SMS_TASK = "helperhive.tasks.notification_tasks.send_verification_sms.delay"
EMAIL_TASK = "helperhive.tasks.notification_tasks.send_verification_email.delay"


@pytest.fixture
def auth_service(db, clock):
    return AuthService(db, clock)


@pytest.fixture
def queued():
    with patch(SMS_TASK) as sms, patch(EMAIL_TASK) as email:
        yield sms, email


def _register(auth_service, **overrides):
    data = dict(
        email="new@example.com",
        password="Secret123!",
        first_name=" Lerato ",
        last_name="Mokoena",
        phone="+27821234567",
    )
    data.update(overrides)
    return auth_service.register(**data)


class TestRegister:
    def test_customer_gets_profile_and_token(self, auth_service, queued):
        sms, email = queued
        user, token = _register(auth_service)

        assert user.first_name == "Lerato"
        assert user.customer_profile is not None
        assert user.provider_profile is None
        assert user.phone_verified is False
        assert decode_access_token(token)["sub"] == user.id
        sms.assert_called_once_with("+27821234567", user.verification_code)
        email.assert_called_once()

    def test_provider_starts_pending_background_check(self, auth_service, queued):
        user, _ = _register(auth_service, role="provider")
        assert user.provider_profile.background_check_status == "pending"

    def test_admin_role_not_self_service(self, auth_service, queued):
        with pytest.raises(ValidationException):
            _register(auth_service, role="admin")

    def test_duplicate_email(self, auth_service, queued, test_customer):
        with pytest.raises(ConflictException) as exc_info:
            _register(auth_service, email=test_customer.email)
        assert exc_info.value.code == "EMAIL_TAKEN"

    def test_duplicate_phone(self, auth_service, queued, test_customer):
        with pytest.raises(ConflictException) as exc_info:
            _register(auth_service, phone=test_customer.phone)
        assert exc_info.value.code == "PHONE_TAKEN"

    def test_broker_outage_does_not_fail_registration(self, auth_service):
        with patch(SMS_TASK, side_effect=ConnectionError("broker down")):
            user, token = _register(auth_service)
        assert user.id and token


class TestLogin:
    def test_login_returns_token(self, auth_service, test_customer, test_password, clock):
        user, token = auth_service.login(test_customer.email, test_password)
        assert user.id == test_customer.id
        assert user.last_login is not None
        assert token

    def test_wrong_password(self, auth_service, test_customer):
        with pytest.raises(UnauthorizedException):
            auth_service.login(test_customer.email, "nope-nope")

    def test_unknown_email(self, auth_service):
        with pytest.raises(UnauthorizedException):
            auth_service.login("ghost@example.com", "whatever1")

    def test_inactive_account(self, db, auth_service, test_customer, test_password):
        test_customer.is_active = False
        db.commit()
        with pytest.raises(ForbiddenException):
            auth_service.login(test_customer.email, test_password)


class TestVerification:
    def test_code_format(self):
        code = generate_verification_code()
        assert len(code) == 6 and code.isdigit()

    def test_verify_phone(self, auth_service, queued):
        user, _ = _register(auth_service)
        verified = auth_service.verify_phone(user, user.verification_code)
        assert verified.phone_verified is True
        assert verified.verification_code is None

    def test_wrong_code(self, auth_service, queued):
        user, _ = _register(auth_service)
        wrong = "000000" if user.verification_code != "000000" else "111111"
        with pytest.raises(ValidationException) as exc_info:
            auth_service.verify_phone(user, wrong)
        assert exc_info.value.code == "INVALID_VERIFICATION_CODE"

    def test_expired_code(self, db, auth_service, queued, clock):
        user, _ = _register(auth_service)
        user.verification_code_expires_at = clock() - timedelta(minutes=1)
        db.commit()
        with pytest.raises(ValidationException) as exc_info:
            auth_service.verify_phone(user, user.verification_code)
        assert exc_info.value.code == "VERIFICATION_CODE_EXPIRED"

    def test_verify_email(self, auth_service, queued):
        user, _ = _register(auth_service)
        verified = auth_service.verify_email(user.email_verification_token)
        assert verified.email_verified is True
        assert verified.email_verification_token is None

    def test_bad_email_token(self, auth_service):
        with pytest.raises(ValidationException):
            auth_service.verify_email("not-a-token")

    def test_resend_issues_new_code(self, auth_service, queued):
        sms, _ = queued
        user, _ = _register(auth_service)
        auth_service.resend_phone_code(user)
        assert sms.call_count == 2
        assert sms.call_args.args[1] == user.verification_code

    def test_resend_after_verification(self, db, auth_service):
        user = builders.create_customer(db, email="done@example.com")
        with pytest.raises(ValidationException) as exc_info:
            auth_service.resend_phone_code(user)
        assert exc_info.value.code == "ALREADY_VERIFIED"
