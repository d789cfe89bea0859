# backend/helperhive/services/auth_service.py
"""
Authentication Service for HelperHive

Handles registration, login and phone/email verification. Verification
messages are handed to Celery after the account is committed; a delivery
problem never fails the request.
"""

from datetime import timedelta
import logging
import secrets
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from ..auth import (
    DUMMY_HASH_FOR_TIMING_ATTACK,
    create_access_token,
    get_password_hash,
    verify_password,
)
from ..core.config import settings
from ..core.enums import BackgroundCheckStatus, RoleName
from ..core.exceptions import (
    ConflictException,
    ForbiddenException,
    UnauthorizedException,
    ValidationException,
)
from ..models.profile import CustomerProfile, ProviderProfile
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock
from .timezone_service import TimezoneService

logger = logging.getLogger(__name__)

SELF_SERVICE_ROLES = {RoleName.CUSTOMER.value, RoleName.PROVIDER.value}


def generate_verification_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


class AuthService(BaseService):
    """Service for handling authentication operations."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    def _issue_token(self, user: User) -> str:
        return create_access_token(user.id, user.role)

    @BaseService.measure_operation("register_user")
    def register(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: str,
        role: str = RoleName.CUSTOMER.value,
    ) -> Tuple[User, str]:
        """
        Register a customer or provider account.

        Returns:
            The created user and an access token

        Raises:
            ValidationException: If the role is not self-service
            ConflictException: If the email or phone is already registered
        """
        self.log_operation("register_user", email=email, role=role)
        if role not in SELF_SERVICE_ROLES:
            raise ValidationException(
                "Role must be 'customer' or 'provider'", code="INVALID_ROLE"
            )
        if self.user_repository.email_taken(email):
            self.logger.warning(f"Registration failed - email already exists: {email}")
            raise ConflictException("Email already registered", code="EMAIL_TAKEN")
        if self.user_repository.phone_taken(phone):
            raise ConflictException("Phone number already registered", code="PHONE_TAKEN")

        code = generate_verification_code()
        email_token = secrets.token_urlsafe(32)
        with self.transaction():
            user: User = self.user_repository.create(
                email=email,
                phone=phone,
                hashed_password=get_password_hash(password),
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                role=role,
                email_verification_token=email_token,
                verification_code=code,
                verification_code_expires_at=self.now()
                + timedelta(minutes=settings.verification_code_ttl_minutes),
            )
            if role == RoleName.PROVIDER.value:
                user.provider_profile = ProviderProfile(
                    user_id=user.id,
                    background_check_status=BackgroundCheckStatus.PENDING.value,
                )
            else:
                user.customer_profile = CustomerProfile(user_id=user.id)
            self.user_repository.flush()

        self._send_verification(user, code, email_token)
        self.logger.info("Registered %s %s", role, user.id)
        return user, self._issue_token(user)

    @BaseService.measure_operation("login")
    def login(self, email: str, password: str) -> Tuple[User, str]:
        user = self.user_repository.get_by_email(email)
        if user is None:
            # Keep timing comparable for unknown accounts
            verify_password(password, DUMMY_HASH_FOR_TIMING_ATTACK)
            raise UnauthorizedException("Invalid email or password", code="INVALID_CREDENTIALS")
        if not verify_password(password, user.hashed_password):
            raise UnauthorizedException("Invalid email or password", code="INVALID_CREDENTIALS")
        if not user.is_active:
            raise ForbiddenException("Account has been deactivated", code="ACCOUNT_INACTIVE")

        with self.transaction():
            user.last_login = self.now()
            self.user_repository.flush()
        return user, self._issue_token(user)

    def verify_phone(self, user: User, code: str) -> User:
        if user.phone_verified:
            return user
        expires_at = user.verification_code_expires_at
        if not user.verification_code or expires_at is None:
            raise ValidationException("No verification code issued", code="NO_VERIFICATION_CODE")
        if TimezoneService.ensure_utc(expires_at) < self.now():
            raise ValidationException("Verification code expired", code="VERIFICATION_CODE_EXPIRED")
        if not secrets.compare_digest(user.verification_code, code.strip()):
            raise ValidationException("Invalid verification code", code="INVALID_VERIFICATION_CODE")

        with self.transaction():
            user.phone_verified = True
            user.verification_code = None
            user.verification_code_expires_at = None
            self.user_repository.flush()
        return user

    def verify_email(self, token: str) -> User:
        user = self.user_repository.get_by_email_token(token)
        if user is None:
            raise ValidationException("Invalid verification token", code="INVALID_EMAIL_TOKEN")
        with self.transaction():
            user.email_verified = True
            user.email_verification_token = None
            self.user_repository.flush()
        return user

    def resend_phone_code(self, user: User) -> None:
        if user.phone_verified:
            raise ValidationException("Phone number already verified", code="ALREADY_VERIFIED")
        code = generate_verification_code()
        with self.transaction():
            user.verification_code = code
            user.verification_code_expires_at = self.now() + timedelta(
                minutes=settings.verification_code_ttl_minutes
            )
            self.user_repository.flush()
        self._send_verification(user, code, None)

    def _send_verification(self, user: User, code: str, email_token: Optional[str]) -> None:
        from ..tasks.notification_tasks import send_verification_email, send_verification_sms

        try:
            send_verification_sms.delay(user.phone, code)
            if email_token:
                send_verification_email.delay(user.email, user.first_name, email_token)
        except Exception as e:
            # Broker outages must not fail registration
            self.logger.error(f"Failed to enqueue verification for {user.id}: {str(e)}")
