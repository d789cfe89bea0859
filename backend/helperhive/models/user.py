# backend/helperhive/models/user.py
"""
User model for the HelperHive platform.

Customers, providers and admins share one table. The role is an explicit
column written at registration and never derived from other fields.

Classes:
    User: Account, credentials and verification state
"""

import logging
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import RoleName
from ..database import Base

logger = logging.getLogger(__name__)


class User(Base):
    """
    Main user model for authentication and profile management.

    Attributes:
        id: ULID primary key
        email: Unique, lower-cased login email
        phone: Unique phone number used for OTP verification
        hashed_password: Bcrypt hash
        role: customer | provider | admin
        is_active: Admin-controlled account switch
        email_verified / phone_verified: Verification gates for booking

    Relationships:
        provider_profile: One-to-one, providers only
        customer_profile: One-to-one, customers only
    """

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(32), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False, default=RoleName.CUSTOMER.value)
    is_active = Column(Boolean, nullable=False, default=True)

    email_verified = Column(Boolean, nullable=False, default=False)
    phone_verified = Column(Boolean, nullable=False, default=False)
    email_verification_token = Column(String(64), nullable=True, index=True)
    verification_code = Column(String(6), nullable=True)
    verification_code_expires_at = Column(DateTime(timezone=True), nullable=True)

    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    provider_profile = relationship(
        "ProviderProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    customer_profile = relationship(
        "CustomerProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("role IN ('customer', 'provider', 'admin')", name="ck_users_role"),
    )

    def __init__(self, **kwargs: Any) -> None:
        if "email" in kwargs and kwargs["email"]:
            kwargs["email"] = kwargs["email"].strip().lower()
        super().__init__(**kwargs)
        logger.debug("Creating user with role %s", kwargs.get("role"))

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN.value

    @property
    def is_provider(self) -> bool:
        return self.role == RoleName.PROVIDER.value

    @property
    def is_customer(self) -> bool:
        return self.role == RoleName.CUSTOMER.value

    @property
    def is_verified(self) -> bool:
        """Both email and phone confirmed."""
        return bool(self.email_verified and self.phone_verified)
