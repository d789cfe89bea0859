# backend/helperhive/schemas/auth.py
"""Account registration, login and verification schemas."""

from datetime import datetime
import re
from typing import Literal, Optional

from pydantic import EmailStr, Field, field_validator

from .base import StandardizedModel, StrictRequestModel

PHONE_PATTERN = re.compile(r"^\+?[0-9]{9,15}$")


class UserRegister(StrictRequestModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone: str
    role: Literal["customer", "provider"] = "customer"

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        cleaned = re.sub(r"[\s\-()]", "", v)
        if not PHONE_PATTERN.match(cleaned):
            raise ValueError("Invalid phone number")
        return cleaned


class UserLogin(StrictRequestModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class PhoneVerification(StrictRequestModel):
    code: str = Field(..., min_length=6, max_length=6, pattern=r"^[0-9]{6}$")


class EmailVerification(StrictRequestModel):
    token: str = Field(..., min_length=1)


class UserResponse(StandardizedModel):
    id: str
    email: str
    phone: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    email_verified: bool
    phone_verified: bool
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None


class TokenResponse(StandardizedModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
