# backend/helperhive/auth.py
"""
Password hashing and bearer tokens.

Tokens are HS256 JWTs whose ``sub`` is the user's ULID and whose ``role``
mirrors the role column at issue time. Authorization always re-reads the
user row, so the ``role`` claim is informational only.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional, cast

from fastapi.security import OAuth2PasswordBearer
import jwt
from passlib.context import CryptContext

from .core.config import settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Verified against when the email is unknown so login timing does not reveal accounts
DUMMY_HASH_FOR_TIMING_ATTACK = "$2b$12$LQv3c1yqBWVHxkd0LHAkCOYz6TtxMQJqhN8/X4.V4ferVKnNaOuJi"

oauth2_scheme_optional = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def _signing_key() -> str:
    return settings.secret_key.get_secret_value()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bool(pwd_context.verify(plain_password, hashed_password))
    except ValueError as e:
        logger.error(f"Error verifying password: {str(e)}")
        return False


def get_password_hash(password: str) -> str:
    return str(pwd_context.hash(password))


def create_access_token(
    user_id: str, role: str, expires_delta: Optional[timedelta] = None
) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "role": role,
        "iat": issued_at,
        "exp": issued_at
        + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes)),
    }
    token = jwt.encode(claims, _signing_key(), algorithm=settings.jwt_algorithm)
    logger.debug("Issued access token for user %s", user_id)
    return cast(str, token)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Raises ``jwt.PyJWTError`` when the token is invalid or expired."""
    payload = jwt.decode(token, _signing_key(), algorithms=[settings.jwt_algorithm])
    return cast(Dict[str, Any], payload)
