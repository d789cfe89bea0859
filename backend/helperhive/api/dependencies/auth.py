# backend/helperhive/api/dependencies/auth.py
"""
Authentication and authorization dependencies.

The bearer token carries the user id in ``sub``. The user is loaded with
the request's session so services see the same identity map.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from fastapi import Depends, Query
import jwt
from sqlalchemy.orm import Session

from ...auth import decode_access_token, oauth2_scheme_optional
from ...core.enums import RoleName
from ...core.exceptions import ForbiddenException, UnauthorizedException
from ...models.user import User
from ...repositories.user_repository import UserRepository
from .database import get_db

logger = logging.getLogger(__name__)


async def _user_from_token(token: Optional[str], db: Session) -> User:
    if not token:
        raise UnauthorizedException("Not authenticated").to_http_exception()
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError as e:
        logger.warning(f"JWT validation error: {str(e)}")
        raise UnauthorizedException("Could not validate credentials").to_http_exception()

    user_id = payload.get("sub")
    if not isinstance(user_id, str):
        logger.warning("Token payload missing 'sub' field")
        raise UnauthorizedException("Could not validate credentials").to_http_exception()

    user = await asyncio.to_thread(UserRepository(db).get_by_id, user_id)
    if user is None:
        raise UnauthorizedException("Could not validate credentials").to_http_exception()
    return user


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme_optional),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the authenticated user from the Authorization header.

    Raises:
        HTTPException: 401 when the token is missing, invalid or expired,
            or the user no longer exists
    """
    return await _user_from_token(token, db)


async def get_current_user_sse(
    token_header: Optional[str] = Depends(oauth2_scheme_optional),
    token_query: Optional[str] = Query(None, alias="token"),
    db: Session = Depends(get_db),
) -> User:
    """EventSource cannot set headers, so the stream also accepts ``?token=``."""
    user = await _user_from_token(token_header or token_query, db)
    if not user.is_active:
        raise ForbiddenException(
            "Account has been deactivated", code="ACCOUNT_INACTIVE"
        ).to_http_exception()
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        raise ForbiddenException(
            "Account has been deactivated", code="ACCOUNT_INACTIVE"
        ).to_http_exception()
    return current_user


def require_role(*roles: RoleName) -> Callable[..., Awaitable[User]]:
    """Dependency factory allowing only the given roles."""
    allowed = {role.value for role in roles}

    async def verify_role(current_user: User = Depends(get_current_active_user)) -> User:
        if current_user.role not in allowed:
            raise ForbiddenException(
                f"{' or '.join(sorted(allowed)).capitalize()} access required",
                code="ROLE_REQUIRED",
            ).to_http_exception()
        return current_user

    return verify_role


require_admin = require_role(RoleName.ADMIN)
require_customer = require_role(RoleName.CUSTOMER)
require_provider = require_role(RoleName.PROVIDER)


async def require_verified(current_user: User = Depends(get_current_active_user)) -> User:
    if not current_user.is_verified:
        raise ForbiddenException(
            "Please verify your email and phone number", code="ACCOUNT_NOT_VERIFIED"
        ).to_http_exception()
    return current_user
