# backend/helperhive/routes/v1/auth.py
"""
Authentication routes - API v1

Endpoints:
    POST /register - Create a customer or provider account
    POST /login - Exchange credentials for a bearer token
    POST /verify-phone - Confirm the SMS code
    POST /verify-email - Confirm the emailed token
    POST /resend-code - Issue a fresh SMS code
    GET /me - Current user
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, status

from ...api.dependencies import get_current_active_user
from ...api.dependencies.services import get_auth_service
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.auth import (
    EmailVerification,
    PhoneVerification,
    TokenResponse,
    UserLogin,
    UserRegister,
    UserResponse,
)
from ...schemas.base import MessageResponse
from ...services.auth_service import AuthService
from .common import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth-v1"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: UserRegister,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """
    Register a new account.

    A verification code is sent by SMS and a verification link by email.
    Sending happens in the background; the account is usable immediately
    but unverified.
    """
    try:
        user, token = await asyncio.to_thread(
            lambda: auth_service.register(
                email=payload.email,
                password=payload.password,
                first_name=payload.first_name,
                last_name=payload.last_name,
                phone=payload.phone,
                role=payload.role,
            )
        )
    except DomainException as e:
        handle_domain_exception(e)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=TokenResponse)
async def login(
    payload: UserLogin,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    try:
        user, token = await asyncio.to_thread(auth_service.login, payload.email, payload.password)
    except DomainException as e:
        handle_domain_exception(e)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/verify-phone", response_model=UserResponse)
async def verify_phone(
    payload: PhoneVerification,
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    try:
        user = await asyncio.to_thread(auth_service.verify_phone, current_user, payload.code)
    except DomainException as e:
        handle_domain_exception(e)
    return UserResponse.model_validate(user)


@router.post("/verify-email", response_model=UserResponse)
async def verify_email(
    payload: EmailVerification,
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    try:
        user = await asyncio.to_thread(auth_service.verify_email, payload.token)
    except DomainException as e:
        handle_domain_exception(e)
    return UserResponse.model_validate(user)


@router.post("/resend-code", response_model=MessageResponse)
async def resend_code(
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    try:
        await asyncio.to_thread(auth_service.resend_phone_code, current_user)
    except DomainException as e:
        handle_domain_exception(e)
    return MessageResponse(message="Verification code sent")


@router.get("/me", response_model=UserResponse)
async def read_me(current_user: User = Depends(get_current_active_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)
