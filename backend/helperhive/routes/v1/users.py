# backend/helperhive/routes/v1/users.py
"""
User routes - API v1

Endpoints:
    PATCH /me/provider-profile - Typed partial update of the caller's provider profile
"""

import asyncio

from fastapi import APIRouter, Depends

from ...api.dependencies import get_current_active_user
from ...api.dependencies.services import get_user_service
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.user import ProviderProfileResponse, ProviderProfileUpdate
from ...services.user_service import UserService
from .common import handle_domain_exception

router = APIRouter(tags=["users-v1"])


@router.patch("/me/provider-profile", response_model=ProviderProfileResponse)
async def update_provider_profile(
    payload: ProviderProfileUpdate,
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service),
) -> ProviderProfileResponse:
    try:
        profile = await asyncio.to_thread(
            user_service.update_provider_profile, current_user, payload
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ProviderProfileResponse.from_profile(profile)
