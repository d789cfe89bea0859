# backend/helperhive/routes/v1/admin.py
"""
Admin routes - API v1

Endpoints:
    GET /disputes - Disputed bookings and active emergency alerts
    POST /bookings/{booking_id}/dispute - Move a booking into dispute
    POST /bookings/{booking_id}/resolve - Resolve a dispute
    PATCH /providers/{user_id}/background-check - Approve or reject a provider
    PATCH /users/{user_id}/status - Activate or deactivate an account
    POST /bookings/{booking_id}/payout - Mark a provider payout completed
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends

from ...api.dependencies import require_admin
from ...api.dependencies.services import get_admin_service, get_payment_service
from ...core.enums import DisputeResolution
from ...core.exceptions import DomainException
from ...events import realtime_events
from ...models.user import User
from ...schemas.admin import (
    BackgroundCheckUpdate,
    DisputeOpen,
    DisputeResolve,
    UserStatusResponse,
    UserStatusUpdate,
)
from ...schemas.booking import BookingResponse
from ...schemas.user import ProviderProfileResponse
from ...services.admin_service import AdminService
from ...services.payment_service import PaymentService
from ...services.realtime_publisher import publish_events
from .common import BookingId, UserId, handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin-v1"])


@router.get("/disputes", response_model=List[BookingResponse])
async def list_disputes(
    current_user: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> List[BookingResponse]:
    bookings = await asyncio.to_thread(admin_service.list_disputes, current_user)
    return [BookingResponse.model_validate(b) for b in bookings]


@router.post("/bookings/{booking_id}/dispute", response_model=BookingResponse)
async def open_dispute(
    booking_id: BookingId,
    payload: Optional[DisputeOpen] = Body(None),
    current_user: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            admin_service.mark_disputed,
            booking_id,
            current_user,
            payload.note if payload else None,
        )
    except DomainException as e:
        handle_domain_exception(e)
    await publish_events(realtime_events.status_changed(booking, current_user.id))
    return BookingResponse.model_validate(booking)


@router.post("/bookings/{booking_id}/resolve", response_model=BookingResponse)
async def resolve_dispute(
    booking_id: BookingId,
    payload: DisputeResolve,
    current_user: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            admin_service.resolve_dispute,
            booking_id,
            current_user,
            payload.resolution,
            payload.refund_amount,
            payload.note,
        )
    except DomainException as e:
        handle_domain_exception(e)
    events = realtime_events.status_changed(booking, current_user.id)
    if payload.resolution == DisputeResolution.REFUND_CUSTOMER.value:
        events += realtime_events.booking_cancelled(booking, booking.provider_id)
    await publish_events(events)
    return BookingResponse.model_validate(booking)


@router.patch("/providers/{user_id}/background-check", response_model=ProviderProfileResponse)
async def set_background_check(
    user_id: UserId,
    payload: BackgroundCheckUpdate,
    current_user: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> ProviderProfileResponse:
    try:
        provider = await asyncio.to_thread(
            admin_service.set_background_check, user_id, payload.status, current_user
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ProviderProfileResponse.from_profile(provider.provider_profile)


@router.patch("/users/{user_id}/status", response_model=UserStatusResponse)
async def set_user_status(
    user_id: UserId,
    payload: UserStatusUpdate,
    current_user: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> UserStatusResponse:
    try:
        user = await asyncio.to_thread(
            admin_service.set_user_active, user_id, payload.is_active, current_user
        )
    except DomainException as e:
        handle_domain_exception(e)
    return UserStatusResponse.model_validate(user)


@router.post("/bookings/{booking_id}/payout", response_model=BookingResponse)
async def complete_payout(
    booking_id: BookingId,
    current_user: User = Depends(require_admin),
    payment_service: PaymentService = Depends(get_payment_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            payment_service.mark_payout_completed, booking_id, current_user
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)
