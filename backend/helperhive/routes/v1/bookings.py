# backend/helperhive/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to the booking, tracking and message services;
realtime events are published after the service call returns.

Endpoints:
    POST / - Create a booking
    GET / - List my bookings, paginated and filtered by status
    GET /{booking_id} - Booking details with status history
    PATCH /{booking_id}/respond - Provider accepts or rejects
    PATCH /{booking_id}/status - Provider progress update
    PATCH /{booking_id}/location - Provider location update
    PATCH /{booking_id}/cancel - Either party cancels
    POST /{booking_id}/emergency - Either party raises an emergency alert
    GET /{booking_id}/messages - Booking chat log
    POST /{booking_id}/messages - Send a chat message
    POST /{booking_id}/messages/read - Mark received messages read
    POST /{booking_id}/review - Rate a completed booking
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status

from ...api.dependencies import get_current_active_user
from ...api.dependencies.services import (
    get_booking_service,
    get_message_service,
    get_tracking_service,
)
from ...core.enums import BookingStatus
from ...core.exceptions import DomainException
from ...events import realtime_events
from ...models.user import User
from ...schemas.base import PaginatedResponse
from ...schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingDetailResponse,
    BookingRespond,
    BookingResponse,
    BookingStatusUpdate,
    EmergencyTrigger,
    LocationUpdate,
    MarkReadResponse,
    MessageCreate,
    MessageResponse,
    ReviewCreate,
)
from ...services.booking_service import BookingService
from ...services.message_service import MessageService
from ...services.realtime_publisher import publish_events
from ...services.tracking_service import TrackingService
from .common import BookingId, handle_domain_exception

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: Request,
    booking_data: BookingCreate,
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Create a pending booking with a frozen price snapshot."""
    try:
        booking = await asyncio.to_thread(
            booking_service.create_booking,
            current_user,
            booking_data,
            user_agent=request.headers.get("user-agent"),
            ip_address=request.client.host if request.client else None,
        )
    except DomainException as e:
        handle_domain_exception(e)
    await publish_events(realtime_events.booking_created(booking))
    return BookingResponse.model_validate(booking)


@router.get("", response_model=PaginatedResponse[BookingResponse])
async def list_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> PaginatedResponse[BookingResponse]:
    try:
        bookings, total = await asyncio.to_thread(
            booking_service.list_bookings, current_user, status_filter, page, limit
        )
    except DomainException as e:
        handle_domain_exception(e)
    return PaginatedResponse[BookingResponse].build(
        [BookingResponse.model_validate(b) for b in bookings], total, page, limit
    )


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_booking(
    booking_id: BookingId,
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingDetailResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.get_booking_for_user, booking_id, current_user
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingDetailResponse.model_validate(booking)


@router.patch("/{booking_id}/respond", response_model=BookingResponse)
async def respond_to_booking(
    payload: BookingRespond,
    booking_id: BookingId,
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Provider accepts (confirmed) or rejects (cancelled, no refund) a pending booking."""
    try:
        booking = await asyncio.to_thread(
            booking_service.respond, booking_id, current_user, payload.action, payload.reason
        )
    except DomainException as e:
        handle_domain_exception(e)
    await publish_events(realtime_events.booking_responded(booking, payload.action))
    return BookingResponse.model_validate(booking)


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    payload: BookingStatusUpdate,
    booking_id: BookingId,
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.update_status, booking_id, current_user, payload
        )
    except DomainException as e:
        handle_domain_exception(e)
    events = realtime_events.status_changed(booking, current_user.id)
    if payload.status == BookingStatus.EN_ROUTE.value and payload.location is not None:
        events += realtime_events.provider_location(booking)
    await publish_events(events)
    return BookingResponse.model_validate(booking)


@router.patch("/{booking_id}/location", response_model=BookingResponse)
async def update_provider_location(
    payload: LocationUpdate,
    booking_id: BookingId,
    current_user: User = Depends(get_current_active_user),
    tracking_service: TrackingService = Depends(get_tracking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            tracking_service.update_location,
            booking_id,
            current_user,
            payload.longitude,
            payload.latitude,
            payload.estimated_arrival,
        )
    except DomainException as e:
        handle_domain_exception(e)
    await publish_events(realtime_events.provider_location(booking))
    return BookingResponse.model_validate(booking)


@router.patch("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: BookingId,
    payload: Optional[BookingCancel] = Body(None),
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Cancel a pending or confirmed booking; the refund follows the cancellation tiers."""
    reason = payload.reason if payload else None
    try:
        booking = await asyncio.to_thread(
            booking_service.cancel_booking, booking_id, current_user, reason
        )
    except DomainException as e:
        handle_domain_exception(e)
    await publish_events(realtime_events.booking_cancelled(booking, current_user.id))
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/emergency", response_model=BookingResponse)
async def trigger_emergency(
    booking_id: BookingId,
    payload: Optional[EmergencyTrigger] = Body(None),
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    reason = payload.reason if payload else None
    try:
        booking = await asyncio.to_thread(
            booking_service.trigger_emergency, booking_id, current_user, reason
        )
    except DomainException as e:
        handle_domain_exception(e)
    await publish_events(realtime_events.emergency(booking))
    return BookingResponse.model_validate(booking)


@router.get("/{booking_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    booking_id: BookingId,
    current_user: User = Depends(get_current_active_user),
    message_service: MessageService = Depends(get_message_service),
) -> List[MessageResponse]:
    try:
        messages = await asyncio.to_thread(
            message_service.list_messages, booking_id, current_user
        )
    except DomainException as e:
        handle_domain_exception(e)
    return [MessageResponse.model_validate(m) for m in messages]


@router.post(
    "/{booking_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    payload: MessageCreate,
    booking_id: BookingId,
    current_user: User = Depends(get_current_active_user),
    message_service: MessageService = Depends(get_message_service),
) -> MessageResponse:
    try:
        message = await asyncio.to_thread(
            message_service.send_message,
            booking_id,
            current_user,
            payload.message,
            payload.message_type,
        )
    except DomainException as e:
        handle_domain_exception(e)
    await publish_events(realtime_events.new_message(message))
    return MessageResponse.model_validate(message)


@router.post("/{booking_id}/messages/read", response_model=MarkReadResponse)
async def mark_messages_read(
    booking_id: BookingId,
    current_user: User = Depends(get_current_active_user),
    message_service: MessageService = Depends(get_message_service),
) -> MarkReadResponse:
    try:
        updated = await asyncio.to_thread(message_service.mark_read, booking_id, current_user)
    except DomainException as e:
        handle_domain_exception(e)
    return MarkReadResponse(updated=updated)


@router.post("/{booking_id}/review", response_model=BookingResponse)
async def submit_review(
    payload: ReviewCreate,
    booking_id: BookingId,
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.submit_review,
            booking_id,
            current_user,
            payload.rating,
            payload.comment,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)
