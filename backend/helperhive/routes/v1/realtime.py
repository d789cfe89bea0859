# backend/helperhive/routes/v1/realtime.py
"""
Real-time routes - API v1

Endpoints:
    GET /stream?channel= - Server-Sent Events for one broadcaster channel

Channel access:
    user_{id}, provider_{id}, customer_{id} - only the owner
    booking_{id} - only the booking's customer and provider
    Admins may subscribe to any channel.
"""

import asyncio
import json
import logging
from typing import Any, AsyncGenerator, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sse_starlette.sse import EventSourceResponse

from ...api.dependencies import get_current_user_sse
from ...api.dependencies.services import get_booking_service
from ...core.broadcast import get_broadcast
from ...core.exceptions import DomainException, ForbiddenException, ValidationException
from ...models.user import User
from ...services.booking_service import BookingService
from .common import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime-v1"])

HEARTBEAT_SECONDS = 15
OWNER_PREFIXES = ("user_", "provider_", "customer_")
BOOKING_PREFIX = "booking_"


def authorize_channel(user: User, channel: str, booking_service: BookingService) -> None:
    """
    Raise unless the user may listen on the channel.

    Raises:
        ValidationException: Unknown channel shape
        ForbiddenException: Channel belongs to someone else
        NotFoundException: Booking channel for a missing booking
    """
    if channel.startswith(BOOKING_PREFIX):
        booking_service.get_booking_for_user(channel[len(BOOKING_PREFIX):], user)
        return

    for prefix in OWNER_PREFIXES:
        if channel.startswith(prefix):
            if user.is_admin or channel == f"{prefix}{user.id}":
                return
            raise ForbiddenException("Cannot subscribe to this channel", code="CHANNEL_FORBIDDEN")

    raise ValidationException("Unknown channel", code="INVALID_CHANNEL")


@router.get("/stream")
async def stream_channel(
    request: Request,
    channel: str = Query(..., min_length=6, max_length=64),
    current_user: User = Depends(get_current_user_sse),
    booking_service: BookingService = Depends(get_booking_service),
) -> EventSourceResponse:
    try:
        await asyncio.to_thread(authorize_channel, current_user, channel, booking_service)
    except DomainException as e:
        handle_domain_exception(e)
    # Release the connection before the long-lived stream starts
    await asyncio.to_thread(booking_service.db.close)

    try:
        broadcast = get_broadcast()
    except RuntimeError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Real-time channel unavailable",
        )

    logger.info("[SSE] %s subscribed to %s", current_user.id, channel)

    async def event_generator() -> AsyncGenerator[Dict[str, Any], None]:
        async with broadcast.subscribe(channel=channel) as subscriber:
            async for event in subscriber:
                if await request.is_disconnected():
                    break
                try:
                    event_type = json.loads(event.message).get("type", "message")
                except (TypeError, ValueError):
                    logger.warning("[SSE] Dropping malformed message on %s", channel)
                    continue
                yield {"event": event_type, "data": event.message}
        logger.info("[SSE] %s left %s", current_user.id, channel)

    return EventSourceResponse(
        event_generator(),
        ping=HEARTBEAT_SECONDS,
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "X-Accel-Buffering": "no",
        },
    )
