# backend/helperhive/routes/v1/payments.py
"""
Payment routes - API v1

Endpoints:
    POST /create-payment-intent - Start a card payment for a booking
    POST /confirm-payment - Record a succeeded payment intent
    POST /request-refund - Customer refund request (cancels the booking)
    GET /history - Bookings with payment activity for the caller
    GET /earnings - Provider earnings dashboard
    POST /webhook - Stripe webhook receiver
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request

from ...api.dependencies import get_current_active_user, require_customer, require_provider
from ...api.dependencies.services import get_payment_service
from ...core.exceptions import DomainException
from ...events import realtime_events
from ...models.booking import Booking
from ...models.user import User
from ...schemas.base import PaginatedResponse
from ...schemas.booking import BookingResponse
from ...schemas.payment import (
    PaymentConfirm,
    PaymentHistoryItem,
    PaymentIntentCreate,
    PaymentIntentResponse,
    ProviderEarningsResponse,
    RefundRequest,
    RefundResponse,
    WebhookAck,
)
from ...services.payment_service import PaymentService
from ...services.realtime_publisher import publish_events
from .common import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments-v1"])


def _history_item(booking: Booking) -> PaymentHistoryItem:
    payment = booking.payment
    return PaymentHistoryItem(
        booking_id=booking.id,
        booking_number=booking.booking_number,
        service_name=booking.service_name,
        scheduled_date=booking.scheduled_date.isoformat(),
        total=booking.total,
        subtotal=booking.subtotal,
        platform_fee=booking.platform_fee,
        payment_status=payment.status,
        paid_at=payment.paid_at,
        refunded_amount=payment.refunded_amount,
        payout_status=payment.payout_status,
    )


@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    payload: PaymentIntentCreate,
    current_user: User = Depends(require_customer),
    payment_service: PaymentService = Depends(get_payment_service),
) -> PaymentIntentResponse:
    try:
        result = await asyncio.to_thread(
            payment_service.create_payment_intent, payload.booking_id, current_user
        )
    except DomainException as e:
        handle_domain_exception(e)
    return PaymentIntentResponse(**result)


@router.post("/confirm-payment", response_model=BookingResponse)
async def confirm_payment(
    payload: PaymentConfirm,
    current_user: User = Depends(require_customer),
    payment_service: PaymentService = Depends(get_payment_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            payment_service.confirm_payment, payload.payment_intent_id, current_user
        )
    except DomainException as e:
        handle_domain_exception(e)
    await publish_events(realtime_events.payment_confirmed(booking))
    return BookingResponse.model_validate(booking)


@router.post("/request-refund", response_model=RefundResponse)
async def request_refund(
    payload: RefundRequest,
    current_user: User = Depends(require_customer),
    payment_service: PaymentService = Depends(get_payment_service),
) -> RefundResponse:
    """Refund a paid booking by the refund-request tiers and cancel it."""
    try:
        booking, decision = await asyncio.to_thread(
            payment_service.request_refund, payload.booking_id, payload.reason, current_user
        )
    except DomainException as e:
        handle_domain_exception(e)
    await publish_events(realtime_events.booking_cancelled(booking, current_user.id))
    return RefundResponse(
        booking_id=booking.id,
        refund_amount=decision.amount,
        refund_percentage=decision.percentage,
        hours_until_service=round(decision.hours_until_service, 2),
        refund_status=booking.refund_status,
        policy_basis=decision.policy_basis,
    )


@router.get("/history", response_model=PaginatedResponse[PaymentHistoryItem])
async def payment_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    payment_service: PaymentService = Depends(get_payment_service),
) -> PaginatedResponse[PaymentHistoryItem]:
    bookings, total = await asyncio.to_thread(
        payment_service.payment_history, current_user, page, limit
    )
    return PaginatedResponse[PaymentHistoryItem].build(
        [_history_item(b) for b in bookings], total, page, limit
    )


@router.get("/earnings", response_model=ProviderEarningsResponse)
async def provider_earnings(
    period: str = Query("month", pattern="^(week|month|year)$"),
    current_user: User = Depends(require_provider),
    payment_service: PaymentService = Depends(get_payment_service),
) -> ProviderEarningsResponse:
    try:
        data = await asyncio.to_thread(payment_service.provider_earnings, current_user, period)
    except DomainException as e:
        handle_domain_exception(e)
    return ProviderEarningsResponse(**data)


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    payment_service: PaymentService = Depends(get_payment_service),
) -> WebhookAck:
    payload = await request.body()
    try:
        event_type, booking = await asyncio.to_thread(
            payment_service.handle_webhook, payload, stripe_signature
        )
    except DomainException as e:
        handle_domain_exception(e)
    if booking is not None:
        await publish_events(realtime_events.payment_confirmed(booking))
    return WebhookAck(event_type=event_type)
