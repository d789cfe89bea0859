# backend/helperhive/services/payment_service.py
"""
Payment Service for HelperHive

Handles customer payments through the Stripe gateway, customer refund
requests, provider earnings and payouts, and Stripe webhooks.

Gateway calls run outside the database transaction: validate, call the
gateway, then persist. A gateway failure leaves the booking untouched.
"""

from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import NO_REFUND_MESSAGE
from ..core.enums import BookingStatus, PaymentStatus, PayoutStatus, RefundPath, RefundStatus
from ..core.exceptions import (
    BookingAlreadyCancelledException,
    BusinessRuleException,
    ForbiddenException,
    NotFoundException,
    StateConflictException,
    ValidationException,
)
from ..events import outbox_events
from ..models.booking import Booking
from ..models.booking_payment import BookingPayment
from ..models.user import User
from .base import BaseService, Clock
from .booking_service import BookingService
from .booking_state_machine import BookingActor, assert_transition
from .pricing_service import quantize, to_minor_units
from .refund_policy import RefundPolicyResult
from .stripe_gateway import StripeGateway
from .timezone_service import TimezoneService

EARNINGS_PERIODS = {"week": 7, "month": 30, "year": 365}
DAILY_EARNINGS_DAYS = 30

# A failed intent can still succeed after the client retries it
CAPTURABLE_PAYMENT_STATUSES = frozenset({PaymentStatus.PROCESSING.value, PaymentStatus.FAILED.value})


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value if value is not None else "0"))


class PaymentService(BaseService):
    """Service layer for payments, refunds and provider payouts."""

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        gateway: Optional[StripeGateway] = None,
        booking_service: Optional[BookingService] = None,
    ):
        super().__init__(db, clock)
        self.gateway = gateway or StripeGateway()
        self.booking_service = booking_service or BookingService(db, clock, gateway=self.gateway)
        self.repository = self.booking_service.repository

    def _payment_for(self, booking: Booking) -> BookingPayment:
        if booking.payment is None:
            raise NotFoundException("Payment record not found", code="PAYMENT_NOT_FOUND")
        return booking.payment

    def _owned_booking(self, booking_id: str, customer: User) -> Booking:
        booking = self.booking_service.get_booking(booking_id)
        if booking.customer_id != customer.id:
            raise ForbiddenException(
                "Only the booking customer can manage its payment", code="NOT_BOOKING_CUSTOMER"
            )
        return booking

    # ------------------------------------------------------------------ intents

    @BaseService.measure_operation("create_payment_intent")
    def create_payment_intent(self, booking_id: str, customer: User) -> Dict[str, Any]:
        booking = self._owned_booking(booking_id, customer)
        if booking.has_cancellation:
            raise BookingAlreadyCancelledException(booking.id)
        payment = self._payment_for(booking)
        if payment.status != PaymentStatus.PENDING.value:
            raise StateConflictException(
                "Payment already processed", current_status=payment.status, code="PAYMENT_NOT_PENDING"
            )

        amount_cents = to_minor_units(booking.total)
        intent = self.gateway.create_payment_intent(
            amount_cents=amount_cents,
            currency=settings.stripe_currency,
            metadata={
                "booking_id": booking.id,
                "customer_id": booking.customer_id,
                "provider_id": booking.provider_id,
                "service_name": booking.service_name,
            },
            description=f"HelperHive: {booking.service_name} service",
            idempotency_key=f"booking:{booking.id}:payment_intent",
        )

        with self.transaction():
            payment.payment_intent_id = intent.id
            payment.status = PaymentStatus.PROCESSING.value
            self.repository.flush()

        self.logger.info(
            "Payment intent %s created for booking %s (%s cents)",
            intent.id,
            booking.booking_number,
            amount_cents,
        )
        return {
            "client_secret": intent.client_secret,
            "payment_intent_id": intent.id,
            "amount": amount_cents,
            "currency": settings.stripe_currency,
        }

    @BaseService.measure_operation("confirm_payment")
    def confirm_payment(self, payment_intent_id: str, customer: User) -> Booking:
        booking = self.repository.get_by_payment_intent(payment_intent_id)
        if not booking:
            raise NotFoundException("Booking not found for payment", code="BOOKING_NOT_FOUND")
        if booking.customer_id != customer.id:
            raise ForbiddenException(
                "Only the booking customer can manage its payment", code="NOT_BOOKING_CUSTOMER"
            )

        payment = self._payment_for(booking)
        if booking.has_cancellation:
            raise BookingAlreadyCancelledException(booking.id)
        if payment.status == PaymentStatus.COMPLETED.value:
            return booking
        if payment.status not in CAPTURABLE_PAYMENT_STATUSES:
            raise StateConflictException(
                f"Payment is {payment.status} and cannot be captured",
                current_status=booking.status,
                code="PAYMENT_NOT_CAPTURABLE",
                details={"payment_status": payment.status},
            )

        intent = self.gateway.retrieve_payment_intent(payment_intent_id)
        if intent.status != "succeeded":
            raise ValidationException(
                "Payment not completed",
                code="PAYMENT_NOT_SUCCEEDED",
                details={"status": intent.status},
            )

        with self.transaction():
            self._mark_paid(booking, payment, intent.id, customer.id)
        return booking

    def _mark_paid(
        self, booking: Booking, payment: BookingPayment, transaction_id: str, actor_id: Optional[str]
    ) -> None:
        payment.status = PaymentStatus.COMPLETED.value
        payment.paid_at = self.now()
        payment.transaction_id = transaction_id
        payment.platform_fee_collected = booking.platform_fee
        payment.payout_status = PayoutStatus.SCHEDULED.value
        customer = booking.customer
        if customer is not None and customer.customer_profile is not None:
            profile = customer.customer_profile
            profile.total_spent = _decimal(profile.total_spent) + _decimal(booking.total)
        self.booking_service.enqueue_outbox_event(booking, outbox_events.PAYMENT_CONFIRMED, actor_id)
        self.logger.info("Payment completed for booking %s", booking.booking_number)

    # ------------------------------------------------------------------ refunds

    @BaseService.measure_operation("request_refund")
    def request_refund(
        self, booking_id: str, reason: str, customer: User
    ) -> Tuple[Booking, RefundPolicyResult]:
        booking = self._owned_booking(booking_id, customer)
        if booking.has_cancellation:
            raise BookingAlreadyCancelledException(booking.id)
        payment = self._payment_for(booking)
        if payment.status != PaymentStatus.COMPLETED.value:
            raise StateConflictException(
                "Refunds are only available for completed payments",
                current_status=booking.status,
                code="PAYMENT_NOT_REFUNDABLE",
            )
        if booking.status == BookingStatus.COMPLETED.value:
            raise StateConflictException(
                "Completed bookings cannot be refunded",
                current_status=booking.status,
                code="BOOKING_ALREADY_COMPLETED",
            )
        assert_transition(booking.status, BookingStatus.CANCELLED.value, BookingActor.CUSTOMER)

        decision = self.booking_service.evaluate_refund(booking, RefundPath.REFUND_REQUEST)
        if decision.amount <= 0:
            raise BusinessRuleException(
                NO_REFUND_MESSAGE, code="NO_REFUND_AVAILABLE", details=decision.to_payload()
            )

        refund = self.gateway.create_refund(
            payment_intent_id=payment.payment_intent_id,
            amount_cents=to_minor_units(decision.amount),
            reason="requested_by_customer",
            metadata={"booking_id": booking.id, "customer_id": customer.id, "reason": reason},
        )

        with self.transaction():
            payment.record_refund(decision.amount, self.now(), refund.id)
            self.booking_service.apply_transition(
                booking, BookingStatus.CANCELLED, BookingActor.CUSTOMER, user_id=customer.id, note=reason
            )
            self.booking_service.record_cancellation(
                booking, customer.id, reason, decision.amount, RefundStatus.COMPLETED
            )
            self.booking_service.enqueue_outbox_event(
                booking, outbox_events.PAYMENT_REFUNDED, customer.id
            )

        self.logger.info(
            "Refund %s of %s processed for booking %s (%s)",
            refund.id,
            decision.amount,
            booking.booking_number,
            decision.policy_basis,
        )
        return booking, decision

    # ------------------------------------------------------------------ history

    def payment_history(self, user: User, page: int = 1, limit: int = 20) -> Tuple[List[Booking], int]:
        return self.repository.payment_history(user.id, skip=(page - 1) * limit, limit=limit)

    @BaseService.measure_operation("provider_earnings")
    def provider_earnings(self, provider: User, period: str = "month") -> Dict[str, Any]:
        if not provider.is_provider:
            raise ForbiddenException("Provider access required", code="PROVIDER_ONLY")
        if period not in EARNINGS_PERIODS:
            raise ValidationException(
                "Period must be one of week, month or year",
                code="INVALID_PERIOD",
                details={"allowed": list(EARNINGS_PERIODS)},
            )

        now = self.now()
        year_rows = self.repository.completed_paid_for_provider(
            provider.id, since=now - timedelta(days=EARNINGS_PERIODS["year"])
        )

        totals: Dict[str, Decimal] = {}
        for name, days in EARNINGS_PERIODS.items():
            since = now - timedelta(days=days)
            totals[name] = quantize(
                sum(
                    (_decimal(b.subtotal) for b in year_rows if self._paid_since(b, since)),
                    Decimal("0"),
                )
            )

        period_rows = [
            b for b in year_rows if self._paid_since(b, now - timedelta(days=EARNINGS_PERIODS[period]))
        ]
        count = len(period_rows)
        average = quantize(totals[period] / count) if count else Decimal("0.00")

        pending = self.repository.pending_payouts_for_provider(provider.id)
        pending_amount = quantize(sum((_decimal(b.subtotal) for b in pending), Decimal("0")))

        daily: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        cutoff = now - timedelta(days=DAILY_EARNINGS_DAYS)
        for booking in sorted(year_rows, key=lambda b: self._paid_at(b)):
            if not self._paid_since(booking, cutoff):
                continue
            day = self._paid_at(booking).date().isoformat()
            bucket = daily.setdefault(day, {"date": day, "earnings": Decimal("0"), "bookings": 0})
            bucket["earnings"] += _decimal(booking.subtotal)
            bucket["bookings"] += 1

        return {
            "period": period,
            "totals": totals,
            "earnings": {
                "total": totals[period],
                "pending": pending_amount,
                "bookings_count": count,
                "average_value": average,
            },
            "daily_earnings": [
                {**bucket, "earnings": quantize(bucket["earnings"])} for bucket in daily.values()
            ],
            "pending_payouts": len(pending),
        }

    @staticmethod
    def _paid_at(booking: Booking) -> datetime:
        return TimezoneService.ensure_utc(booking.payment.paid_at)

    def _paid_since(self, booking: Booking, since: datetime) -> bool:
        return booking.payment is not None and booking.payment.paid_at is not None and (
            self._paid_at(booking) >= since
        )

    # ------------------------------------------------------------------ payouts

    @BaseService.measure_operation("mark_payout_completed")
    def mark_payout_completed(self, booking_id: str, admin: User) -> Booking:
        if not admin.is_admin:
            raise ForbiddenException("Admin access required", code="ADMIN_ONLY")
        booking = self.booking_service.get_booking(booking_id)
        payment = self._payment_for(booking)
        if booking.status != BookingStatus.COMPLETED.value:
            raise StateConflictException(
                "Payout requires a completed booking",
                current_status=booking.status,
                code="BOOKING_NOT_COMPLETED",
            )
        if payment.status != PaymentStatus.COMPLETED.value:
            raise StateConflictException(
                "Payout requires a completed payment",
                current_status=booking.status,
                code="PAYMENT_NOT_COMPLETED",
            )
        if payment.payout_status != PayoutStatus.SCHEDULED.value:
            raise StateConflictException(
                f"Payout is {payment.payout_status}, expected scheduled",
                current_status=booking.status,
                code="PAYOUT_NOT_SCHEDULED",
            )

        with self.transaction():
            payment.payout_status = PayoutStatus.COMPLETED.value
            payment.payout_date = self.now()
            provider = booking.provider
            if provider is not None and provider.provider_profile is not None:
                profile = provider.provider_profile
                profile.total_earnings = _decimal(profile.total_earnings) + _decimal(booking.subtotal)
            self.repository.flush()

        self.logger.info("Payout completed for booking %s", booking.booking_number)
        return booking

    # ----------------------------------------------------------------- webhooks

    @BaseService.measure_operation("handle_webhook")
    def handle_webhook(
        self, payload: bytes, signature: Optional[str]
    ) -> Tuple[str, Optional[Booking]]:
        """
        Apply a Stripe webhook event.

        Returns the event type and, when a payment was newly captured, the
        booking so the caller can publish the realtime notification.
        """
        event = self.gateway.construct_webhook_event(payload, signature)
        event_type = event.get("type", "")
        intent = (event.get("data") or {}).get("object") or {}
        intent_id = intent.get("id")

        if event_type not in ("payment_intent.succeeded", "payment_intent.payment_failed"):
            self.logger.info("Ignoring Stripe webhook event %s", event_type)
            return event_type, None

        booking = self.repository.get_by_payment_intent(intent_id) if intent_id else None
        if booking is None or booking.payment is None:
            self.logger.warning("Webhook %s for unknown payment intent %s", event_type, intent_id)
            return event_type, None
        payment = booking.payment

        if event_type == "payment_intent.succeeded":
            if payment.status == PaymentStatus.COMPLETED.value:
                return event_type, None
            if booking.has_cancellation or payment.status not in CAPTURABLE_PAYMENT_STATUSES:
                self.logger.warning(
                    "Ignoring capture of %s: booking %s is %s with payment %s",
                    intent_id,
                    booking.booking_number,
                    booking.status,
                    payment.status,
                )
                return event_type, None
            with self.transaction():
                self._mark_paid(booking, payment, intent_id, None)
            return event_type, booking

        if payment.status != PaymentStatus.PROCESSING.value:
            self.logger.info(
                "Ignoring failure of %s: payment for %s is %s",
                intent_id,
                booking.booking_number,
                payment.status,
            )
            return event_type, None

        error = intent.get("last_payment_error") or {}
        with self.transaction():
            payment.status = PaymentStatus.FAILED.value
            payment.failure_reason = (error.get("message") or "Payment failed")[:500]
            self.repository.flush()
        self.logger.warning("Payment failed for booking %s", booking.booking_number)
        return event_type, None
