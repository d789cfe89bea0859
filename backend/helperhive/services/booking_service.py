# backend/helperhive/services/booking_service.py
"""
Booking Service for HelperHive

Owns the booking lifecycle: creation with a frozen pricing snapshot,
provider responses and progress updates, cancellation with the refund
policy, emergency alerts and reviews. Every status change goes through
``apply_transition`` so the history log and the transition table stay in
step.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
import logging
import secrets
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.constants import (
    BOOKING_NUMBER_PREFIX,
    DEFAULT_CANCEL_REASON,
    DEFAULT_DECLINE_REASON,
    DEFAULT_EMERGENCY_REASON,
)
from ..core.enums import BookingSource, BookingStatus, PaymentMethod, RefundPath, RefundStatus
from ..core.exceptions import (
    BookingAlreadyCancelledException,
    BusinessRuleException,
    ConflictException,
    ForbiddenException,
    InsufficientNoticeException,
    NotFoundException,
    ServiceException,
    StateConflictException,
    ValidationException,
)
from ..events import outbox_events
from ..models.booking import Booking
from ..models.booking_emergency import BookingEmergencyAlert
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..schemas.booking import BookingCreate, BookingStatusUpdate
from .base import BaseService, Clock
from .booking_state_machine import BookingActor, assert_cancellable, assert_transition
from .pricing_service import calculate_pricing, to_minor_units
from .refund_policy import RefundPolicy, RefundPolicyResult
from .stripe_gateway import GatewayRefund, StripeGateway
from .timezone_service import TimezoneService
from .tracking_service import apply_location

logger = logging.getLogger(__name__)

MAX_BOOKING_NUMBER_ATTEMPTS = 10


def generate_booking_number(on: date) -> str:
    """HH-YYYYMMDD-NNNNN with a random zero-padded suffix."""
    return f"{BOOKING_NUMBER_PREFIX}-{on:%Y%m%d}-{secrets.randbelow(100000):05d}"


def scheduled_start_utc(booking: Booking) -> datetime:
    return TimezoneService.local_to_utc(booking.scheduled_date, booking.start_time)


def actor_for(booking: Booking, user: User) -> BookingActor:
    """Resolve how ``user`` relates to ``booking``; non-parties are rejected."""
    if user.id == booking.customer_id:
        return BookingActor.CUSTOMER
    if user.id == booking.provider_id:
        return BookingActor.PROVIDER
    if user.is_admin:
        return BookingActor.ADMIN
    raise ForbiddenException("You are not a party to this booking", code="NOT_BOOKING_PARTY")


class BookingService(BaseService):
    """Service layer for booking lifecycle operations."""

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        refund_policy: Optional[RefundPolicy] = None,
        gateway: Optional[StripeGateway] = None,
    ):
        super().__init__(db, clock)
        self.gateway = gateway or StripeGateway()
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.service_repository = RepositoryFactory.create_service_repository(db)
        self.payment_repository = RepositoryFactory.create_payment_repository(db)
        self.event_outbox_repository = RepositoryFactory.create_event_outbox_repository(db)
        self.refund_policy = refund_policy or RefundPolicy()

    # ------------------------------------------------------------------ lookups

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.repository.get_by_id(booking_id)
        if not booking:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        return booking

    def get_booking_for_user(self, booking_id: str, user: User) -> Booking:
        booking = self.get_booking(booking_id)
        actor_for(booking, user)
        return booking

    @BaseService.measure_operation("list_bookings")
    def list_bookings(
        self, user: User, status: Optional[str] = None, page: int = 1, limit: int = 20
    ) -> Tuple[List[Booking], int]:
        if status is not None and status not in {s.value for s in BookingStatus}:
            raise ValidationException(f"Unknown booking status: {status}", code="INVALID_STATUS")
        skip = (page - 1) * limit
        if user.is_admin:
            return self.repository.list_all(status=status, skip=skip, limit=limit)
        return self.repository.list_for_user(
            user.id, as_provider=user.is_provider, status=status, skip=skip, limit=limit
        )

    # ----------------------------------------------------------------- creation

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        customer: User,
        data: BookingCreate,
        *,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Booking:
        if not customer.is_customer:
            raise ForbiddenException("Only customers can create bookings", code="CUSTOMER_ONLY")
        if not customer.is_verified:
            raise ForbiddenException(
                "Please verify your email and phone number before booking",
                code="ACCOUNT_NOT_VERIFIED",
            )

        service = self.service_repository.get_active(data.service_id)
        if not service:
            raise NotFoundException("Service not found or inactive", code="SERVICE_NOT_FOUND")

        provider = self.user_repository.get_provider(data.provider_id)
        if not provider:
            raise NotFoundException("Provider not found", code="PROVIDER_NOT_FOUND")
        profile = provider.provider_profile
        if not provider.is_active or profile is None or not profile.is_bookable:
            raise BusinessRuleException(
                "Provider is not available for bookings", code="PROVIDER_UNAVAILABLE"
            )
        if not profile.offers(service.id):
            raise BusinessRuleException(
                "Provider does not offer this service", code="SERVICE_NOT_OFFERED"
            )

        location = data.service_location
        if not service.serves_province(location.province):
            raise BusinessRuleException(
                f"{service.name} is not available in {location.province}",
                code="PROVINCE_NOT_SERVED",
            )

        try:
            start_utc = TimezoneService.local_to_utc(data.scheduled_date, data.start_time)
        except ValueError as e:
            raise ValidationException(str(e), code="INVALID_START_TIME")
        hours_ahead = (start_utc - self.now()).total_seconds() / 3600
        if hours_ahead < service.minimum_advance_booking_hours:
            raise InsufficientNoticeException(service.minimum_advance_booking_hours, hours_ahead)

        catalogue = service.add_on_names()
        for add_on in data.add_ons:
            if catalogue and add_on.name not in catalogue:
                raise ValidationException(
                    f"Unknown add-on '{add_on.name}' for {service.name}",
                    code="UNKNOWN_ADD_ON",
                    details={"available": catalogue},
                )
        pricing = calculate_pricing(
            service.base_price, [a.model_dump() for a in data.add_ons]
        )

        duration = service.duration_min_minutes
        end_time = self._end_time(data.start_time, duration)
        requirements = data.requirements

        with self.transaction():
            booking = self.repository.create(
                booking_number=self._unique_booking_number(),
                customer_id=customer.id,
                provider_id=provider.id,
                service_id=service.id,
                service_name=service.name,
                scheduled_date=data.scheduled_date,
                start_time=data.start_time,
                end_time=end_time,
                duration_minutes=duration,
                street=location.street,
                city=location.city,
                province=location.province,
                postal_code=location.postal_code,
                country=location.country,
                location_longitude=location.longitude,
                location_latitude=location.latitude,
                special_instructions=location.special_instructions,
                access_instructions=location.access_instructions,
                customer_provides_equipment=requirements.customer_provides_equipment,
                water_available=requirements.water_available,
                electricity_available=requirements.electricity_available,
                parking_available=requirements.parking_available,
                special_requests=data.special_requests,
                status=BookingStatus.PENDING.value,
                source=BookingSource(data.source).value,
                user_agent=(user_agent or "")[:255] or None,
                ip_address=ip_address,
                **pricing.booking_columns(),
            )
            self.payment_repository.create(
                booking_id=booking.id, method=PaymentMethod(data.payment_method).value
            )
            if customer.customer_profile is not None:
                customer.customer_profile.total_bookings += 1
            self._enqueue_outbox_event(booking, outbox_events.BOOKING_CREATED, customer.id)

        self.logger.info(
            "Booking %s created: subtotal=%s fee=%s total=%s",
            booking.booking_number,
            pricing.subtotal,
            pricing.platform_fee,
            pricing.total,
        )
        return self.get_booking(booking.id)

    # -------------------------------------------------------------- transitions

    def apply_transition(
        self,
        booking: Booking,
        target: BookingStatus,
        actor: BookingActor,
        *,
        user_id: Optional[str],
        note: Optional[str] = None,
    ) -> None:
        """Validate and apply a status change, appending to the history log."""
        assert_transition(booking.status, target.value, actor)
        previous = booking.status
        booking.status = target.value
        self.repository.append_status_history(
            booking, target.value, at=self.now(), note=note, updated_by_id=user_id
        )
        self.logger.info(
            "Booking %s: %s -> %s by %s", booking.booking_number, previous, target.value, actor.value
        )

    @BaseService.measure_operation("respond_to_booking")
    def respond(
        self, booking_id: str, provider: User, action: str, reason: Optional[str] = None
    ) -> Booking:
        booking = self.get_booking(booking_id)
        if booking.provider_id != provider.id:
            raise ForbiddenException(
                "Only the assigned provider can respond to this booking", code="NOT_BOOKING_PROVIDER"
            )
        if booking.status != BookingStatus.PENDING.value:
            raise StateConflictException(
                "Booking is no longer pending", current_status=booking.status
            )

        if action not in ("accept", "reject"):
            raise ValidationException("Action must be 'accept' or 'reject'", code="INVALID_ACTION")

        if action == "accept":
            with self.transaction():
                self.apply_transition(
                    booking, BookingStatus.CONFIRMED, BookingActor.PROVIDER, user_id=provider.id
                )
                self._enqueue_outbox_event(booking, outbox_events.BOOKING_CONFIRMED, provider.id)
            return booking

        decline_reason = (reason or "").strip() or DEFAULT_DECLINE_REASON
        # A declined booking the customer already paid for is refunded in full
        captured = booking.payment is not None and booking.payment.is_captured
        amount = Decimal(str(booking.total)) if captured else Decimal("0.00")
        refund = self.refund_captured_payment(
            booking, amount, {"booking_id": booking.id, "declined_by": provider.id}
        )
        with self.transaction():
            self.apply_transition(
                booking,
                BookingStatus.CANCELLED,
                BookingActor.PROVIDER,
                user_id=provider.id,
                note=decline_reason,
            )
            self._record_cancellation(
                booking,
                provider.id,
                decline_reason,
                amount,
                RefundStatus.FULL if captured else RefundStatus.NONE,
            )
            self._enqueue_outbox_event(booking, outbox_events.BOOKING_CANCELLED, provider.id)
            self.settle_cancelled_payment(booking, amount, refund, provider.id)
        return booking

    @BaseService.measure_operation("update_booking_status")
    def update_status(self, booking_id: str, provider: User, update: BookingStatusUpdate) -> Booking:
        booking = self.get_booking(booking_id)
        if booking.provider_id != provider.id:
            raise ForbiddenException(
                "Only the assigned provider can update booking progress",
                code="NOT_BOOKING_PROVIDER",
            )
        target = BookingStatus(update.status)
        assert_transition(booking.status, target.value, BookingActor.PROVIDER)

        with self.transaction():
            now = self.now()
            if target == BookingStatus.EN_ROUTE and update.location is not None:
                apply_location(
                    booking,
                    update.location.longitude,
                    update.location.latitude,
                    update.estimated_arrival,
                    now,
                )
            elif target == BookingStatus.IN_PROGRESS:
                booking.actual_arrival = now
            elif target == BookingStatus.COMPLETED:
                booking.actual_completion = now
                if provider.provider_profile is not None:
                    provider.provider_profile.completed_jobs += 1

            self.apply_transition(
                booking, target, BookingActor.PROVIDER, user_id=provider.id, note=update.note
            )
            if target == BookingStatus.COMPLETED:
                self._enqueue_outbox_event(booking, outbox_events.BOOKING_COMPLETED, provider.id)
        return booking

    # ------------------------------------------------------------- cancellation

    def evaluate_refund(self, booking: Booking, path: RefundPath) -> RefundPolicyResult:
        return self.refund_policy.evaluate(
            Decimal(str(booking.total)), scheduled_start_utc(booking), self.now(), path
        )

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, booking_id: str, user: User, reason: Optional[str] = None) -> Booking:
        booking = self.get_booking(booking_id)
        actor = actor_for(booking, user)
        if actor == BookingActor.ADMIN:
            raise ForbiddenException(
                "Admins resolve bookings through dispute resolution", code="NOT_BOOKING_PARTY"
            )
        if booking.has_cancellation:
            raise BookingAlreadyCancelledException(booking.id)
        assert_cancellable(booking.status)

        decision = self.evaluate_refund(booking, RefundPath.CANCEL)
        cancel_reason = (reason or "").strip() or DEFAULT_CANCEL_REASON
        refund = self.refund_captured_payment(
            booking, decision.amount, {"booking_id": booking.id, "cancelled_by": user.id}
        )

        with self.transaction():
            self.apply_transition(
                booking, BookingStatus.CANCELLED, actor, user_id=user.id, note=cancel_reason
            )
            self._record_cancellation(
                booking, user.id, cancel_reason, decision.amount, decision.refund_status
            )
            self._enqueue_outbox_event(booking, outbox_events.BOOKING_CANCELLED, user.id)
            self.settle_cancelled_payment(booking, decision.amount, refund, user.id)

        self.logger.info(
            "Booking %s cancelled by %s: %s",
            booking.booking_number,
            actor.value,
            decision.policy_basis,
        )
        return booking

    def refund_captured_payment(
        self, booking: Booking, amount: Decimal, metadata: Dict[str, str]
    ) -> Optional[GatewayRefund]:
        """
        Return ``amount`` of a captured payment through the gateway.

        Runs before the cancellation transaction so a gateway failure leaves
        the booking untouched. Returns None when nothing was captured or
        nothing is owed.
        """
        payment = booking.payment
        if payment is None or not payment.is_captured or amount <= 0:
            return None
        return self.gateway.create_refund(
            payment_intent_id=payment.payment_intent_id,
            amount_cents=to_minor_units(amount),
            reason="requested_by_customer",
            metadata=metadata,
        )

    def settle_cancelled_payment(
        self,
        booking: Booking,
        amount: Decimal,
        refund: Optional[GatewayRefund],
        actor_id: Optional[str],
    ) -> None:
        """Record the refund, if any, and make sure the provider is never paid out."""
        payment = booking.payment
        if payment is None:
            return
        if refund is None:
            payment.cancel_payout()
        else:
            payment.record_refund(amount, self.now(), refund.id)
            self._enqueue_outbox_event(booking, outbox_events.PAYMENT_REFUNDED, actor_id)
        self.repository.flush()

    def record_cancellation(
        self,
        booking: Booking,
        user_id: str,
        reason: str,
        amount: Decimal,
        refund_status: RefundStatus,
    ) -> None:
        """Write the cancellation record once; callers hold the transaction."""
        if booking.has_cancellation:
            raise BookingAlreadyCancelledException(booking.id)
        self._record_cancellation(booking, user_id, reason, amount, refund_status)

    def _record_cancellation(
        self,
        booking: Booking,
        user_id: str,
        reason: str,
        amount: Decimal,
        refund_status: RefundStatus,
    ) -> None:
        booking.cancelled_at = self.now()
        booking.cancelled_by_id = user_id
        booking.cancellation_reason = reason
        booking.refund_amount = amount
        booking.refund_status = refund_status.value
        self.repository.flush()

    # ---------------------------------------------------------------- emergency

    @BaseService.measure_operation("trigger_emergency")
    def trigger_emergency(self, booking_id: str, user: User, reason: Optional[str] = None) -> Booking:
        booking = self.get_booking(booking_id)
        if not booking.is_party(user.id):
            raise ForbiddenException("You are not a party to this booking", code="NOT_BOOKING_PARTY")

        alert_reason = (reason or "").strip() or DEFAULT_EMERGENCY_REASON
        with self.transaction():
            now = self.now()
            alert = booking.emergency_alert
            if alert is None:
                booking.emergency_alert = BookingEmergencyAlert(
                    booking_id=booking.id,
                    triggered_by_id=user.id,
                    reason=alert_reason,
                    triggered_at=now,
                )
            else:
                alert.trigger(user.id, alert_reason, now)
            self.repository.flush()

        self.logger.warning(
            "Emergency alert on booking %s by user %s: %s", booking.booking_number, user.id, alert_reason
        )
        return booking

    # ------------------------------------------------------------------ reviews

    def submit_review(
        self, booking_id: str, user: User, rating: int, comment: Optional[str] = None
    ) -> Booking:
        booking = self.get_booking(booking_id)
        if not booking.is_party(user.id):
            raise ForbiddenException("You are not a party to this booking", code="NOT_BOOKING_PARTY")
        if booking.status != BookingStatus.COMPLETED.value:
            raise StateConflictException(
                "Only completed bookings can be reviewed", current_status=booking.status
            )

        with self.transaction():
            now = self.now()
            text = (comment or "").strip() or None
            if user.id == booking.customer_id:
                if booking.customer_rating is not None:
                    raise ConflictException("You have already reviewed this booking")
                booking.customer_rating = rating
                booking.customer_comment = text
                booking.customer_reviewed_at = now
                provider = self.user_repository.get_by_id(booking.provider_id)
                if provider is not None and provider.provider_profile is not None:
                    provider.provider_profile.record_rating(rating)
            else:
                if booking.provider_rating is not None:
                    raise ConflictException("You have already reviewed this booking")
                booking.provider_rating = rating
                booking.provider_comment = text
                booking.provider_reviewed_at = now
            self.repository.flush()
        return booking

    # ------------------------------------------------------------------ helpers

    def _enqueue_outbox_event(
        self, booking: Booking, event_type: str, actor_id: Optional[str] = None
    ) -> None:
        """Persist an outbox entry for the given booking event inside the current transaction."""
        self.repository.flush()
        notification = outbox_events.BookingNotification.from_booking(booking, event_type, actor_id)
        self.event_outbox_repository.enqueue(
            event_type=event_type,
            aggregate_id=booking.id,
            payload=notification.to_dict(),
            idempotency_key=outbox_events.idempotency_key(booking, event_type),
        )

    def enqueue_outbox_event(
        self, booking: Booking, event_type: str, actor_id: Optional[str] = None
    ) -> None:
        self._enqueue_outbox_event(booking, event_type, actor_id)

    def _unique_booking_number(self) -> str:
        today = self.now().date()
        for _ in range(MAX_BOOKING_NUMBER_ATTEMPTS):
            candidate = generate_booking_number(today)
            if not self.repository.number_exists(candidate):
                return candidate
        raise ServiceException("Could not allocate a booking number", code="BOOKING_NUMBER_EXHAUSTED")

    @staticmethod
    def _end_time(start: time, duration_minutes: int) -> time:
        end = datetime.combine(date.min, start) + timedelta(minutes=duration_minutes)
        if end.date() != date.min:
            return time(23, 59)
        return end.time()
