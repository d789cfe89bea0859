# backend/helperhive/services/admin_service.py
"""
Admin Service for HelperHive

Dispute handling and account moderation. Admin rights come only from the
``admin`` role column.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.constants import ADMIN_REFUND_REASON
from ..core.enums import (
    BackgroundCheckStatus,
    BookingStatus,
    DisputeResolution,
    RefundStatus,
)
from ..core.exceptions import (
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..events import outbox_events
from ..models.booking import Booking
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock
from .booking_service import BookingService
from .booking_state_machine import BookingActor, assert_transition
from .pricing_service import quantize
from .stripe_gateway import StripeGateway


def _require_admin(user: User) -> None:
    if not user.is_admin:
        raise ForbiddenException("Admin access required", code="ADMIN_ONLY")


class AdminService(BaseService):
    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        booking_service: Optional[BookingService] = None,
        gateway: Optional[StripeGateway] = None,
    ):
        super().__init__(db, clock)
        self.booking_service = booking_service or BookingService(db, clock, gateway=gateway)
        self.repository = self.booking_service.repository
        self.user_repository = RepositoryFactory.create_user_repository(db)

    def list_disputes(self, admin: User) -> List[Booking]:
        _require_admin(admin)
        return self.repository.list_disputes()

    @BaseService.measure_operation("mark_disputed")
    def mark_disputed(self, booking_id: str, admin: User, note: Optional[str] = None) -> Booking:
        _require_admin(admin)
        booking = self.booking_service.get_booking(booking_id)
        with self.transaction():
            self.booking_service.apply_transition(
                booking, BookingStatus.DISPUTED, BookingActor.ADMIN, user_id=admin.id, note=note
            )
        return booking

    @BaseService.measure_operation("resolve_dispute")
    def resolve_dispute(
        self,
        booking_id: str,
        admin: User,
        resolution: str,
        refund_amount: Optional[Decimal] = None,
        note: Optional[str] = None,
    ) -> Booking:
        """
        Close a dispute in favour of one party.

        ``refund_customer`` cancels the booking and refunds up to the frozen
        total; a captured payment is refunded through the gateway before any
        row changes. ``favor_provider`` completes the booking. Both resolve
        an active emergency alert.
        """
        _require_admin(admin)
        try:
            outcome = DisputeResolution(resolution)
        except ValueError:
            raise ValidationException(
                "Resolution must be 'refund_customer' or 'favor_provider'",
                code="INVALID_RESOLUTION",
            )
        booking = self.booking_service.get_booking(booking_id)
        target = (
            BookingStatus.CANCELLED
            if outcome == DisputeResolution.REFUND_CUSTOMER
            else BookingStatus.COMPLETED
        )
        assert_transition(booking.status, target.value, BookingActor.ADMIN)

        if outcome == DisputeResolution.FAVOR_PROVIDER:
            with self.transaction():
                now = self.now()
                if booking.actual_completion is None:
                    booking.actual_completion = now
                self.booking_service.apply_transition(
                    booking, target, BookingActor.ADMIN, user_id=admin.id, note=note
                )
                self._resolve_alert(booking)
                self.booking_service.enqueue_outbox_event(
                    booking, outbox_events.BOOKING_COMPLETED, admin.id
                )
            self.logger.info("Dispute on %s resolved for provider", booking.booking_number)
            return booking

        total = Decimal(str(booking.total))
        requested = total if refund_amount is None else quantize(Decimal(str(refund_amount)))
        if requested < 0:
            raise ValidationException("Refund amount cannot be negative", code="NEGATIVE_REFUND")

        # Only captured money can be returned; an unpaid booking is cancelled with nothing owed
        payment = booking.payment
        was_paid = payment is not None and payment.is_captured
        amount = min(requested, total) if was_paid else Decimal("0.00")
        refund = self.booking_service.refund_captured_payment(
            booking, amount, {"booking_id": booking.id, "resolved_by": admin.id}
        )

        with self.transaction():
            self.booking_service.apply_transition(
                booking, target, BookingActor.ADMIN, user_id=admin.id, note=note or ADMIN_REFUND_REASON
            )
            self.booking_service.record_cancellation(
                booking,
                admin.id,
                ADMIN_REFUND_REASON,
                amount,
                RefundStatus.COMPLETED if refund is not None else RefundStatus.NONE,
            )
            self._resolve_alert(booking)
            self.booking_service.enqueue_outbox_event(
                booking, outbox_events.BOOKING_CANCELLED, admin.id
            )
            self.booking_service.settle_cancelled_payment(booking, amount, refund, admin.id)

        self.logger.info(
            "Dispute on %s resolved with customer refund of %s", booking.booking_number, amount
        )
        return booking

    def _resolve_alert(self, booking: Booking) -> None:
        alert = booking.emergency_alert
        if alert is not None and alert.is_active:
            alert.resolve(self.now())
        self.repository.flush()

    @BaseService.measure_operation("set_background_check")
    def set_background_check(self, provider_id: str, status: str, admin: User) -> User:
        _require_admin(admin)
        try:
            check = BackgroundCheckStatus(status)
        except ValueError:
            raise ValidationException(f"Unknown background check status: {status}", code="INVALID_STATUS")
        provider = self.user_repository.get_provider(provider_id)
        if provider is None or provider.provider_profile is None:
            raise NotFoundException("Provider not found", code="PROVIDER_NOT_FOUND")
        with self.transaction():
            provider.provider_profile.set_background_check(check)
            self.user_repository.flush()
        return provider

    def set_user_active(self, user_id: str, is_active: bool, admin: User) -> User:
        _require_admin(admin)
        if user_id == admin.id and not is_active:
            raise ValidationException("Admins cannot deactivate themselves", code="SELF_DEACTIVATION")
        user = self.user_repository.get_by_id(user_id)
        if user is None:
            raise NotFoundException("User not found", code="USER_NOT_FOUND")
        with self.transaction():
            user.is_active = is_active
            self.user_repository.flush()
        self.logger.info("User %s active=%s set by admin %s", user.id, is_active, admin.id)
        return user
