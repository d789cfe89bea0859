"""AdminService: disputes, dispute resolution and account moderation."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from helperhive.core.enums import BookingStatus
from helperhive.core.exceptions import (
    ForbiddenException,
    NotFoundException,
    PaymentGatewayException,
    StateConflictException,
    ValidationException,
)
from helperhive.models.event_outbox import EventOutbox
from helperhive.services.admin_service import AdminService
from helperhive.services.stripe_gateway import StripeGateway

from ..factories import builders


@pytest.fixture
def admin_service(db, clock):
    return AdminService(db, clock)


@pytest.fixture
def disputed_paid_booking(db, clock, test_customer, test_provider, test_service):
    return builders.create_booking(
        db,
        test_customer,
        test_provider,
        test_service,
        clock=clock,
        status=BookingStatus.DISPUTED,
        paid=True,
    )


class TestDisputes:
    def test_mark_disputed(self, admin_service, test_booking, test_admin):
        booking = admin_service.mark_disputed(test_booking.id, test_admin, note="Customer complaint")
        assert booking.status == "disputed"

    def test_non_admin_cannot_dispute(self, admin_service, test_booking, test_customer):
        with pytest.raises(ForbiddenException) as exc_info:
            admin_service.mark_disputed(test_booking.id, test_customer)
        assert exc_info.value.code == "ADMIN_ONLY"

    def test_terminal_booking_cannot_be_disputed(self, admin_service, test_booking, test_admin, test_customer):
        admin_service.booking_service.cancel_booking(test_booking.id, test_customer)
        with pytest.raises(StateConflictException):
            admin_service.mark_disputed(test_booking.id, test_admin)

    def test_list_includes_emergencies(self, admin_service, db, clock, test_booking, test_admin, test_customer, test_provider, test_service):
        other = builders.create_booking(db, test_customer, test_provider, test_service, clock=clock)
        admin_service.mark_disputed(test_booking.id, test_admin)
        admin_service.booking_service.trigger_emergency(other.id, test_customer, "No show")

        ids = {b.id for b in admin_service.list_disputes(test_admin)}
        assert ids == {test_booking.id, other.id}


class TestResolveDispute:
    def test_favor_provider_completes(self, admin_service, disputed_paid_booking, test_admin, test_customer):
        admin_service.booking_service.trigger_emergency(disputed_paid_booking.id, test_customer)

        booking = admin_service.resolve_dispute(disputed_paid_booking.id, test_admin, "favor_provider")

        assert booking.status == "completed"
        assert booking.actual_completion is not None
        assert booking.emergency_alert.is_active is False
        assert booking.emergency_alert.resolved is True
        assert booking.payment.status == "completed"

    def test_refund_customer_full_total(self, admin_service, disputed_paid_booking, test_admin):
        booking = admin_service.resolve_dispute(disputed_paid_booking.id, test_admin, "refund_customer")

        assert booking.status == "cancelled"
        assert booking.refund_amount == Decimal("550.00")
        assert booking.refund_status == "completed"
        assert booking.payment.status == "refunded"
        assert booking.payment.refund_id == f"mock_re_pi_test_{booking.id}"
        assert booking.payment.payout_status == "cancelled"

    def test_refund_capped_at_total(self, admin_service, disputed_paid_booking, test_admin):
        booking = admin_service.resolve_dispute(
            disputed_paid_booking.id, test_admin, "refund_customer", refund_amount=Decimal("9999")
        )
        assert booking.refund_amount == Decimal("550.00")

    def test_partial_refund(self, admin_service, disputed_paid_booking, test_admin):
        booking = admin_service.resolve_dispute(
            disputed_paid_booking.id, test_admin, "refund_customer", refund_amount=Decimal("200")
        )
        assert booking.refund_amount == Decimal("200.00")
        assert booking.payment.refunded_amount == Decimal("200.00")

    def test_zero_refund_keeps_capture_but_cancels_payout(self, admin_service, disputed_paid_booking, test_admin):
        booking = admin_service.resolve_dispute(
            disputed_paid_booking.id, test_admin, "refund_customer", refund_amount=Decimal("0")
        )
        assert booking.refund_amount == Decimal("0.00")
        assert booking.refund_status == "none"
        assert booking.payment.status == "completed"
        assert booking.payment.payout_status == "cancelled"

    def test_negative_refund_rejected(self, admin_service, disputed_paid_booking, test_admin):
        with pytest.raises(ValidationException) as exc_info:
            admin_service.resolve_dispute(
                disputed_paid_booking.id, test_admin, "refund_customer", refund_amount=Decimal("-1")
            )
        assert exc_info.value.code == "NEGATIVE_REFUND"

    def test_unknown_resolution(self, admin_service, disputed_paid_booking, test_admin):
        with pytest.raises(ValidationException) as exc_info:
            admin_service.resolve_dispute(disputed_paid_booking.id, test_admin, "split")
        assert exc_info.value.code == "INVALID_RESOLUTION"

    def test_unpaid_refund_skips_gateway(self, db, clock, test_booking, test_admin):
        gateway = MagicMock(spec=StripeGateway)
        service = AdminService(db, clock, gateway=gateway)

        booking = service.resolve_dispute(test_booking.id, test_admin, "refund_customer")

        gateway.create_refund.assert_not_called()
        assert booking.status == "cancelled"
        assert booking.refund_amount == Decimal("0.00")
        assert booking.refund_status == "none"
        assert booking.payment.status == "pending"
        assert booking.payment.refunded_amount is None
        assert booking.payment.refund_id is None
        assert booking.payment.payout_status == "cancelled"

    def test_gateway_failure_leaves_dispute_open(self, db, clock, disputed_paid_booking, test_admin):
        gateway = MagicMock(spec=StripeGateway)
        gateway.create_refund.side_effect = PaymentGatewayException("declined")
        service = AdminService(db, clock, gateway=gateway)

        with pytest.raises(PaymentGatewayException):
            service.resolve_dispute(disputed_paid_booking.id, test_admin, "refund_customer")
        assert disputed_paid_booking.status == "disputed"
        assert disputed_paid_booking.payment.status == "completed"

    def test_resolution_writes_outbox(self, db, admin_service, disputed_paid_booking, test_admin):
        admin_service.resolve_dispute(disputed_paid_booking.id, test_admin, "refund_customer")
        event_types = [
            row.event_type
            for row in db.query(EventOutbox).filter_by(aggregate_id=disputed_paid_booking.id)
        ]
        assert "booking.cancelled" in event_types


class TestModeration:
    def test_background_check(self, admin_service, test_provider, test_admin):
        provider = admin_service.set_background_check(test_provider.id, "rejected", test_admin)
        assert provider.provider_profile.background_check_status == "rejected"

    def test_background_check_unknown_status(self, admin_service, test_provider, test_admin):
        with pytest.raises(ValidationException):
            admin_service.set_background_check(test_provider.id, "maybe", test_admin)

    def test_background_check_for_customer(self, admin_service, test_customer, test_admin):
        with pytest.raises(NotFoundException):
            admin_service.set_background_check(test_customer.id, "approved", test_admin)

    def test_deactivate_user(self, admin_service, test_customer, test_admin):
        user = admin_service.set_user_active(test_customer.id, False, test_admin)
        assert user.is_active is False

    def test_admin_cannot_deactivate_self(self, admin_service, test_admin):
        with pytest.raises(ValidationException) as exc_info:
            admin_service.set_user_active(test_admin.id, False, test_admin)
        assert exc_info.value.code == "SELF_DEACTIVATION"

    def test_missing_user(self, admin_service, test_admin):
        with pytest.raises(NotFoundException):
            admin_service.set_user_active("01HZZZZZZZZZZZZZZZZZZZZZZZ", True, test_admin)
