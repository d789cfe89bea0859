"""Booking lifecycle tests against a real SQLite session."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from helperhive.core.enums import BackgroundCheckStatus, BookingStatus, RefundStatus
from helperhive.core.exceptions import (
    BookingAlreadyCancelledException,
    BusinessRuleException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
    PaymentGatewayException,
    StateConflictException,
    ValidationException,
)
from helperhive.events import outbox_events
from helperhive.models.event_outbox import EventOutbox
from helperhive.schemas.booking import BookingStatusUpdate, LocationIn
from helperhive.services.booking_service import BookingService, generate_booking_number
from helperhive.services.payment_service import PaymentService
from helperhive.services.stripe_gateway import GatewayRefund, StripeGateway

from ..factories import builders


@pytest.fixture
def booking_service(db, clock):
    return BookingService(db, clock)


def _outbox_types(db, booking_id):
    rows = db.execute(select(EventOutbox).where(EventOutbox.aggregate_id == booking_id)).scalars()
    return sorted(row.event_type for row in rows)


class TestCreateBooking:
    def test_price_snapshot(self, booking_service, test_customer, test_provider, test_service, clock):
        booking = booking_service.create_booking(
            test_customer, builders.booking_request(test_provider, test_service, clock=clock)
        )

        assert booking.status == "pending"
        assert booking.base_price == Decimal("400.00")
        assert booking.add_ons_total == Decimal("100.00")
        assert booking.subtotal == Decimal("500.00")
        assert booking.platform_fee == Decimal("50.00")
        assert booking.total == Decimal("550.00")
        assert booking.payment.status == "pending"
        assert booking.status_history == []
        assert booking.booking_number.startswith("HH-20260302-")
        assert booking.end_time.hour == booking.start_time.hour + 2

    def test_snapshot_survives_service_price_change(
        self, db, booking_service, test_booking, test_service
    ):
        test_service.base_price = Decimal("900.00")
        db.commit()

        reloaded = booking_service.get_booking(test_booking.id)
        assert reloaded.total == Decimal("550.00")

    @pytest.mark.parametrize(
        "column, value",
        [("total", Decimal("600.00")), ("subtotal", Decimal("450.00")), ("platform_fee", Decimal("60.00"))],
    )
    def test_price_columns_must_add_up(self, db, test_booking, column, value):
        setattr(test_booking, column, value)
        with pytest.raises(IntegrityError):
            db.flush()
        db.rollback()

    def test_created_event_in_outbox(self, db, test_booking):
        assert _outbox_types(db, test_booking.id) == [outbox_events.BOOKING_CREATED]

    def test_customer_profile_counter(self, test_booking, test_customer):
        assert test_customer.customer_profile.total_bookings == 1

    def test_provider_cannot_book(self, booking_service, test_provider, test_service, clock):
        with pytest.raises(ForbiddenException):
            booking_service.create_booking(
                test_provider, builders.booking_request(test_provider, test_service, clock=clock)
            )

    def test_unverified_customer_rejected(self, db, booking_service, test_provider, test_service, clock):
        customer = builders.create_customer(db, email="new@example.com", verified=False)
        with pytest.raises(ForbiddenException) as exc_info:
            booking_service.create_booking(
                customer, builders.booking_request(test_provider, test_service, clock=clock)
            )
        assert exc_info.value.code == "ACCOUNT_NOT_VERIFIED"

    def test_unapproved_provider_rejected(self, db, booking_service, test_customer, test_service, clock):
        pending = builders.create_provider(
            db, email="pending@example.com", bgc=BackgroundCheckStatus.PENDING
        )
        builders.offer_service(db, pending, test_service)
        with pytest.raises(BusinessRuleException) as exc_info:
            booking_service.create_booking(
                test_customer, builders.booking_request(pending, test_service, clock=clock)
            )
        assert exc_info.value.code == "PROVIDER_UNAVAILABLE"

    def test_service_not_offered(self, db, booking_service, test_customer, test_provider, clock):
        other = builders.create_service(db, name="Dog Walk", category="pet-care")
        with pytest.raises(BusinessRuleException) as exc_info:
            booking_service.create_booking(
                test_customer, builders.booking_request(test_provider, other, clock=clock)
            )
        assert exc_info.value.code == "SERVICE_NOT_OFFERED"

    def test_province_not_served(self, booking_service, test_customer, test_provider, test_service, clock):
        request = builders.booking_request(
            test_provider, test_service, clock=clock, province="Limpopo"
        )
        with pytest.raises(BusinessRuleException) as exc_info:
            booking_service.create_booking(test_customer, request)
        assert exc_info.value.code == "PROVINCE_NOT_SERVED"

    def test_insufficient_notice(self, booking_service, test_customer, test_provider, test_service, clock):
        request = builders.booking_request(test_provider, test_service, clock=clock, hours_ahead=1)
        with pytest.raises(BusinessRuleException) as exc_info:
            booking_service.create_booking(test_customer, request)
        assert exc_info.value.code == "INSUFFICIENT_NOTICE"

    def test_unknown_add_on(self, booking_service, test_customer, test_provider, test_service, clock):
        request = builders.booking_request(
            test_provider, test_service, clock=clock, add_ons=[{"name": "Pool", "price": "50"}]
        )
        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(test_customer, request)
        assert exc_info.value.code == "UNKNOWN_ADD_ON"

    def test_negative_add_on_price(self, booking_service, test_customer, test_provider, test_service, clock):
        request = builders.booking_request(
            test_provider, test_service, clock=clock, add_ons=[{"name": "Windows", "price": "-80"}]
        )
        with pytest.raises(ValidationException):
            booking_service.create_booking(test_customer, request)

    def test_missing_service(self, booking_service, test_customer, test_provider, test_service, clock):
        request = builders.booking_request(test_provider, test_service, clock=clock)
        request.service_id = "01HZZZZZZZZZZZZZZZZZZZZZZZ"
        with pytest.raises(NotFoundException):
            booking_service.create_booking(test_customer, request)


def test_booking_number_format():
    from datetime import date

    number = generate_booking_number(date(2026, 3, 2))
    prefix, day, suffix = number.split("-")
    assert prefix == "HH"
    assert day == "20260302"
    assert len(suffix) == 5 and suffix.isdigit()


class TestRespond:
    def test_accept_confirms(self, db, booking_service, test_booking, test_provider):
        booking = booking_service.respond(test_booking.id, test_provider, "accept")

        assert booking.status == "confirmed"
        assert [h.status for h in booking.status_history] == ["confirmed"]
        assert outbox_events.BOOKING_CONFIRMED in _outbox_types(db, booking.id)

    def test_reject_cancels_without_refund(self, booking_service, test_booking, test_provider):
        booking = booking_service.respond(test_booking.id, test_provider, "reject", "Fully booked")

        assert booking.status == "cancelled"
        assert booking.cancellation_reason == "Fully booked"
        assert booking.refund_amount == Decimal("0.00")
        assert booking.refund_status == RefundStatus.NONE.value
        assert booking.payment.status == "pending"
        assert booking.payment.payout_status == "cancelled"

    def test_reject_paid_booking_refunds_total(self, db, booking_service, test_customer, test_provider, test_service, clock):
        booking = builders.create_booking(
            db, test_customer, test_provider, test_service, clock=clock, paid=True
        )

        rejected = booking_service.respond(booking.id, test_provider, "reject")

        assert rejected.refund_amount == Decimal("550.00")
        assert rejected.refund_status == RefundStatus.FULL.value
        assert rejected.payment.status == "refunded"
        assert rejected.payment.refunded_amount == Decimal("550.00")
        assert rejected.payment.refund_id == f"mock_re_pi_test_{booking.id}"
        assert rejected.payment.payout_status == "cancelled"
        assert outbox_events.PAYMENT_REFUNDED in _outbox_types(db, booking.id)

    def test_confirm_twice_conflicts(self, booking_service, test_booking, test_provider):
        booking_service.respond(test_booking.id, test_provider, "accept")
        with pytest.raises(StateConflictException):
            booking_service.respond(test_booking.id, test_provider, "accept")
        assert booking_service.get_booking(test_booking.id).status == "confirmed"

    def test_non_provider_forbidden(self, booking_service, test_booking, test_customer):
        with pytest.raises(ForbiddenException):
            booking_service.respond(test_booking.id, test_customer, "accept")
        assert booking_service.get_booking(test_booking.id).status == "pending"


class TestUpdateStatus:
    def _confirm(self, booking_service, booking, provider):
        booking_service.respond(booking.id, provider, "accept")

    def test_progress_to_completion(self, booking_service, test_booking, test_provider, clock):
        self._confirm(booking_service, test_booking, test_provider)
        booking_service.update_status(
            test_booking.id,
            test_provider,
            BookingStatusUpdate(status="en-route", location=LocationIn(longitude=28.05, latitude=-26.2)),
        )
        booking = booking_service.get_booking(test_booking.id)
        assert booking.status == "en-route"
        assert booking.current_latitude == -26.2

        booking_service.update_status(test_booking.id, test_provider, BookingStatusUpdate(status="in-progress"))
        booking = booking_service.update_status(
            test_booking.id, test_provider, BookingStatusUpdate(status="completed")
        )
        assert booking.status == "completed"
        assert booking.actual_arrival is not None
        assert booking.actual_completion is not None
        assert test_provider.provider_profile.completed_jobs == 1

    def test_backwards_rejected(self, booking_service, test_booking, test_provider):
        self._confirm(booking_service, test_booking, test_provider)
        booking_service.update_status(test_booking.id, test_provider, BookingStatusUpdate(status="in-progress"))
        with pytest.raises(StateConflictException):
            booking_service.update_status(
                test_booking.id, test_provider, BookingStatusUpdate(status="en-route")
            )

    def test_pending_cannot_progress(self, booking_service, test_booking, test_provider):
        with pytest.raises(StateConflictException):
            booking_service.update_status(
                test_booking.id, test_provider, BookingStatusUpdate(status="en-route")
            )

    def test_customer_cannot_update(self, booking_service, test_booking, test_customer):
        with pytest.raises(ForbiddenException):
            booking_service.update_status(
                test_booking.id, test_customer, BookingStatusUpdate(status="en-route")
            )


class TestCancelBooking:
    def test_customer_cancel_48h_full_refund(self, db, booking_service, test_booking, test_customer):
        booking = booking_service.cancel_booking(test_booking.id, test_customer, "Plans changed")

        assert booking.status == "cancelled"
        assert booking.refund_amount == Decimal("550.00")
        assert booking.refund_status == "full"
        assert booking.cancelled_by_id == test_customer.id
        assert outbox_events.BOOKING_CANCELLED in _outbox_types(db, booking.id)

    def test_cancel_10h_partial(self, db, booking_service, test_customer, test_provider, test_service, clock):
        booking = builders.create_booking(
            db, test_customer, test_provider, test_service, clock=clock, hours_ahead=10
        )
        cancelled = booking_service.cancel_booking(booking.id, test_customer)
        assert cancelled.refund_amount == Decimal("275.00")
        assert cancelled.refund_status == "partial"
        assert cancelled.cancellation_reason

    def test_cancel_1h_no_refund(self, db, test_customer, test_provider, clock):
        service = builders.create_service(db, name="Quick Fix", minimum_advance_booking_hours=0)
        builders.offer_service(db, test_provider, service)
        booking = builders.create_booking(
            db, test_customer, test_provider, service, clock=clock, hours_ahead=1
        )
        cancelled = BookingService(db, clock).cancel_booking(booking.id, test_provider)
        assert cancelled.refund_amount == Decimal("0.00")
        assert cancelled.refund_status == "none"

    def test_cancel_paid_booking_refunds_through_gateway(self, db, booking_service, test_customer, test_provider, test_service, clock, test_admin):
        booking = builders.create_booking(
            db,
            test_customer,
            test_provider,
            test_service,
            clock=clock,
            status=BookingStatus.CONFIRMED,
            paid=True,
        )

        cancelled = booking_service.cancel_booking(booking.id, test_customer, "Plans changed")

        assert cancelled.refund_amount == Decimal("550.00")
        assert cancelled.refund_status == "full"
        assert cancelled.payment.status == "refunded"
        assert cancelled.payment.refunded_amount == Decimal("550.00")
        assert cancelled.payment.refund_id == f"mock_re_pi_test_{booking.id}"
        assert cancelled.payment.payout_status == "cancelled"
        assert outbox_events.PAYMENT_REFUNDED in _outbox_types(db, booking.id)
        with pytest.raises(StateConflictException) as exc_info:
            PaymentService(db, clock).mark_payout_completed(booking.id, test_admin)
        assert exc_info.value.code == "BOOKING_NOT_COMPLETED"

    def test_cancel_paid_booking_refunds_tier_amount(self, db, test_customer, test_provider, test_service, clock):
        booking = builders.create_booking(
            db, test_customer, test_provider, test_service, clock=clock, hours_ahead=10, paid=True
        )
        gateway = MagicMock(spec=StripeGateway)
        gateway.create_refund.return_value = GatewayRefund(id="re_half", status="succeeded", amount=27500)

        cancelled = BookingService(db, clock, gateway=gateway).cancel_booking(booking.id, test_customer)

        kwargs = gateway.create_refund.call_args.kwargs
        assert kwargs["payment_intent_id"] == f"pi_test_{booking.id}"
        assert kwargs["amount_cents"] == 27500
        assert cancelled.refund_status == "partial"
        assert cancelled.payment.refunded_amount == Decimal("275.00")
        assert cancelled.payment.refund_id == "re_half"

    def test_cancel_paid_booking_without_refund_stops_payout(self, db, test_customer, test_provider, clock):
        service = builders.create_service(db, name="Quick Fix", minimum_advance_booking_hours=0)
        builders.offer_service(db, test_provider, service)
        booking = builders.create_booking(
            db, test_customer, test_provider, service, clock=clock, hours_ahead=1, paid=True
        )
        gateway = MagicMock(spec=StripeGateway)

        cancelled = BookingService(db, clock, gateway=gateway).cancel_booking(booking.id, test_provider)

        gateway.create_refund.assert_not_called()
        assert cancelled.refund_status == "none"
        assert cancelled.payment.status == "completed"
        assert cancelled.payment.payout_status == "cancelled"

    def test_cancel_gateway_failure_keeps_booking(self, db, test_customer, test_provider, test_service, clock):
        booking = builders.create_booking(
            db,
            test_customer,
            test_provider,
            test_service,
            clock=clock,
            status=BookingStatus.CONFIRMED,
            paid=True,
        )
        gateway = MagicMock(spec=StripeGateway)
        gateway.create_refund.side_effect = PaymentGatewayException("refund failed")

        with pytest.raises(PaymentGatewayException):
            BookingService(db, clock, gateway=gateway).cancel_booking(booking.id, test_customer)

        assert booking.status == "confirmed"
        assert booking.cancelled_at is None
        assert booking.payment.status == "completed"
        assert booking.payment.payout_status == "scheduled"

    def test_cancel_twice_fails(self, booking_service, test_booking, test_customer):
        booking_service.cancel_booking(test_booking.id, test_customer)
        with pytest.raises(BookingAlreadyCancelledException):
            booking_service.cancel_booking(test_booking.id, test_customer)

    def test_in_progress_not_cancellable(self, db, booking_service, test_booking, test_customer):
        test_booking.status = BookingStatus.IN_PROGRESS.value
        db.commit()
        with pytest.raises(StateConflictException):
            booking_service.cancel_booking(test_booking.id, test_customer)

    def test_non_party_forbidden(self, booking_service, test_booking, other_customer):
        with pytest.raises(ForbiddenException):
            booking_service.cancel_booking(test_booking.id, other_customer)


class TestEmergencyAndReviews:
    def test_emergency_alert(self, booking_service, test_booking, test_customer):
        booking = booking_service.trigger_emergency(test_booking.id, test_customer, "Gas smell")
        assert booking.emergency_alert.is_active
        assert booking.emergency_alert.reason == "Gas smell"

    def test_emergency_non_party(self, booking_service, test_booking, other_customer):
        with pytest.raises(ForbiddenException):
            booking_service.trigger_emergency(test_booking.id, other_customer)

    def test_review_requires_completion(self, booking_service, test_booking, test_customer):
        with pytest.raises(StateConflictException):
            booking_service.submit_review(test_booking.id, test_customer, 5)

    def test_customer_review_updates_rating(
        self, db, booking_service, test_booking, test_customer, test_provider
    ):
        test_booking.status = BookingStatus.COMPLETED.value
        db.commit()

        booking = booking_service.submit_review(test_booking.id, test_customer, 4, " Great ")
        assert booking.customer_rating == 4
        assert booking.customer_comment == "Great"
        assert test_provider.provider_profile.rating_average == 4.0
        assert test_provider.provider_profile.rating_count == 1

        with pytest.raises(ConflictException):
            booking_service.submit_review(test_booking.id, test_customer, 5)


class TestListBookings:
    def test_party_views(self, booking_service, test_booking, test_customer, test_provider, other_customer):
        assert booking_service.list_bookings(test_customer)[1] == 1
        assert booking_service.list_bookings(test_provider)[1] == 1
        assert booking_service.list_bookings(other_customer)[1] == 0

    def test_status_filter(self, booking_service, test_booking, test_customer):
        assert booking_service.list_bookings(test_customer, "confirmed")[1] == 0
        assert booking_service.list_bookings(test_customer, "pending")[1] == 1

    def test_unknown_status(self, booking_service, test_customer):
        with pytest.raises(ValidationException):
            booking_service.list_bookings(test_customer, "lost")
