"""Booking chat and provider location tracking."""

from datetime import timedelta

import pytest

from helperhive.core.enums import BookingStatus
from helperhive.core.exceptions import (
    ForbiddenException,
    NotFoundException,
    StateConflictException,
    ValidationException,
)
from helperhive.services.message_service import MessageService
from helperhive.services.tracking_service import TrackingService

from ..factories import builders


@pytest.fixture
def message_service(db, clock):
    return MessageService(db, clock)


@pytest.fixture
def tracking_service(db, clock):
    return TrackingService(db, clock)


class TestMessages:
    def test_parties_exchange_messages_in_order(self, message_service, test_booking, test_customer, test_provider):
        message_service.send_message(test_booking.id, test_customer, "Gate code is 1234")
        message_service.send_message(test_booking.id, test_provider, "  Thanks, see you then  ")

        messages = message_service.list_messages(test_booking.id, test_customer)
        assert [m.content for m in messages] == ["Gate code is 1234", "Thanks, see you then"]
        assert messages[0].id < messages[1].id

    def test_completed_booking_still_accepts_messages(self, db, clock, message_service, test_customer, test_provider, test_service):
        booking = builders.create_booking(
            db, test_customer, test_provider, test_service, clock=clock, status=BookingStatus.COMPLETED
        )
        message = message_service.send_message(booking.id, test_customer, "Great job")
        assert message.booking_id == booking.id

    def test_outsider_cannot_write(self, message_service, test_booking, other_customer):
        with pytest.raises(ForbiddenException):
            message_service.send_message(test_booking.id, other_customer, "Hello")

    def test_admin_can_read_but_not_write(self, message_service, test_booking, test_customer, test_admin):
        message_service.send_message(test_booking.id, test_customer, "Hello")
        assert len(message_service.list_messages(test_booking.id, test_admin)) == 1
        with pytest.raises(ForbiddenException):
            message_service.send_message(test_booking.id, test_admin, "Hi")

    def test_blank_message_rejected(self, message_service, test_booking, test_customer):
        with pytest.raises(ValidationException) as exc_info:
            message_service.send_message(test_booking.id, test_customer, "   ")
        assert exc_info.value.code == "EMPTY_MESSAGE"

    def test_mark_read_only_touches_incoming(self, message_service, test_booking, test_customer, test_provider):
        message_service.send_message(test_booking.id, test_customer, "One")
        message_service.send_message(test_booking.id, test_customer, "Two")
        message_service.send_message(test_booking.id, test_provider, "Reply")

        assert message_service.mark_read(test_booking.id, test_provider) == 2
        messages = message_service.list_messages(test_booking.id, test_customer)
        assert [m.is_read for m in messages] == [True, True, False]

    def test_missing_booking(self, message_service, test_customer):
        with pytest.raises(NotFoundException):
            message_service.send_message("01HZZZZZZZZZZZZZZZZZZZZZZZ", test_customer, "Hi")


class TestTracking:
    def test_location_outside_window_rejected(self, tracking_service, test_booking, test_provider):
        with pytest.raises(StateConflictException) as exc_info:
            tracking_service.update_location(test_booking.id, test_provider, 28.04, -26.20)
        assert exc_info.value.code == "TRACKING_NOT_ALLOWED"
        assert test_booking.current_latitude is None

    def test_latest_position_overwrites(self, db, clock, tracking_service, test_customer, test_provider, test_service):
        booking = builders.create_booking(
            db, test_customer, test_provider, test_service, clock=clock, status=BookingStatus.EN_ROUTE
        )
        eta = clock() + timedelta(minutes=20)
        tracking_service.update_location(booking.id, test_provider, 28.01, -26.10, eta)
        tracking_service.update_location(booking.id, test_provider, 28.04, -26.20)

        assert booking.current_longitude == pytest.approx(28.04)
        assert booking.current_latitude == pytest.approx(-26.20)
        assert booking.location_updated_at is not None
        assert booking.estimated_arrival is not None

    def test_only_assigned_provider(self, db, clock, tracking_service, test_customer, test_provider, test_service):
        booking = builders.create_booking(
            db, test_customer, test_provider, test_service, clock=clock, status=BookingStatus.CONFIRMED
        )
        with pytest.raises(ForbiddenException):
            tracking_service.update_location(booking.id, test_customer, 28.0, -26.0)
