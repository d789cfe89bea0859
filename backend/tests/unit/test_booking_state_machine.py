"""Unit tests for the booking transition table."""

import pytest

from helperhive.core.enums import BookingStatus
from helperhive.core.exceptions import ForbiddenException, StateConflictException
from helperhive.services.booking_state_machine import (
    BookingActor,
    assert_cancellable,
    assert_transition,
    can_transition,
    is_terminal,
)

S = BookingStatus
CUSTOMER, PROVIDER, ADMIN = BookingActor.CUSTOMER, BookingActor.PROVIDER, BookingActor.ADMIN


class TestTransitions:
    def test_only_provider_confirms(self):
        assert can_transition("pending", "confirmed", PROVIDER)
        assert not can_transition("pending", "confirmed", CUSTOMER)
        assert not can_transition("pending", "confirmed", ADMIN)

    def test_customer_cannot_confirm(self):
        with pytest.raises(ForbiddenException):
            assert_transition("pending", "confirmed", CUSTOMER)

    def test_confirm_twice_is_state_conflict(self):
        with pytest.raises(StateConflictException) as exc_info:
            assert_transition("confirmed", "confirmed", PROVIDER)
        assert exc_info.value.details["current_status"] == "confirmed"

    @pytest.mark.parametrize(
        "source, target",
        [
            ("confirmed", "en-route"),
            ("confirmed", "in-progress"),
            ("en-route", "in-progress"),
            ("en-route", "completed"),
            ("in-progress", "completed"),
            ("in-progress", "no-show"),
        ],
    )
    def test_provider_progress_forward(self, source, target):
        assert_transition(source, target, PROVIDER)

    def test_progress_never_goes_backwards(self):
        with pytest.raises(StateConflictException):
            assert_transition("in-progress", "en-route", PROVIDER)

    def test_pending_cannot_jump_to_en_route(self):
        with pytest.raises(StateConflictException):
            assert_transition("pending", "en-route", PROVIDER)

    def test_parties_cancel_only_pending_or_confirmed(self):
        assert can_transition("pending", "cancelled", CUSTOMER)
        assert can_transition("confirmed", "cancelled", PROVIDER)
        assert not can_transition("en-route", "cancelled", CUSTOMER)

    def test_admin_dispute_and_resolution(self):
        assert can_transition("in-progress", "disputed", ADMIN)
        assert can_transition("disputed", "completed", ADMIN)
        assert can_transition("disputed", "cancelled", ADMIN)
        assert not can_transition("disputed", "disputed", ADMIN)

    @pytest.mark.parametrize("terminal", ["completed", "cancelled", "no-show"])
    def test_terminal_states_are_final(self, terminal):
        assert is_terminal(terminal)
        for target in BookingStatus:
            for actor in BookingActor:
                assert not can_transition(terminal, target.value, actor)


def test_assert_cancellable():
    assert_cancellable("pending")
    assert_cancellable("confirmed")
    with pytest.raises(StateConflictException) as exc_info:
        assert_cancellable("in-progress")
    assert exc_info.value.code == "BOOKING_NOT_CANCELLABLE"
