"""
Booking status transitions.

The table maps (from, to) pairs to the actors allowed to perform them.
Callers resolve the actor from the booking (customer party, provider
party, or admin) before asking for a transition.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Iterable, Tuple

from ..core.enums import BookingStatus
from ..core.exceptions import ForbiddenException, StateConflictException


class BookingActor(str, Enum):
    CUSTOMER = "customer"
    PROVIDER = "provider"
    ADMIN = "admin"


S = BookingStatus
CUSTOMER, PROVIDER, ADMIN = BookingActor.CUSTOMER, BookingActor.PROVIDER, BookingActor.ADMIN

TERMINAL: FrozenSet[BookingStatus] = frozenset({S.COMPLETED, S.CANCELLED, S.NO_SHOW})
NON_TERMINAL: Tuple[BookingStatus, ...] = tuple(s for s in BookingStatus if s not in TERMINAL)
CANCELLABLE: FrozenSet[BookingStatus] = frozenset({S.PENDING, S.CONFIRMED})

# Provider progress is forward-only along this order
PROGRESS_ORDER: Tuple[BookingStatus, ...] = (S.CONFIRMED, S.EN_ROUTE, S.IN_PROGRESS, S.COMPLETED)


def _build_transitions() -> Dict[Tuple[BookingStatus, BookingStatus], FrozenSet[BookingActor]]:
    table: Dict[Tuple[BookingStatus, BookingStatus], set] = {}

    def allow(sources: Iterable[BookingStatus], target: BookingStatus, *actors: BookingActor) -> None:
        for source in sources:
            table.setdefault((source, target), set()).update(actors)

    allow([S.PENDING], S.CONFIRMED, PROVIDER)
    allow(CANCELLABLE, S.CANCELLED, CUSTOMER, PROVIDER)

    for i, source in enumerate(PROGRESS_ORDER[:-1]):
        for target in PROGRESS_ORDER[i + 1 :]:
            allow([source], target, PROVIDER)

    allow([S.CONFIRMED, S.EN_ROUTE, S.IN_PROGRESS], S.NO_SHOW, PROVIDER)

    allow([s for s in NON_TERMINAL if s != S.DISPUTED], S.DISPUTED, ADMIN)
    allow(NON_TERMINAL, S.CANCELLED, ADMIN)
    allow(NON_TERMINAL, S.COMPLETED, ADMIN)

    return {key: frozenset(actors) for key, actors in table.items()}


TRANSITIONS = _build_transitions()


def is_terminal(status: str) -> bool:
    return BookingStatus(status) in TERMINAL


def can_transition(current: str, target: str, actor: BookingActor) -> bool:
    return actor in TRANSITIONS.get((BookingStatus(current), BookingStatus(target)), frozenset())


def assert_transition(current: str, target: str, actor: BookingActor) -> None:
    """
    Validate a transition without touching the booking.

    Raises:
        ForbiddenException: the actor can never move a booking to ``target``
        StateConflictException: the move is not valid from ``current``
    """
    source, destination = BookingStatus(current), BookingStatus(target)
    if not any(actor in actors for (_, to), actors in TRANSITIONS.items() if to == destination):
        raise ForbiddenException(
            f"A {actor.value} cannot set a booking to '{destination.value}'",
            code="TRANSITION_NOT_PERMITTED",
            details={"actor": actor.value, "target_status": destination.value},
        )
    if actor not in TRANSITIONS.get((source, destination), frozenset()):
        raise StateConflictException(
            f"Cannot change booking from '{source.value}' to '{destination.value}'",
            current_status=source.value,
            details={"target_status": destination.value},
        )


def assert_cancellable(current: str) -> None:
    if BookingStatus(current) not in CANCELLABLE:
        raise StateConflictException(
            f"Cannot cancel booking with status '{current}'",
            current_status=current,
            code="BOOKING_NOT_CANCELLABLE",
        )
