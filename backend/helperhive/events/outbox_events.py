"""Booking notification events persisted to the outbox."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from ..models.booking import Booking

BOOKING_CREATED = "booking.created"
BOOKING_CONFIRMED = "booking.confirmed"
BOOKING_CANCELLED = "booking.cancelled"
BOOKING_COMPLETED = "booking.completed"
PAYMENT_CONFIRMED = "payment.confirmed"
PAYMENT_REFUNDED = "payment.refunded"

# Which party is notified for each event
RECIPIENT_ROLE = {
    BOOKING_CREATED: "provider",
    BOOKING_CONFIRMED: "customer",
    BOOKING_CANCELLED: "counterparty",
    BOOKING_COMPLETED: "customer",
    PAYMENT_CONFIRMED: "provider",
    PAYMENT_REFUNDED: "customer",
}


@dataclass
class BookingNotification:
    """Serialized into ``EventOutbox.payload``."""

    event_type: str
    booking_id: str
    booking_number: str
    customer_id: str
    provider_id: str
    service_name: str
    status: str
    scheduled_date: str
    start_time: str
    total: str
    actor_id: Optional[str] = None
    refund_amount: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_booking(
        cls, booking: Booking, event_type: str, actor_id: Optional[str] = None
    ) -> "BookingNotification":
        return cls(
            event_type=event_type,
            booking_id=booking.id,
            booking_number=booking.booking_number,
            customer_id=booking.customer_id,
            provider_id=booking.provider_id,
            service_name=booking.service_name,
            status=booking.status,
            scheduled_date=booking.scheduled_date.isoformat(),
            start_time=booking.start_time.strftime("%H:%M"),
            total=str(booking.total),
            actor_id=actor_id,
            refund_amount=str(booking.refund_amount) if booking.refund_amount is not None else None,
        )


def idempotency_key(booking: Booking, event_type: str) -> str:
    return f"booking:{booking.id}:{event_type}:{booking.status}"


def recipient_id(payload: Dict[str, Any]) -> str:
    """Resolve the user to notify from a stored payload."""
    role = RECIPIENT_ROLE.get(payload["event_type"], "customer")
    if role == "provider":
        return payload["provider_id"]
    if role == "counterparty":
        actor = payload.get("actor_id")
        return payload["provider_id"] if actor == payload["customer_id"] else payload["customer_id"]
    return payload["customer_id"]
