"""
Real-time channel events.

Builders return the events a booking change should fan out; routes hand
them to the publisher after the database work has committed.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..models.booking import Booking
from ..models.message import BookingMessage

NEW_BOOKING = "new_booking"
BOOKING_RESPONSE = "booking_response"
BOOKING_STATUS_CHANGED = "booking_status_changed"
PROVIDER_LOCATION = "provider_location"
NEW_MESSAGE = "new_message"
EMERGENCY_BROADCAST = "emergency_broadcast"
PAYMENT_CONFIRMED = "payment_confirmed"
BOOKING_CANCELLED = "booking_cancelled"


def booking_channel(booking_id: str) -> str:
    return f"booking_{booking_id}"


def provider_channel(user_id: str) -> str:
    return f"provider_{user_id}"


def customer_channel(user_id: str) -> str:
    return f"customer_{user_id}"


def user_channel(user_id: str) -> str:
    return f"user_{user_id}"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class RealtimeEvent:
    channel: str
    type: str
    payload: Dict[str, Any]
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_message(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("channel")
        return data


def _booking_summary(booking: Booking) -> Dict[str, Any]:
    return {
        "booking_id": booking.id,
        "booking_number": booking.booking_number,
        "status": booking.status,
        "service_name": booking.service_name,
        "scheduled_date": booking.scheduled_date.isoformat(),
        "start_time": booking.start_time.strftime("%H:%M"),
    }


def booking_created(booking: Booking) -> List[RealtimeEvent]:
    return [RealtimeEvent(provider_channel(booking.provider_id), NEW_BOOKING, _booking_summary(booking))]


def booking_responded(booking: Booking, action: str) -> List[RealtimeEvent]:
    payload = {**_booking_summary(booking), "action": action}
    return [RealtimeEvent(customer_channel(booking.customer_id), BOOKING_RESPONSE, payload)]


def status_changed(booking: Booking, updated_by_id: str) -> List[RealtimeEvent]:
    payload = {
        **_booking_summary(booking),
        "updated_by": updated_by_id,
        "estimated_arrival": _iso(booking.estimated_arrival),
        "actual_arrival": _iso(booking.actual_arrival),
        "actual_completion": _iso(booking.actual_completion),
    }
    return [RealtimeEvent(booking_channel(booking.id), BOOKING_STATUS_CHANGED, payload)]


def provider_location(booking: Booking) -> List[RealtimeEvent]:
    payload = {
        "booking_id": booking.id,
        "longitude": booking.current_longitude,
        "latitude": booking.current_latitude,
        "estimated_arrival": _iso(booking.estimated_arrival),
    }
    return [RealtimeEvent(booking_channel(booking.id), PROVIDER_LOCATION, payload)]


def new_message(message: BookingMessage) -> List[RealtimeEvent]:
    payload = {
        "booking_id": message.booking_id,
        "message_id": message.id,
        "sender_id": message.sender_id,
        "content": message.content,
        "message_type": message.message_type,
        "created_at": _iso(message.created_at),
    }
    return [RealtimeEvent(booking_channel(message.booking_id), NEW_MESSAGE, payload)]


def emergency(booking: Booking) -> List[RealtimeEvent]:
    alert = booking.emergency_alert
    payload = {
        "booking_id": booking.id,
        "booking_number": booking.booking_number,
        "triggered_by": alert.triggered_by_id if alert else None,
        "reason": alert.reason if alert else None,
        "triggered_at": _iso(alert.triggered_at) if alert else None,
    }
    return [RealtimeEvent(booking_channel(booking.id), EMERGENCY_BROADCAST, payload)]


def booking_cancelled(booking: Booking, cancelled_by_id: str) -> List[RealtimeEvent]:
    payload = {
        **_booking_summary(booking),
        "cancelled_by": cancelled_by_id,
        "reason": booking.cancellation_reason,
        "refund_amount": str(booking.refund_amount) if booking.refund_amount is not None else None,
        "refund_status": booking.refund_status,
    }
    other = booking.other_party_id(cancelled_by_id)
    return [RealtimeEvent(user_channel(other), BOOKING_CANCELLED, payload)]


def payment_confirmed(booking: Booking) -> List[RealtimeEvent]:
    payload = {
        "booking_id": booking.id,
        "booking_number": booking.booking_number,
        "amount": str(booking.subtotal),
        "currency": booking.currency,
    }
    return [RealtimeEvent(provider_channel(booking.provider_id), PAYMENT_CONFIRMED, payload)]
