"""
Database models for the HelperHive platform.

Importing this package registers every table on ``Base.metadata``.
"""

from .booking import Booking, BookingStatusHistory
from .booking_emergency import BookingEmergencyAlert
from .booking_payment import BookingPayment
from .event_outbox import EventOutbox, EventOutboxStatus
from .message import BookingMessage
from .profile import CustomerProfile, ProviderProfile, provider_services
from .service import Service
from .user import User

__all__ = [
    "Booking",
    "BookingEmergencyAlert",
    "BookingMessage",
    "BookingPayment",
    "BookingStatusHistory",
    "CustomerProfile",
    "EventOutbox",
    "EventOutboxStatus",
    "ProviderProfile",
    "Service",
    "User",
    "provider_services",
]
