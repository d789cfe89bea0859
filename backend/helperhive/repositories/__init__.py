"""
Repository layer for HelperHive.

Usage:
    from helperhive.repositories import RepositoryFactory

    bookings = RepositoryFactory.create_booking_repository(db)
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .event_outbox_repository import EventOutboxRepository
from .factory import RepositoryFactory
from .message_repository import MessageRepository
from .service_repository import ServiceRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "EventOutboxRepository",
    "MessageRepository",
    "RepositoryFactory",
    "ServiceRepository",
    "UserRepository",
]
