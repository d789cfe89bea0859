# backend/helperhive/repositories/factory.py
"""
Repository Factory for HelperHive

Centralized creation of repository instances so services share one
construction path.
"""

from sqlalchemy.orm import Session

from ..models.booking_emergency import BookingEmergencyAlert
from ..models.booking_payment import BookingPayment
from ..models.profile import CustomerProfile, ProviderProfile
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .event_outbox_repository import EventOutboxRepository
from .message_repository import MessageRepository
from .service_repository import ServiceRepository
from .user_repository import UserRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_base_repository(db: Session, model) -> BaseRepository:
        return BaseRepository(db, model)

    @staticmethod
    def create_booking_repository(db: Session) -> BookingRepository:
        return BookingRepository(db)

    @staticmethod
    def create_user_repository(db: Session) -> UserRepository:
        return UserRepository(db)

    @staticmethod
    def create_service_repository(db: Session) -> ServiceRepository:
        return ServiceRepository(db)

    @staticmethod
    def create_message_repository(db: Session) -> MessageRepository:
        return MessageRepository(db)

    @staticmethod
    def create_event_outbox_repository(db: Session) -> EventOutboxRepository:
        return EventOutboxRepository(db)

    @staticmethod
    def create_payment_repository(db: Session) -> BaseRepository[BookingPayment]:
        return BaseRepository(db, BookingPayment)

    @staticmethod
    def create_emergency_repository(db: Session) -> BaseRepository[BookingEmergencyAlert]:
        return BaseRepository(db, BookingEmergencyAlert)

    @staticmethod
    def create_provider_profile_repository(db: Session) -> BaseRepository[ProviderProfile]:
        return BaseRepository(db, ProviderProfile)

    @staticmethod
    def create_customer_profile_repository(db: Session) -> BaseRepository[CustomerProfile]:
        return BaseRepository(db, CustomerProfile)
