# backend/helperhive/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Tests override ``get_clock`` and ``get_stripe_gateway`` to pin time and
isolate the payment gateway.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.admin_service import AdminService
from ...services.auth_service import AuthService
from ...services.base import Clock, utc_now
from ...services.booking_service import BookingService
from ...services.catalog_service import CatalogService
from ...services.message_service import MessageService
from ...services.payment_service import PaymentService
from ...services.stripe_gateway import StripeGateway
from ...services.tracking_service import TrackingService
from ...services.user_service import UserService
from .database import get_db


def get_clock() -> Clock:
    return utc_now


@lru_cache(maxsize=1)
def get_stripe_gateway() -> StripeGateway:
    return StripeGateway()


def get_auth_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> AuthService:
    return AuthService(db, clock)


def get_user_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> UserService:
    return UserService(db, clock)


def get_catalog_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> CatalogService:
    return CatalogService(db, clock)


def get_booking_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> BookingService:
    return BookingService(db, clock, gateway=gateway)


def get_tracking_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> TrackingService:
    return TrackingService(db, clock)


def get_message_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> MessageService:
    return MessageService(db, clock)


def get_payment_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> PaymentService:
    return PaymentService(db, clock, gateway=gateway)


def get_admin_service(
    db: Session = Depends(get_db),
    booking_service: BookingService = Depends(get_booking_service),
    clock: Clock = Depends(get_clock),
) -> AdminService:
    return AdminService(db, clock, booking_service=booking_service)
