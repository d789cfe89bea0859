"""Builders for users, services and bookings used across the test suite."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
import itertools
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from helperhive.auth import get_password_hash
from helperhive.core.enums import BackgroundCheckStatus, BookingStatus, PaymentStatus, RoleName
from helperhive.models.booking import Booking
from helperhive.models.profile import CustomerProfile, ProviderProfile
from helperhive.models.service import Service
from helperhive.models.user import User
from helperhive.schemas.booking import AddOnIn, BookingCreate, ServiceLocationIn
from helperhive.services.base import Clock
from helperhive.services.booking_service import BookingService
from helperhive.services.timezone_service import TimezoneService

DEFAULT_PASSWORD = "TestPassword123!"

_phones = itertools.count(820000100)
_HASH_CACHE: Dict[str, str] = {}


def _hash(password: str) -> str:
    # One bcrypt hash per password per run
    if password not in _HASH_CACHE:
        _HASH_CACHE[password] = get_password_hash(password)
    return _HASH_CACHE[password]


def _next_phone() -> str:
    return f"+27{next(_phones)}"


def create_user(
    db: Session,
    *,
    role: RoleName,
    email: str,
    phone: Optional[str] = None,
    first_name: str = "Test",
    last_name: str = "User",
    verified: bool = True,
    password: str = DEFAULT_PASSWORD,
) -> User:
    user = User(
        email=email,
        phone=phone or _next_phone(),
        hashed_password=_hash(password),
        first_name=first_name,
        last_name=last_name,
        role=role.value,
        email_verified=verified,
        phone_verified=verified,
    )
    db.add(user)
    db.flush()
    return user


def create_customer(db: Session, **kwargs: Any) -> User:
    kwargs.setdefault("email", "customer@example.com")
    kwargs.setdefault("first_name", "Thandi")
    user = create_user(db, role=RoleName.CUSTOMER, **kwargs)
    user.customer_profile = CustomerProfile(user_id=user.id)
    db.commit()
    return user


def create_provider(
    db: Session,
    *,
    bgc: BackgroundCheckStatus = BackgroundCheckStatus.APPROVED,
    latitude: Optional[float] = -26.2041,
    longitude: Optional[float] = 28.0473,
    **kwargs: Any,
) -> User:
    kwargs.setdefault("email", "provider@example.com")
    kwargs.setdefault("first_name", "Sipho")
    user = create_user(db, role=RoleName.PROVIDER, **kwargs)
    user.provider_profile = ProviderProfile(
        user_id=user.id,
        background_check_status=bgc.value,
        hourly_rate=Decimal("250.00"),
        latitude=latitude,
        longitude=longitude,
    )
    db.commit()
    return user


def create_admin(db: Session, **kwargs: Any) -> User:
    kwargs.setdefault("email", "admin@example.com")
    user = create_user(db, role=RoleName.ADMIN, **kwargs)
    db.commit()
    return user


def create_service(
    db: Session,
    *,
    name: str = "Deep Clean",
    category: str = "cleaning",
    base_price: Decimal = Decimal("400.00"),
    provinces: Optional[List[str]] = None,
    add_ons: Optional[List[Dict[str, Any]]] = None,
    minimum_advance_booking_hours: int = 2,
) -> Service:
    service = Service(
        name=name,
        description=f"{name} service",
        category=category,
        base_price=base_price,
        duration_min_minutes=120,
        duration_max_minutes=180,
        available_provinces=provinces if provinces is not None else ["Gauteng", "Western Cape"],
        minimum_advance_booking_hours=minimum_advance_booking_hours,
        add_ons=add_ons
        if add_ons is not None
        else [{"name": "Inside oven", "price": "100.00"}, {"name": "Windows", "price": "80.00"}],
    )
    db.add(service)
    db.commit()
    return service


def offer_service(db: Session, provider: User, service: Service) -> None:
    provider.provider_profile.services.append(service)
    db.commit()


def local_slot(clock: Clock, hours_ahead: float):
    """Johannesburg date and start time ``hours_ahead`` after the clock."""
    start = TimezoneService.utc_to_local(clock() + timedelta(hours=hours_ahead))
    return start.date(), start.time().replace(second=0, microsecond=0)


def booking_request(
    provider: User,
    service: Service,
    *,
    clock: Clock,
    hours_ahead: float = 48,
    province: str = "Gauteng",
    add_ons: Optional[List[Dict[str, Any]]] = None,
) -> BookingCreate:
    scheduled_date, start_time = local_slot(clock, hours_ahead)
    return BookingCreate(
        provider_id=provider.id,
        service_id=service.id,
        scheduled_date=scheduled_date,
        start_time=start_time,
        service_location=ServiceLocationIn(
            street="12 Jacaranda Street",
            city="Johannesburg",
            province=province,
            postal_code="2001",
        ),
        add_ons=[
            AddOnIn(**a) for a in (add_ons if add_ons is not None else [{"name": "Inside oven", "price": "100.00"}])
        ],
    )


def create_booking(
    db: Session,
    customer: User,
    provider: User,
    service: Service,
    *,
    clock: Clock,
    hours_ahead: float = 48,
    status: Optional[BookingStatus] = None,
    paid: bool = False,
    created_at: Optional[datetime] = None,
) -> Booking:
    """
    Create a booking through BookingService so pricing and the outbox are real.

    ``status`` and ``paid`` then force the stored state directly.
    """
    booking_service = BookingService(db, clock)
    booking = booking_service.create_booking(
        customer, booking_request(provider, service, clock=clock, hours_ahead=hours_ahead)
    )
    if status is not None:
        booking.status = status.value
    if paid:
        payment = booking.payment
        payment.status = PaymentStatus.COMPLETED.value
        payment.payment_intent_id = f"pi_test_{booking.id}"
        payment.paid_at = created_at or clock()
        payment.platform_fee_collected = booking.platform_fee
        payment.payout_status = "scheduled"
    db.commit()
    return booking


def booking_payload(provider: User, service: Service, *, clock: Clock, **kwargs: Any) -> Dict[str, Any]:
    """JSON body for ``POST /api/v1/bookings``."""
    return booking_request(provider, service, clock=clock, **kwargs).model_dump(
        mode="json", exclude_defaults=True
    )
