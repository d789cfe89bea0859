# backend/helperhive/models/profile.py
"""
Role-specific profile records.

ProviderProfile fields are only changed through the typed setters below so
every field keeps its own validation rule.
"""

from decimal import Decimal
import logging
from typing import Iterable, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.constants import DEFAULT_SERVING_RADIUS_KM
from ..core.enums import BackgroundCheckStatus
from ..database import Base

logger = logging.getLogger(__name__)

MAX_BIO_LENGTH = 500
MAX_SERVING_RADIUS_KM = 200

provider_services = Table(
    "provider_services",
    Base.metadata,
    Column(
        "provider_profile_id",
        String(26),
        ForeignKey("provider_profiles.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("service_id", String(26), ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
)


class ProviderProfile(Base):
    """Provider-only data: offer, availability, vetting and running totals."""

    __tablename__ = "provider_profiles"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    bio = Column(Text, nullable=True)
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    years_experience = Column(Integer, nullable=False, default=0)
    serving_radius_km = Column(Integer, nullable=False, default=DEFAULT_SERVING_RADIUS_KM)
    background_check_status = Column(
        String(20), nullable=False, default=BackgroundCheckStatus.PENDING.value
    )
    is_available = Column(Boolean, nullable=False, default=True)

    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    rating_average = Column(Float, nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)
    total_earnings = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    completed_jobs = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="provider_profile")
    services = relationship("Service", secondary=provider_services, lazy="selectin")

    __table_args__ = (
        CheckConstraint(
            "background_check_status IN ('pending', 'approved', 'rejected', 'not-required')",
            name="ck_provider_profiles_bgc_status",
        ),
        CheckConstraint("serving_radius_km > 0", name="ck_provider_profiles_radius_positive"),
    )

    def __repr__(self) -> str:
        return f"<ProviderProfile user={self.user_id} bgc={self.background_check_status}>"

    @property
    def is_bookable(self) -> bool:
        return bool(
            self.is_available
            and self.background_check_status == BackgroundCheckStatus.APPROVED.value
        )

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def offers(self, service_id: str) -> bool:
        return any(service.id == service_id for service in self.services)

    def update_bio(self, bio: Optional[str]) -> None:
        text = (bio or "").strip()
        if len(text) > MAX_BIO_LENGTH:
            raise ValueError(f"Bio cannot exceed {MAX_BIO_LENGTH} characters")
        self.bio = text or None

    def set_hourly_rate(self, rate: Decimal) -> None:
        if rate < 0:
            raise ValueError("Hourly rate cannot be negative")
        self.hourly_rate = rate

    def set_years_experience(self, years: int) -> None:
        if years < 0:
            raise ValueError("Years of experience cannot be negative")
        self.years_experience = years

    def set_serving_radius(self, radius_km: int) -> None:
        if not 0 < radius_km <= MAX_SERVING_RADIUS_KM:
            raise ValueError(f"Serving radius must be between 1 and {MAX_SERVING_RADIUS_KM} km")
        self.serving_radius_km = radius_km

    def set_availability(self, is_available: bool) -> None:
        self.is_available = is_available

    def set_location(self, latitude: float, longitude: float) -> None:
        if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
            raise ValueError("Coordinates out of range")
        self.latitude = latitude
        self.longitude = longitude

    def set_offered_services(self, services: Iterable) -> None:
        self.services = list(services)

    def set_background_check(self, status: BackgroundCheckStatus) -> None:
        self.background_check_status = status.value
        logger.info("Provider %s background check set to %s", self.user_id, status.value)

    def record_rating(self, rating: int) -> None:
        total = self.rating_average * self.rating_count + rating
        self.rating_count += 1
        self.rating_average = round(total / self.rating_count, 2)


class CustomerProfile(Base):
    """Customer-only running totals."""

    __tablename__ = "customer_profiles"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    total_bookings = Column(Integer, nullable=False, default=0)
    total_spent = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    user = relationship("User", back_populates="customer_profile")

    def __repr__(self) -> str:
        return f"<CustomerProfile user={self.user_id} bookings={self.total_bookings}>"
