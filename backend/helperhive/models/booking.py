# backend/helperhive/models/booking.py
"""
Booking model for the HelperHive platform.

A booking is one scheduled engagement between a customer and a provider
for a single service. Pricing is a frozen snapshot taken at creation;
status changes go through the booking state machine, which appends a
BookingStatusHistory row for each change.
"""

import logging
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.constants import DEFAULT_COUNTRY
from ..core.enums import BookingSource, BookingStatus, RefundStatus
from ..database import Base

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset(
    {BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value, BookingStatus.NO_SHOW.value}
)
TRACKING_STATUSES = frozenset(
    {BookingStatus.CONFIRMED.value, BookingStatus.EN_ROUTE.value, BookingStatus.IN_PROGRESS.value}
)

_status_values = ", ".join(f"'{s.value}'" for s in BookingStatus)
_refund_values = ", ".join(f"'{s.value}'" for s in RefundStatus)


class Booking(Base):
    """
    Booking record with schedule, location, pricing snapshot and lifecycle state.

    Cancellation columns are written once; ``has_cancellation`` guards every
    path that would write them again.
    """

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    booking_number = Column(String(17), nullable=False, unique=True, index=True)

    customer_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    provider_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    service_id = Column(String(26), ForeignKey("services.id"), nullable=False)
    service_name = Column(String(120), nullable=False)

    # Schedule (local platform time)
    scheduled_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)

    # Service location
    street = Column(String(200), nullable=False)
    city = Column(String(100), nullable=False)
    province = Column(String(50), nullable=False)
    postal_code = Column(String(10), nullable=False)
    country = Column(String(60), nullable=False, default=DEFAULT_COUNTRY)
    location_longitude = Column(Float, nullable=True)
    location_latitude = Column(Float, nullable=True)
    special_instructions = Column(Text, nullable=True)
    access_instructions = Column(Text, nullable=True)

    # Requirements
    customer_provides_equipment = Column(Boolean, nullable=False, default=False)
    water_available = Column(Boolean, nullable=False, default=True)
    electricity_available = Column(Boolean, nullable=False, default=True)
    parking_available = Column(Boolean, nullable=False, default=True)
    special_requests = Column(Text, nullable=True)

    # Pricing snapshot
    base_price = Column(Numeric(10, 2), nullable=False)
    add_ons = Column(JSON, nullable=False, default=list)
    add_ons_total = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    platform_fee = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="ZAR")

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)

    # Tracking (latest position only)
    current_longitude = Column(Float, nullable=True)
    current_latitude = Column(Float, nullable=True)
    location_updated_at = Column(DateTime(timezone=True), nullable=True)
    estimated_arrival = Column(DateTime(timezone=True), nullable=True)
    actual_arrival = Column(DateTime(timezone=True), nullable=True)
    actual_completion = Column(DateTime(timezone=True), nullable=True)

    # Cancellation record
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    refund_amount = Column(Numeric(10, 2), nullable=True)
    refund_status = Column(String(20), nullable=True)

    # Reviews
    customer_rating = Column(Integer, nullable=True)
    customer_comment = Column(Text, nullable=True)
    customer_reviewed_at = Column(DateTime(timezone=True), nullable=True)
    provider_rating = Column(Integer, nullable=True)
    provider_comment = Column(Text, nullable=True)
    provider_reviewed_at = Column(DateTime(timezone=True), nullable=True)

    # Request metadata
    source = Column(String(10), nullable=False, default=BookingSource.WEB.value)
    user_agent = Column(String(255), nullable=True)
    ip_address = Column(String(45), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    customer = relationship("User", foreign_keys=[customer_id])
    provider = relationship("User", foreign_keys=[provider_id])
    service = relationship("Service")
    cancelled_by = relationship("User", foreign_keys=[cancelled_by_id])
    status_history = relationship(
        "BookingStatusHistory",
        back_populates="booking",
        order_by="BookingStatusHistory.id",
        cascade="all, delete-orphan",
    )
    messages = relationship(
        "BookingMessage",
        back_populates="booking",
        order_by="BookingMessage.id",
        cascade="all, delete-orphan",
    )
    payment = relationship(
        "BookingPayment", back_populates="booking", uselist=False, cascade="all, delete-orphan"
    )
    emergency_alert = relationship(
        "BookingEmergencyAlert",
        back_populates="booking",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint(f"status IN ({_status_values})", name="ck_bookings_status"),
        CheckConstraint(
            f"refund_status IS NULL OR refund_status IN ({_refund_values})",
            name="ck_bookings_refund_status",
        ),
        CheckConstraint("base_price >= 0", name="ck_bookings_base_price_non_negative"),
        CheckConstraint("add_ons_total >= 0", name="ck_bookings_add_ons_non_negative"),
        CheckConstraint("platform_fee >= 0", name="ck_bookings_fee_non_negative"),
        CheckConstraint(
            "ROUND(subtotal, 2) = ROUND(base_price + add_ons_total, 2)",
            name="ck_bookings_subtotal_identity",
        ),
        CheckConstraint(
            "ROUND(total, 2) = ROUND(subtotal + platform_fee, 2)",
            name="ck_bookings_total_identity",
        ),
        CheckConstraint("customer_id <> provider_id", name="ck_bookings_distinct_parties"),
        CheckConstraint(
            "customer_rating IS NULL OR customer_rating BETWEEN 1 AND 5",
            name="ck_bookings_customer_rating",
        ),
        CheckConstraint(
            "provider_rating IS NULL OR provider_rating BETWEEN 1 AND 5",
            name="ck_bookings_provider_rating",
        ),
        Index("ix_bookings_provider_status", "provider_id", "status"),
        Index("ix_bookings_customer_status", "customer_id", "status"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        logger.info(
            "Creating booking %s for customer %s with provider %s",
            kwargs.get("booking_number"),
            kwargs.get("customer_id"),
            kwargs.get("provider_id"),
        )

    def __repr__(self) -> str:
        return f"<Booking {self.booking_number} {self.status}>"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_tracking_window(self) -> bool:
        return self.status in TRACKING_STATUSES

    @property
    def has_cancellation(self) -> bool:
        return self.cancelled_at is not None

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.customer_id, self.provider_id)

    def other_party_id(self, user_id: str) -> str:
        return self.provider_id if user_id == self.customer_id else self.customer_id

    @property
    def payment_status(self) -> Optional[str]:
        return self.payment.status if self.payment else None


class BookingStatusHistory(Base):
    """Append-only log of status changes after creation."""

    __tablename__ = "booking_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = Column(String(20), nullable=False)
    note = Column(Text, nullable=True)
    updated_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    booking = relationship("Booking", back_populates="status_history")

    __table_args__ = (
        CheckConstraint(f"status IN ({_status_values})", name="ck_status_history_status"),
    )

    def __repr__(self) -> str:
        return f"<BookingStatusHistory booking={self.booking_id} status={self.status}>"
