# backend/helperhive/schemas/booking.py
"""
Booking schemas for the HelperHive platform.

Request models forbid unknown fields. Add-on prices are accepted as given
and validated by the pricing calculator so negative prices surface as a
domain validation error.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator

from ..core.constants import DEFAULT_COUNTRY, SA_PROVINCES
from ..core.enums import BookingSource, BookingStatus, PaymentMethod
from .base import Money, StandardizedModel, StrictRequestModel


def _parse_hhmm(value: object) -> object:
    if isinstance(value, str):
        try:
            hour, minute = value.strip().split(":")[:2]
            return time(int(hour), int(minute))
        except (ValueError, AttributeError):
            raise ValueError(f"Invalid time format: {value}. Expected HH:MM format.")
    return value


class ServiceLocationIn(StrictRequestModel):
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    province: str
    postal_code: str = Field(..., min_length=4, max_length=10)
    country: str = DEFAULT_COUNTRY
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    special_instructions: Optional[str] = Field(None, max_length=500)
    access_instructions: Optional[str] = Field(None, max_length=500)

    @field_validator("province")
    @classmethod
    def validate_province(cls, v: str) -> str:
        if v not in SA_PROVINCES:
            raise ValueError(f"Unknown province: {v}")
        return v


class RequirementsIn(StrictRequestModel):
    customer_provides_equipment: bool = False
    water_available: bool = True
    electricity_available: bool = True
    parking_available: bool = True


class AddOnIn(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: Decimal


class BookingCreate(StrictRequestModel):
    """Customer request to book a provider for a service."""

    provider_id: str
    service_id: str
    scheduled_date: date
    start_time: time
    service_location: ServiceLocationIn
    requirements: RequirementsIn = Field(default_factory=RequirementsIn)
    special_requests: Optional[str] = Field(None, max_length=1000)
    add_ons: List[AddOnIn] = Field(default_factory=list)
    payment_method: PaymentMethod = PaymentMethod.CARD
    source: BookingSource = BookingSource.WEB

    @field_validator("start_time", mode="before")
    @classmethod
    def parse_time_string(cls, v: object) -> object:
        return _parse_hhmm(v)

    @field_validator("special_requests")
    @classmethod
    def clean_requests(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class BookingRespond(StrictRequestModel):
    action: Literal["accept", "reject"]
    reason: Optional[str] = Field(None, max_length=500)


class LocationIn(StrictRequestModel):
    longitude: float = Field(..., ge=-180, le=180)
    latitude: float = Field(..., ge=-90, le=90)


class BookingStatusUpdate(StrictRequestModel):
    status: Literal["en-route", "in-progress", "completed", "no-show"]
    location: Optional[LocationIn] = None
    estimated_arrival: Optional[datetime] = None
    note: Optional[str] = Field(None, max_length=500)


class LocationUpdate(LocationIn):
    estimated_arrival: Optional[datetime] = None


class BookingCancel(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=500)


class EmergencyTrigger(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=500)


class ReviewCreate(StrictRequestModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


class StatusHistoryEntry(StandardizedModel):
    status: BookingStatus
    note: Optional[str] = None
    updated_by_id: Optional[str] = None
    created_at: datetime


class PaymentSummary(StandardizedModel):
    status: str
    method: str
    payment_intent_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    refunded_amount: Optional[Money] = None
    payout_status: str
    payout_date: Optional[datetime] = None


class EmergencyAlertResponse(StandardizedModel):
    is_active: bool
    triggered_by_id: str
    reason: str
    triggered_at: datetime
    resolved: bool


class BookingResponse(StandardizedModel):
    id: str
    booking_number: str
    customer_id: str
    provider_id: str
    service_id: str
    service_name: str
    status: BookingStatus
    scheduled_date: date
    start_time: time
    end_time: time
    duration_minutes: int

    street: str
    city: str
    province: str
    postal_code: str
    country: str
    location_longitude: Optional[float] = None
    location_latitude: Optional[float] = None
    special_instructions: Optional[str] = None
    access_instructions: Optional[str] = None
    special_requests: Optional[str] = None

    base_price: Money
    add_ons: List[Dict[str, Any]]
    add_ons_total: Money
    subtotal: Money
    platform_fee: Money
    total: Money
    currency: str

    current_longitude: Optional[float] = None
    current_latitude: Optional[float] = None
    estimated_arrival: Optional[datetime] = None
    actual_arrival: Optional[datetime] = None
    actual_completion: Optional[datetime] = None

    cancelled_at: Optional[datetime] = None
    cancelled_by_id: Optional[str] = None
    cancellation_reason: Optional[str] = None
    refund_amount: Optional[Money] = None
    refund_status: Optional[str] = None

    customer_rating: Optional[int] = None
    provider_rating: Optional[int] = None

    payment: Optional[PaymentSummary] = None
    emergency_alert: Optional[EmergencyAlertResponse] = None
    created_at: Optional[datetime] = None


class BookingDetailResponse(BookingResponse):
    status_history: List[StatusHistoryEntry] = Field(default_factory=list)


class MessageCreate(StrictRequestModel):
    message: str = Field(..., max_length=2000)
    message_type: Literal["text", "image"] = "text"


class MessageResponse(StandardizedModel):
    id: int
    booking_id: str
    sender_id: str
    content: str
    message_type: str
    is_read: bool
    created_at: datetime


class MarkReadResponse(StandardizedModel):
    updated: int
