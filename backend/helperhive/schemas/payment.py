# backend/helperhive/schemas/payment.py
"""Payment, refund and earnings schemas."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from .base import Money, StandardizedModel, StrictRequestModel


class PaymentIntentCreate(StrictRequestModel):
    booking_id: str


class PaymentIntentResponse(StandardizedModel):
    client_secret: Optional[str] = None
    payment_intent_id: str
    amount: int
    currency: str


class PaymentConfirm(StrictRequestModel):
    payment_intent_id: str


class RefundRequest(StrictRequestModel):
    booking_id: str
    reason: str = Field(..., min_length=1, max_length=500)


class RefundResponse(StandardizedModel):
    booking_id: str
    refund_amount: Money
    refund_percentage: int
    hours_until_service: float
    refund_status: str
    policy_basis: str


class PaymentHistoryItem(StandardizedModel):
    booking_id: str
    booking_number: str
    service_name: str
    scheduled_date: str
    total: Money
    subtotal: Money
    platform_fee: Money
    payment_status: str
    paid_at: Optional[datetime] = None
    refunded_amount: Optional[Money] = None
    payout_status: str


class EarningsSummary(StandardizedModel):
    total: Money
    pending: Money
    bookings_count: int
    average_value: Money


class DailyEarnings(StandardizedModel):
    date: str
    earnings: Money
    bookings: int


class ProviderEarningsResponse(StandardizedModel):
    period: str
    totals: Dict[str, Money]
    earnings: EarningsSummary
    daily_earnings: List[DailyEarnings]
    pending_payouts: int


class WebhookAck(StandardizedModel):
    received: bool = True
    event_type: str
