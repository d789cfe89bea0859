"""Booking payment satellite table."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship
import ulid

from ..core.enums import PaymentMethod, PaymentStatus, PayoutStatus
from ..database import Base


class BookingPayment(Base):
    """
    Customer payment and provider payout state for a single booking.

    ``status`` follows pending -> processing -> completed | failed | refunded.
    ``payout_status`` moves independently: pending -> scheduled -> completed,
    or -> cancelled once the booking is cancelled. A cancelled payout is final.
    """

    __tablename__ = "booking_payments"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(
        String(26),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    method = Column(String(20), nullable=False, default=PaymentMethod.CARD.value)
    payment_intent_id = Column(String(255), nullable=True, unique=True)
    transaction_id = Column(String(255), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    platform_fee_collected = Column(Numeric(10, 2), nullable=True)
    refund_id = Column(String(255), nullable=True)
    refunded_amount = Column(Numeric(10, 2), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)
    failure_reason = Column(String(500), nullable=True)

    payout_status = Column(String(20), nullable=False, default=PayoutStatus.PENDING.value)
    payout_date = Column(DateTime(timezone=True), nullable=True)

    booking = relationship("Booking", back_populates="payment")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed', 'refunded')",
            name="ck_booking_payments_status",
        ),
        CheckConstraint(
            "payout_status IN ('pending', 'scheduled', 'completed', 'cancelled')",
            name="ck_booking_payments_payout_status",
        ),
        CheckConstraint(
            "method IN ('card', 'bank-transfer', 'cash')", name="ck_booking_payments_method"
        ),
    )

    @property
    def is_captured(self) -> bool:
        return self.status == PaymentStatus.COMPLETED.value

    def cancel_payout(self) -> None:
        if self.payout_status != PayoutStatus.COMPLETED.value:
            self.payout_status = PayoutStatus.CANCELLED.value

    def record_refund(self, amount: Decimal, at: datetime, refund_id: Optional[str]) -> None:
        """Captured money went back to the customer; the provider is not paid out."""
        self.status = PaymentStatus.REFUNDED.value
        self.refunded_amount = amount
        self.refunded_at = at
        self.refund_id = refund_id
        self.cancel_payout()

    def __repr__(self) -> str:
        return f"<BookingPayment booking={self.booking_id} status={self.status}>"
