"""Emergency alert raised by a booking party."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
import ulid

from ..database import Base


class BookingEmergencyAlert(Base):
    """
    At most one row per booking.

    Re-triggering overwrites the row in place; resolving clears ``is_active``.
    """

    __tablename__ = "booking_emergency_alerts"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(
        String(26),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    is_active = Column(Boolean, nullable=False, default=True)
    triggered_by_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    reason = Column(Text, nullable=False)
    triggered_at = Column(DateTime(timezone=True), nullable=False)
    resolved = Column(Boolean, nullable=False, default=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    booking = relationship("Booking", back_populates="emergency_alert")

    def trigger(self, user_id: str, reason: str, at: datetime) -> None:
        self.is_active = True
        self.resolved = False
        self.resolved_at = None
        self.triggered_by_id = user_id
        self.reason = reason
        self.triggered_at = at

    def resolve(self, at: datetime) -> None:
        self.is_active = False
        self.resolved = True
        self.resolved_at = at

    def __repr__(self) -> str:
        return f"<BookingEmergencyAlert booking={self.booking_id} active={self.is_active}>"
