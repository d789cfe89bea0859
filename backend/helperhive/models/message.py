# backend/helperhive/models/message.py
"""
Booking chat messages.

Rows are insert-only. The only mutable column is ``is_read``, flipped by
the recipient; content is never edited or deleted.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..core.enums import MessageType
from ..database import Base


class BookingMessage(Base):
    __tablename__ = "booking_messages"

    # Integer key gives a strict insertion order for the log
    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    message_type = Column(String(10), nullable=False, default=MessageType.TEXT.value)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    booking = relationship("Booking", back_populates="messages")
    sender = relationship("User")

    __table_args__ = (
        CheckConstraint(
            "message_type IN ('text', 'image', 'system')", name="ck_booking_messages_type"
        ),
    )

    def __repr__(self) -> str:
        return f"<BookingMessage {self.id} booking={self.booking_id}>"
