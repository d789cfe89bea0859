# backend/helperhive/repositories/message_repository.py
"""Append-only booking message log."""

from datetime import datetime
from typing import List

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..models.message import BookingMessage
from .base_repository import BaseRepository


class MessageRepository(BaseRepository[BookingMessage]):
    def __init__(self, db: Session):
        super().__init__(db, BookingMessage)

    def append(
        self, booking_id: str, sender_id: str, content: str, message_type: str, at: datetime
    ) -> BookingMessage:
        return self.create(
            booking_id=booking_id,
            sender_id=sender_id,
            content=content,
            message_type=message_type,
            created_at=at,
        )

    def list_for_booking(self, booking_id: str) -> List[BookingMessage]:
        return (
            self.db.query(BookingMessage)
            .filter(BookingMessage.booking_id == booking_id)
            .order_by(BookingMessage.id.asc())
            .all()
        )

    def mark_read_for_recipient(self, booking_id: str, recipient_id: str) -> int:
        """Flip ``is_read`` on messages the recipient did not send. Returns rows touched."""
        result = self.db.execute(
            update(BookingMessage)
            .where(BookingMessage.booking_id == booking_id)
            .where(BookingMessage.sender_id != recipient_id)
            .where(BookingMessage.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session="fetch")
        )
        self.flush()
        return int(result.rowcount or 0)
