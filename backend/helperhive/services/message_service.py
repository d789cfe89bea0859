# backend/helperhive/services/message_service.py
"""Booking chat: append-only log shared by the two booking parties."""

from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import MessageType
from ..core.exceptions import ForbiddenException, NotFoundException, ValidationException
from ..models.booking import Booking
from ..models.message import BookingMessage
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock

MAX_MESSAGE_LENGTH = 2000


class MessageService(BaseService):
    """
    Messages may be added in any booking status, including completed.

    Only the customer and provider can write; admins can read.
    """

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.repository = RepositoryFactory.create_message_repository(db)

    def _get_booking(self, booking_id: str) -> Booking:
        booking = self.booking_repository.get_by_id(booking_id, load_relationships=False)
        if not booking:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        return booking

    @BaseService.measure_operation("send_message")
    def send_message(
        self,
        booking_id: str,
        sender: User,
        text: str,
        message_type: str = MessageType.TEXT.value,
    ) -> BookingMessage:
        booking = self._get_booking(booking_id)
        if not booking.is_party(sender.id):
            raise ForbiddenException("You are not a party to this booking", code="NOT_BOOKING_PARTY")

        content = (text or "").strip()
        if not content:
            raise ValidationException("Message cannot be empty", code="EMPTY_MESSAGE")
        if len(content) > MAX_MESSAGE_LENGTH:
            raise ValidationException(
                f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters", code="MESSAGE_TOO_LONG"
            )

        with self.transaction():
            message = self.repository.append(
                booking.id, sender.id, content, MessageType(message_type).value, self.now()
            )
        return message

    def list_messages(self, booking_id: str, user: User) -> List[BookingMessage]:
        booking = self._get_booking(booking_id)
        if not booking.is_party(user.id) and not user.is_admin:
            raise ForbiddenException("You are not a party to this booking", code="NOT_BOOKING_PARTY")
        return self.repository.list_for_booking(booking.id)

    def mark_read(self, booking_id: str, user: User) -> int:
        booking = self._get_booking(booking_id)
        if not booking.is_party(user.id):
            raise ForbiddenException("You are not a party to this booking", code="NOT_BOOKING_PARTY")
        with self.transaction():
            updated = self.repository.mark_read_for_recipient(booking.id, user.id)
        return updated
