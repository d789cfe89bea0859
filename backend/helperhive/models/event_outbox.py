# backend/helperhive/models/event_outbox.py
"""
Notification outbox.

A row is written in the same transaction as the booking change it
describes. The dispatch task picks up due ``pending`` rows, emails the
recipient, and either marks the row ``sent`` or schedules a retry.
After the last attempt, or when the recipient no longer exists, the row
ends ``failed`` and is never picked up again.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.types import JSON
import ulid

from ..database import Base

MAX_ERROR_LENGTH = 1000


class EventOutboxStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class EventOutbox(Base):
    __tablename__ = "event_outbox"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    event_type = Column(String(100), nullable=False, index=True)
    # Booking id for every event we emit today
    aggregate_id = Column(String(64), nullable=False, index=True)
    idempotency_key = Column(String(255), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default=EventOutboxStatus.PENDING.value, index=True)
    attempt_count = Column(Integer, nullable=False, default=0)
    next_attempt_at = Column(DateTime(timezone=True), nullable=True, index=True)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (UniqueConstraint("idempotency_key", name="uq_event_outbox_idempotency_key"),)

    def _attempted(self, status: EventOutboxStatus, error: Optional[str]) -> None:
        self.status = status.value
        self.attempt_count = (self.attempt_count or 0) + 1
        if error:
            self.last_error = error[:MAX_ERROR_LENGTH]
        self.updated_at = datetime.now(timezone.utc)

    def record_delivery(self) -> None:
        self._attempted(EventOutboxStatus.SENT, None)

    def record_retry(self, error: str, retry_at: datetime) -> None:
        self._attempted(EventOutboxStatus.PENDING, error)
        self.next_attempt_at = retry_at

    def record_failure(self, error: str) -> None:
        """Final state; the dispatcher never selects this row again."""
        self._attempted(EventOutboxStatus.FAILED, error)

    def __repr__(self) -> str:
        return f"<EventOutbox {self.event_type} {self.aggregate_id} {self.status}>"
