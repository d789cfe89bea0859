# backend/helperhive/repositories/event_outbox_repository.py
"""
Outbox rows for booking notifications.

Booking services call ``enqueue`` inside their own transaction; the
dispatcher task calls ``fetch_pending`` and then exactly one of
``mark_sent``, ``schedule_retry`` or ``mark_failed`` per row.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.orm import Session
import ulid

from ..models.event_outbox import EventOutbox, EventOutboxStatus

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class EventOutboxRepository:
    def __init__(self, db: Session):
        self.db = db
        bind = db.get_bind()
        self._on_postgres = bind is not None and bind.dialect.name == "postgresql"

    def _by_key(self, idempotency_key: str) -> Optional[EventOutbox]:
        return self.db.execute(
            select(EventOutbox).where(EventOutbox.idempotency_key == idempotency_key)
        ).scalar_one_or_none()

    def enqueue(
        self,
        event_type: str,
        aggregate_id: str,
        idempotency_key: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> EventOutbox:
        """
        Add a pending row due now.

        A second call with the same key is a no-op that returns the
        original row; the insert itself also ignores key conflicts so
        concurrent writers cannot fail the surrounding transaction.
        """
        existing = self._by_key(idempotency_key)
        if existing is not None:
            logger.debug("Outbox key %s already enqueued", idempotency_key)
            return existing

        row = {
            "id": str(ulid.ULID()),
            "event_type": event_type,
            "aggregate_id": aggregate_id,
            "idempotency_key": idempotency_key,
            "payload": payload or {},
            "status": EventOutboxStatus.PENDING.value,
            "attempt_count": 0,
            "next_attempt_at": _now_utc(),
        }
        if self._on_postgres:
            stmt = pg_insert(EventOutbox).values(**row).on_conflict_do_nothing(
                index_elements=["idempotency_key"]
            )
        else:
            stmt = insert(EventOutbox).values(**row).prefix_with("OR IGNORE")
        self.db.execute(stmt)
        self.db.flush()

        stored = self._by_key(idempotency_key)
        if stored is None:
            raise RuntimeError(f"Outbox row for {idempotency_key} missing after insert")
        return stored

    def fetch_pending(self, limit: int = 100) -> List[EventOutbox]:
        """Oldest due ``pending`` rows first; rows locked by another worker are skipped."""
        stmt = (
            select(EventOutbox)
            .where(
                EventOutbox.status == EventOutboxStatus.PENDING.value,
                EventOutbox.next_attempt_at <= _now_utc(),
            )
            .order_by(EventOutbox.next_attempt_at, EventOutbox.id)
            .limit(limit)
        )
        if self._on_postgres:
            stmt = stmt.with_for_update(skip_locked=True)
        return list(self.db.execute(stmt).scalars())

    def mark_sent(self, event: EventOutbox) -> None:
        event.record_delivery()
        self.db.flush()

    def schedule_retry(self, event: EventOutbox, error: str, backoff_seconds: int) -> None:
        event.record_retry(error, _now_utc() + timedelta(seconds=max(backoff_seconds, 1)))
        self.db.flush()

    def mark_failed(self, event: EventOutbox, error: str) -> None:
        event.record_failure(error)
        self.db.flush()
