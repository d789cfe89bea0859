# backend/helperhive/tasks/notification_tasks.py
"""
Celery tasks for notifications.

`outbox.dispatch_pending` delivers due outbox rows by email to the party
named in each booking event. Verification SMS and email go out through
their own tasks with automatic retry.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from celery.utils.log import get_task_logger
from sqlalchemy.orm import Session

from helperhive.database import SessionLocal
from helperhive.events import outbox_events
from helperhive.models.event_outbox import EventOutbox
from helperhive.repositories.event_outbox_repository import EventOutboxRepository
from helperhive.repositories.user_repository import UserRepository
from helperhive.services.notification_providers import (
    NotificationProviderTemporaryError,
    build_email_sender,
    build_sms_sender,
    render_booking_email,
    verification_email,
    verification_sms_body,
)
from helperhive.tasks.celery_app import celery_app

logger = get_task_logger(__name__)

MAX_DELIVERY_ATTEMPTS = 5
BACKOFF_SECONDS = [30, 120, 600, 1800, 7200]
DISPATCH_BATCH_SIZE = 200


def _next_backoff(attempt_number: int) -> int:
    """Return backoff delay for the given attempt (1-indexed)."""
    index = max(0, min(attempt_number - 1, len(BACKOFF_SECONDS) - 1))
    return BACKOFF_SECONDS[index]


@contextmanager
def _session_scope(session_factory: Callable[[], Session] = SessionLocal) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def deliver_event(session: Session, event: EventOutbox, email_sender: Any) -> bool:
    """
    Send one outbox row to its recipient and record the outcome.

    Returns True when the row was marked sent.
    """
    repo = EventOutboxRepository(session)
    attempt_number = event.attempt_count + 1
    payload = event.payload or {}
    recipient = UserRepository(session).get_by_id(
        outbox_events.recipient_id(payload), load_relationships=False
    )
    if recipient is None:
        repo.mark_failed(event, "Recipient not found")
        logger.error("Outbox event %s has no recipient", event.id)
        return False

    subject, body = render_booking_email(event.event_type, payload)
    try:
        email_sender.send(recipient.email, subject, body)
    except NotificationProviderTemporaryError as exc:
        if attempt_number >= MAX_DELIVERY_ATTEMPTS:
            repo.mark_failed(event, str(exc))
            logger.error("Outbox event %s failed after %s attempts", event.id, attempt_number)
            return False
        backoff = _next_backoff(attempt_number)
        repo.schedule_retry(event, str(exc), backoff)
        logger.warning(
            "Retrying outbox event %s attempt=%s backoff=%ss", event.id, attempt_number, backoff
        )
        return False

    repo.mark_sent(event)
    logger.info(
        "Delivered outbox event %s type=%s attempts=%s",
        event.id,
        event.event_type,
        attempt_number,
    )
    return True


def dispatch_outbox(session: Session, email_sender: Optional[Any] = None) -> int:
    sender = email_sender or build_email_sender()
    pending = EventOutboxRepository(session).fetch_pending(limit=DISPATCH_BATCH_SIZE)
    delivered = 0
    for event in pending:
        if deliver_event(session, event, sender):
            delivered += 1
    return delivered


@celery_app.task(name="outbox.dispatch_pending", max_retries=0)
def dispatch_pending() -> int:
    """
    Deliver due outbox events.

    Returns the number of events sent.
    """
    with _session_scope() as session:
        delivered = dispatch_outbox(session)
    if delivered:
        logger.info("Delivered %s outbox events", delivered)
    return delivered


@celery_app.task(
    name="notifications.send_verification_sms",
    autoretry_for=(NotificationProviderTemporaryError,),
    retry_backoff=True,
    retry_backoff_max=600,
    retry_jitter=True,
    max_retries=3,
)
def send_verification_sms(phone: str, code: str) -> dict:
    return build_sms_sender().send(phone, verification_sms_body(code))


@celery_app.task(
    name="notifications.send_verification_email",
    autoretry_for=(NotificationProviderTemporaryError,),
    retry_backoff=True,
    retry_backoff_max=600,
    retry_jitter=True,
    max_retries=3,
)
def send_verification_email(email: str, first_name: str, token: str) -> dict:
    subject, body = verification_email(first_name, token)
    return build_email_sender().send(email, subject, body)
