# backend/helperhive/tasks/__init__.py
"""
Celery tasks package for HelperHive.

Importing the package registers the notification tasks with the app.
"""

from helperhive.tasks.celery_app import LoggedTask, celery_app
from helperhive.tasks.notification_tasks import (  # noqa: E402
    dispatch_pending,
    send_verification_email,
    send_verification_sms,
)

__all__ = [
    "LoggedTask",
    "celery_app",
    "dispatch_pending",
    "send_verification_email",
    "send_verification_sms",
]
