# backend/helperhive/tasks/celery_app.py
"""
Celery application for HelperHive background work.

Two kinds of work run here: the periodic outbox dispatch that turns
booking events into notifications, and one-off verification messages
queued at registration. Both go to the ``notifications`` queue. Without a
Redis broker (tests, quick local runs) tasks execute eagerly in-process.
"""

import logging
from typing import Any, Dict

from celery import Celery, Task
from celery.signals import setup_logging

from helperhive.core.config import settings

OUTBOX_DISPATCH_INTERVAL_SECONDS = 30.0

NOTIFICATIONS_QUEUE = "notifications"


def get_beat_schedule() -> Dict[str, Dict[str, Any]]:
    return {
        "dispatch-notification-outbox": {
            "task": "outbox.dispatch_pending",
            "schedule": OUTBOX_DISPATCH_INTERVAL_SECONDS,
        },
    }


class LoggedTask(Task):  # type: ignore[misc]
    """Logs final failures and each retry of a notification task."""

    def on_failure(self, exc: Exception, task_id: str, args: Any, kwargs: Any, einfo: Any) -> None:
        logging.getLogger(__name__).error("%s[%s] failed: %s", self.name, task_id, exc, exc_info=True)
        super().on_failure(exc, task_id, args, kwargs, einfo)

    def on_retry(self, exc: Exception, task_id: str, args: Any, kwargs: Any, einfo: Any) -> None:
        logging.getLogger(__name__).warning(
            "%s[%s] retry %s: %s", self.name, task_id, self.request.retries, exc
        )
        super().on_retry(exc, task_id, args, kwargs, einfo)


def create_celery_app() -> Celery:
    app = Celery(
        "helperhive",
        broker=settings.get_celery_broker_url(),
        backend=settings.celery_result_backend,
        task_cls=LoggedTask,
    )
    app.conf.update(
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        timezone=settings.timezone,
        enable_utc=True,
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        task_soft_time_limit=60,
        task_time_limit=120,
        worker_hijack_root_logger=False,
        task_always_eager=settings.celery_task_always_eager or settings.is_testing,
        task_eager_propagates=False,
        imports=("helperhive.tasks.notification_tasks",),
        task_routes={
            "outbox.*": {"queue": NOTIFICATIONS_QUEUE},
            "notifications.*": {"queue": NOTIFICATIONS_QUEUE},
        },
        beat_schedule=get_beat_schedule(),
    )
    return app


@setup_logging.connect  # type: ignore[misc]
def config_loggers(*args: Any, **kwargs: Any) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


celery_app = create_celery_app()
