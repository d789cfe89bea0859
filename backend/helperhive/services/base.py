# backend/helperhive/services/base.py
"""
Service layer base class.

Every HelperHive service gets a session, a named logger, a clock and a
``transaction()`` context that commits on success and rolls back on any
exception. Persistence failures surface as ``ServiceException``; domain
exceptions pass through untouched so routes can map them to status codes.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from functools import wraps
import logging
import time
from typing import Any, Callable, Iterator, Optional, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException, ServiceException

F = TypeVar("F", bound=Callable[..., Any])

Clock = Callable[[], datetime]

SLOW_OPERATION_SECONDS = 1.0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BaseService:
    """Clock must return timezone-aware UTC datetimes."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self._clock = clock or utc_now
        self.logger = logging.getLogger(self.__class__.__name__)

    def now(self) -> datetime:
        return self._clock()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        try:
            yield self.db
            self.db.commit()
        except (SQLAlchemyError, RepositoryException) as e:
            self.db.rollback()
            self.logger.error("Rolled back after persistence failure: %s", e)
            raise ServiceException(f"Database operation failed: {e}") from e
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """Log how long the wrapped service call took; warn when it is slow."""

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                started = time.perf_counter()
                try:
                    return func(self, *args, **kwargs)
                finally:
                    elapsed = time.perf_counter() - started
                    if elapsed > SLOW_OPERATION_SECONDS:
                        self.logger.warning("Slow operation: %s took %.2fs", operation_name, elapsed)
                    else:
                        self.logger.debug("%s finished in %.3fs", operation_name, elapsed)

            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        self.logger.info("Operation: %s", operation, extra={"operation": operation, **context})
