# backend/helperhive/repositories/base_repository.py
"""
Shared data access for HelperHive repositories.

Repositories flush so generated ids and constraint errors surface early,
but they never commit: the calling service owns the transaction.
Driver errors leave this layer as ``RepositoryException``.
"""

from contextlib import contextmanager
import logging
from typing import Any, Generic, Iterator, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @contextmanager
    def _guard(self, action: str, rollback: bool = False) -> Iterator[None]:
        name = self.model.__name__
        try:
            yield
        except IntegrityError as exc:
            self.logger.error("Integrity error while trying to %s %s: %s", action, name, exc)
            if rollback:
                self.db.rollback()
            raise RepositoryException(f"Integrity constraint violated for {name}") from exc
        except SQLAlchemyError as exc:
            self.logger.error("Could not %s %s: %s", action, name, exc)
            if rollback:
                self.db.rollback()
            raise RepositoryException(f"Failed to {action} {name}: {exc}") from exc

    def get_by_id(self, id: str, load_relationships: bool = True) -> Optional[T]:
        with self._guard("load"):
            query = self.db.query(self.model).filter(self.model.id == id)
            if load_relationships:
                query = self._apply_eager_loading(query)
            return query.first()

    def create(self, **kwargs: Any) -> T:
        with self._guard("create", rollback=True):
            entity = self.model(**kwargs)
            self.db.add(entity)
            self.db.flush()
            return entity

    def flush(self) -> None:
        with self._guard("persist"):
            self.db.flush()

    def exists(self, **criteria: Any) -> bool:
        with self._guard("look up"):
            return self.db.query(self.model).filter_by(**criteria).first() is not None

    def find_one_by(self, **criteria: Any) -> Optional[T]:
        with self._guard("look up"):
            return self.db.query(self.model).filter_by(**criteria).first()

    def _apply_eager_loading(self, query: Query) -> Query:
        """Subclasses add joinedload/selectinload options here."""
        return query
