# backend/helperhive/api/dependencies/database.py
"""Request-scoped SQLAlchemy session."""

from typing import Generator

from sqlalchemy.orm import Session

from ...database import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Yield one session per request.

    Whatever the handler leaves pending is committed when it returns and
    rolled back when it raises. Services still commit their own units of work.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
