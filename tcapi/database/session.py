import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from tcapi.database.connection import SessionLocal

logger = logging.getLogger(__name__)


def get_db() -> Iterator[Session]:
    """Request-scoped session; services commit their own work."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        if db.in_transaction():
            logger.warning("Rolling back request session after error")
            db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context(commit: bool = True) -> Iterator[Session]:
    """Session scope for scripts; commits on success unless ``commit`` is False."""
    db = SessionLocal()
    try:
        yield db
        if commit:
            db.commit()
    except Exception:
        logger.exception("Script session failed, rolling back")
        db.rollback()
        raise
    finally:
        db.close()
