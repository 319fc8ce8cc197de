"""Base repository with common session handling."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sparehub.core.errors import StoreError

logger = logging.getLogger(__name__)


class BaseRepository:
    """Wraps a SQLAlchemy session; one repository per unit of work."""

    def __init__(self, db: Session) -> None:
        self.db = db

    @contextmanager
    def _store_op(self, operation: str) -> Iterator[None]:
        """Rolls back and re-raises driver errors as StoreError.

        Domain errors raised inside the block roll back too and propagate as-is.
        """
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Store operation '%s' failed: %s", operation, e)
            raise StoreError(f"Database operation '{operation}' failed") from e
        except Exception:
            self.db.rollback()
            raise
