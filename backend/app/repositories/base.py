from __future__ import annotations

import logging

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import ConcurrentUpdateError

logger = logging.getLogger(__name__)


class Repository:
    def __init__(self, db: Session):
        self.db = db

    def _commit(self, entity_label: str) -> None:
        """Commit one write; a lost optimistic-concurrency race becomes a 409."""
        try:
            self.db.commit()
        except StaleDataError as exc:
            self.db.rollback()
            logger.warning("Concurrent update detected on %s", entity_label)
            raise ConcurrentUpdateError(
                f"{entity_label} was modified by another request; reload and retry"
            ) from exc
