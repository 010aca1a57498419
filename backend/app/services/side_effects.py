"""
Audit and history writes that follow a committed status change.

They run after the primary write and are never allowed to undo it; each
outcome is reported back so callers can see what did not land.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@dataclass
class SideEffectOutcome:
    name: str
    ok: bool
    error: str | None = None


class SideEffectQueue:
    def __init__(self, db: Session):
        self.db = db
        self._pending: list[tuple[str, Callable[[], Any]]] = []

    def enqueue(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self._pending.append((name, lambda: fn(*args, **kwargs)))

    def __len__(self) -> int:
        return len(self._pending)

    def flush(self) -> list[SideEffectOutcome]:
        pending, self._pending = self._pending, []
        outcomes: list[SideEffectOutcome] = []
        for name, run in pending:
            try:
                run()
            except Exception as exc:  # noqa: BLE001
                self.db.rollback()
                logger.warning("Side effect %s failed: %s", name, exc, exc_info=True)
                outcomes.append(SideEffectOutcome(name=name, ok=False, error=str(exc)))
            else:
                outcomes.append(SideEffectOutcome(name=name, ok=True))
        return outcomes
