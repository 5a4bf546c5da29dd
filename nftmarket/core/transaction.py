"""All-or-nothing boundary around a single marketplace operation.

A ``Transaction`` collects compensating actions as the operation makes
progress (custody moved, funds paid, state snapshotted) and buffers the
events it wants to publish.  If the body raises, the compensations run in
reverse order and the buffered events are dropped, so callers observe
either the full effect of the operation or none of it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from types import TracebackType
from typing import Any

from nftmarket.models.events import MarketEvent

logger = logging.getLogger(__name__)


class RollbackError(RuntimeError):
    """Raised when a compensating action itself fails during rollback."""


class Transaction:
    """Staged-commit boundary.

    Parameters
    ----------
    operation:
        Name of the operation, for log messages.
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        self._compensations: list[tuple[Callable[..., Any], tuple[Any, ...]]] = []
        self._events: list[MarketEvent] = []
        self._committed = False

    def on_rollback(self, action: Callable[..., Any], *args: Any) -> None:
        """Register *action(*args)* to undo a step that has already happened."""
        self._compensations.append((action, args))

    def emit(self, event: MarketEvent) -> None:
        """Buffer an event for publication after commit."""
        self._events.append(event)

    @property
    def events(self) -> list[MarketEvent]:
        """Buffered events; empty unless the transaction committed."""
        return list(self._events) if self._committed else []

    @property
    def committed(self) -> bool:
        return self._committed

    def rollback(self) -> None:
        """Run compensations newest-first and discard buffered events."""
        failures: list[str] = []
        while self._compensations:
            action, args = self._compensations.pop()
            try:
                action(*args)
            except Exception as exc:
                logger.exception(
                    "Compensation %s failed while rolling back %s.",
                    getattr(action, "__name__", repr(action)),
                    self.operation,
                )
                failures.append(str(exc))
        self._events.clear()
        if failures:
            raise RollbackError(
                f"Rollback of {self.operation} incomplete: {'; '.join(failures)}"
            )

    def __enter__(self) -> Transaction:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if exc_type is None:
            self._committed = True
            self._compensations.clear()
            return False

        logger.warning("Rolling back %s: %s", self.operation, exc)
        self.rollback()
        return False
