"""
Saga — ordered steps with compensating actions.

Each step that completes registers how to undo itself. When a later step
fails, the registered compensations run in reverse order and the original
exception is re-raised unchanged. A failing compensation is logged and
does not stop the remaining ones.

Usage:
    saga = Saga("orders.create", order_ref="abc")
    with saga:
        order = saga.step(create_header, compensate=lambda o: o.delete())
        saga.step(reserve_line, compensate=lambda _: release_line())
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger('dispatchman')


class Saga:
    """Runs forward steps and unwinds completed ones on failure."""

    def __init__(self, name: str, **context):
        self.name = name
        self.context = context
        self._compensations: list[tuple[str, Callable[[], Any]]] = []
        self.failed_compensations: list[str] = []

    def step(self, action: Callable[[], Any], compensate: Callable[[Any], Any] | None = None,
             label: str | None = None) -> Any:
        """
        Run a forward action.

        compensate receives the action's result and is registered only after
        the action succeeded.
        """
        result = action()
        if compensate is not None:
            self._compensations.append(
                (label or getattr(action, '__name__', 'step'), lambda: compensate(result))
            )
        return result

    def add_compensation(self, compensate: Callable[[], Any], label: str) -> None:
        """Register an undo action for work already done outside step()."""
        self._compensations.append((label, compensate))

    def compensate(self, error: BaseException | None = None) -> None:
        """Run registered compensations in reverse order."""
        while self._compensations:
            label, undo = self._compensations.pop()
            try:
                undo()
            except Exception as e:
                self.failed_compensations.append(label)
                logger.error(
                    "orders.compensation_failed",
                    extra={
                        "saga": self.name,
                        "step": label,
                        "error": repr(e),
                        "original_error": repr(error),
                        **self.context,
                    },
                    exc_info=True,
                )

    def __enter__(self) -> Saga:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is None:
            self._compensations.clear()
            return False
        logger.warning(
            "saga.rollback",
            extra={
                "saga": self.name,
                "error": repr(exc),
                "steps": [label for label, _ in self._compensations],
                **self.context,
            },
        )
        self.compensate(exc)
        # Never swallow: the caller sees the original error
        return False
