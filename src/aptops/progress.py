"""Progress reporting for multi-step operations."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from aptops.errors import ProgressRegressionError
from aptops.models import ProgressState

__all__ = ["ProgressSink", "ProgressReporter"]

logger = logging.getLogger(__name__)

# Receives (completed, total) pairs
ProgressSink = Callable[[int, int], None]


class ProgressReporter:
    """
    Forwards step counters to an optional caller-supplied sink.

    Counters never move backwards within one operation; an attempt to
    report less progress than already reported raises
    ``ProgressRegressionError``.
    """

    def __init__(self, sink: Optional[ProgressSink] = None):
        self._sink = sink
        self.history: List[ProgressState] = []

    @property
    def current(self) -> Optional[ProgressState]:
        return self.history[-1] if self.history else None

    def report(self, completed: int, total: int) -> ProgressState:
        state = ProgressState(completed_steps=completed, total_steps=total)
        previous = self.current
        if previous is not None and completed < previous.completed_steps:
            raise ProgressRegressionError(
                f"Progress moved backwards: {previous.completed_steps} -> {completed}"
            )
        self.history.append(state)
        logger.debug("progress %d/%d", completed, total)
        if self._sink is not None:
            self._sink(completed, total)
        return state
