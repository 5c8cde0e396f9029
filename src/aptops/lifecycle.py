"""
Lifecycle tracking for a single operation.

    PENDING -> RUNNING -> (RETRYING)? -> COMPLETED_SUCCESS | COMPLETED_FAILURE

RETRYING is reachable only from RUNNING, once per command invocation.
Both completed states are terminal.

The retry allowance is per invocation, not per operation. Multi-step
operations call ``next_invocation()`` before each further command, which
adds a RETRYING -> RUNNING edge and restores the allowance, so each step
of an update-then-upgrade may enter RETRYING once.
"""

from __future__ import annotations

import logging
from typing import List

from aptops.errors import IllegalTransitionError
from aptops.models import OperationState

__all__ = ["OperationTracker"]

logger = logging.getLogger(__name__)


class OperationTracker:
    """Records and validates the state transitions of one operation."""

    def __init__(self, operation: str = ""):
        self.operation = operation
        self.state = OperationState.PENDING
        self.history: List[OperationState] = [OperationState.PENDING]
        self._retried = False

    def _move(self, target: OperationState) -> None:
        logger.debug("%s: %s -> %s", self.operation or "operation", self.state.value, target.value)
        self.state = target
        self.history.append(target)

    def start(self) -> None:
        if self.state is not OperationState.PENDING:
            raise IllegalTransitionError(self.state.value, OperationState.RUNNING.value)
        self._move(OperationState.RUNNING)

    def retrying(self) -> None:
        if self.state is not OperationState.RUNNING or self._retried:
            raise IllegalTransitionError(self.state.value, OperationState.RETRYING.value)
        self._retried = True
        self._move(OperationState.RETRYING)

    def next_invocation(self) -> None:
        """Begin another command within the same operation."""
        if self.state is OperationState.PENDING:
            self.start()
        elif self.state is OperationState.RETRYING:
            self._move(OperationState.RUNNING)
        elif self.state.is_terminal:
            raise IllegalTransitionError(self.state.value, OperationState.RUNNING.value)
        self._retried = False

    def complete(self, success: bool) -> None:
        target = OperationState.COMPLETED_SUCCESS if success else OperationState.COMPLETED_FAILURE
        if self.state.is_terminal or self.state is OperationState.PENDING:
            raise IllegalTransitionError(self.state.value, target.value)
        self._move(target)

    @property
    def retried(self) -> bool:
        return OperationState.RETRYING in self.history
