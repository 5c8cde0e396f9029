"""Exceptions raised by aptops for caller and programming errors.

Child-process failures are never raised; they are captured into
``RawOutcome.exit_error`` and normalized into an ``OperationResult``.
"""

from __future__ import annotations

__all__ = [
    "AptOpsError",
    "UnknownOperationError",
    "IllegalTransitionError",
    "ProgressRegressionError",
]


class AptOpsError(Exception):
    """Base class for aptops errors."""
    pass


class UnknownOperationError(AptOpsError):
    """Raised when dispatch is asked for an operation that is not registered."""

    def __init__(self, name: str, known: list[str]):
        self.name = name
        self.known = known
        super().__init__(
            f"Unknown operation '{name}'. Known operations: {', '.join(sorted(known))}"
        )


class IllegalTransitionError(AptOpsError):
    """Raised when an operation's lifecycle is driven out of order."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Illegal operation state transition: {current} -> {target}")


class ProgressRegressionError(AptOpsError):
    """Raised when reported progress would move backwards."""
    pass
