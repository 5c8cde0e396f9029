"""
Retry policy for package-lock contention.

apt and dpkg refuse to run while another process holds the package
database lock. That is the only common failure that clears on its own,
so it is the only one retried: once, after a fixed delay. Every other
failure (missing package, broken dependencies, spawn failure, output
overrun) is returned to the caller untouched.

The transient/terminal decision is made by a classifier function so the
signature set can be extended or tested on its own:

    policy = RetryPolicy(runner, classifier=LockSignatureClassifier([r"dpkg was interrupted"]))
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Awaitable, Callable, Iterable, Optional, Protocol

from opentelemetry import trace

from aptops.lifecycle import OperationTracker
from aptops.logger import LogSink, NullLogSink
from aptops.models import CommandSpec, ErrorKind, RawOutcome, RetryDecision
from aptops.timeouts import (
    LOCK_RETRY_BUDGET_CEILING,
    LOCK_RETRY_DELAY_MS,
    LOCK_RETRY_MAX_RETRIES,
    LOCK_SIGNATURE_PATTERNS,
)
from aptops.tracing import get_tracer, record_outcome

__all__ = [
    "CommandRunner",
    "Classifier",
    "LockSignatureClassifier",
    "classify_stderr",
    "RetryPolicy",
]

logger = logging.getLogger(__name__)


class CommandRunner(Protocol):
    """Anything that turns a CommandSpec into a RawOutcome."""

    async def run(self, spec: CommandSpec) -> RawOutcome: ...


Classifier = Callable[[str], RetryDecision]


class LockSignatureClassifier:
    """Classifies stderr as transient when it matches a lock signature."""

    def __init__(self, extra_patterns: Optional[Iterable[str]] = None):
        patterns = list(LOCK_SIGNATURE_PATTERNS)
        if extra_patterns:
            patterns.extend(extra_patterns)
        self.patterns = tuple(patterns)
        self._regex = re.compile("|".join(f"(?:{p})" for p in self.patterns))

    def __call__(self, stderr: str) -> RetryDecision:
        if stderr and self._regex.search(stderr):
            return RetryDecision.TRANSIENT
        return RetryDecision.TERMINAL


classify_stderr: Classifier = LockSignatureClassifier()


class RetryPolicy:
    """
    Wraps a runner with a one-shot retry on lock contention.

    Args:
        runner: Executes individual commands
        max_retries: Re-invocations allowed (capped at 1)
        delay_s: Pause before the retry
        classifier: stderr -> RetryDecision
        sleep: Awaitable sleep, replaceable in tests
        tracer: OpenTelemetry tracer for per-attempt spans
    """

    def __init__(
        self,
        runner: CommandRunner,
        max_retries: int = LOCK_RETRY_MAX_RETRIES,
        delay_s: float = LOCK_RETRY_DELAY_MS / 1000.0,
        classifier: Classifier = classify_stderr,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        tracer: Optional[trace.Tracer] = None,
    ):
        self.runner = runner
        self.max_retries = max(0, min(max_retries, LOCK_RETRY_BUDGET_CEILING))
        self.delay_s = delay_s
        self.classifier = classifier
        self._sleep = sleep
        self._tracer = tracer or get_tracer()

    def decide(self, outcome: RawOutcome) -> RetryDecision:
        """Classify a finished invocation."""
        error = outcome.exit_error
        if error is None or error.kind is not ErrorKind.EXIT:
            return RetryDecision.TERMINAL
        if not outcome.stderr:
            return RetryDecision.TERMINAL
        return self.classifier(error.raw_stderr or outcome.stderr)

    async def _attempt(self, spec: CommandSpec, attempt: int) -> RawOutcome:
        with self._tracer.start_as_current_span("apt.command") as span:
            span.set_attribute("command", spec.command)
            span.set_attribute("command.attempt", attempt)
            outcome = await self.runner.run(spec)
            record_outcome(span, outcome)
            return outcome

    async def execute(
        self,
        spec: CommandSpec,
        log: Optional[LogSink] = None,
        tracker: Optional[OperationTracker] = None,
    ) -> RawOutcome:
        """Run ``spec``, retrying once if it failed on the package lock."""
        log = log or NullLogSink()
        outcome = await self._attempt(spec, 1)

        if self.max_retries < 1 or self.decide(outcome) is not RetryDecision.TRANSIENT:
            return outcome

        log.warn("Transient error detected, retrying...", cmd=spec.command, stderr=outcome.stderr)
        if tracker is not None:
            tracker.retrying()
        logger.debug("Retrying %s after %.3fs", spec.command, self.delay_s)
        await self._sleep(self.delay_s)

        retried = await self._attempt(spec, 2)
        return retried.model_copy(update={"attempts": 2})
