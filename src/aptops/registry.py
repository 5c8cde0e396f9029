"""
Operation dispatch table.

Maps an operation name to its definition (description, argument model,
handler) and drives one call end to end: validate the arguments, build a
fresh ``OperationContext``, run the handler under an OpenTelemetry span,
and return exactly one ``OperationResult``. Unknown names, malformed
arguments and handler faults all come back as failure results.

Usage:
    registry = get_default_registry()
    result = asyncio.run(registry.dispatch("removeAptPackage", {"packages": ["curl"]}))
    print(result.render())
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional

from opentelemetry import trace
from pydantic import ValidationError

from aptops.commands import AptCommands
from aptops.config import AptOpsConfig, get_config
from aptops.errors import UnknownOperationError
from aptops.lifecycle import OperationTracker
from aptops.logger import LogSink, OperationLogger, RecordingLogSink
from aptops.models import OperationResult
from aptops.normalizer import aggregation_failure
from aptops.operations import DEFAULT_OPERATIONS, OperationContext, OperationDefinition
from aptops.progress import ProgressReporter, ProgressSink
from aptops.retry import Classifier, CommandRunner, RetryPolicy, classify_stderr
from aptops.runner import ProcessRunner
from aptops.tracing import get_tracer, record_result

__all__ = ["OperationRegistry", "get_default_registry"]

logger = logging.getLogger(__name__)


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


class OperationRegistry:
    """
    Dispatch table of operations sharing one runner and retry policy.

    Args:
        config: Configuration (global config if omitted)
        runner: Command runner (a ProcessRunner if omitted)
        classifier: Transient-failure classifier for the retry policy
        sleep: Awaitable sleep used between retry attempts
        tracer: OpenTelemetry tracer for operation and command spans
    """

    def __init__(
        self,
        config: Optional[AptOpsConfig] = None,
        runner: Optional[CommandRunner] = None,
        classifier: Classifier = classify_stderr,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        tracer: Optional[trace.Tracer] = None,
    ):
        self.config = config or get_config()
        self.runner = runner or ProcessRunner()
        self.commands = AptCommands(self.config)
        self._tracer = tracer or get_tracer()
        self.retry = RetryPolicy(
            self.runner,
            max_retries=self.config.max_retries,
            delay_s=self.config.retry_delay_s,
            classifier=classifier,
            sleep=sleep,
            tracer=self._tracer,
        )
        self._operations: Dict[str, OperationDefinition] = {}

    def register(self, definition: OperationDefinition) -> None:
        if definition.name in self._operations:
            raise ValueError(f"Operation '{definition.name}' is already registered")
        self._operations[definition.name] = definition

    def register_all(self, definitions: Iterable[OperationDefinition]) -> None:
        for definition in definitions:
            self.register(definition)

    def get(self, name: str) -> OperationDefinition:
        try:
            return self._operations[name]
        except KeyError:
            raise UnknownOperationError(name, list(self._operations)) from None

    def names(self) -> List[str]:
        return list(self._operations)

    def definitions(self) -> List[OperationDefinition]:
        return list(self._operations.values())

    def __contains__(self, name: str) -> bool:
        return name in self._operations

    def _make_log(self, name: str, log: Optional[LogSink]) -> LogSink:
        if log is not None:
            return log
        return OperationLogger(
            operation=name,
            service_name=self.config.service_name,
            log_format=self.config.log_format,
        )

    async def dispatch(
        self,
        name: str,
        arguments: Optional[Mapping[str, Any]] = None,
        log: Optional[LogSink] = None,
        progress: Optional[ProgressSink] = None,
    ) -> OperationResult:
        """Run operation ``name`` with ``arguments`` and return its result."""
        recorder = RecordingLogSink(self._make_log(name, log))
        tracker = OperationTracker(name)

        with self._tracer.start_as_current_span("aptops.operation") as span:
            span.set_attribute("operation.name", name)
            try:
                definition = self.get(name)
            except UnknownOperationError as e:
                recorder.error("Unknown operation", operation=name)
                result = OperationResult(success=False, summary=str(e))
                record_result(span, result)
                return result

            if arguments is None:
                payload: Any = {}
            elif isinstance(arguments, Mapping):
                payload = dict(arguments)
            else:
                payload = arguments
            try:
                args = definition.params_model.model_validate(payload)
            except ValidationError as e:
                detail = _format_validation_error(e)
                recorder.error("Invalid arguments", operation=name, error=detail)
                result = OperationResult(success=False, summary=f"Invalid arguments for {name}: {detail}")
            else:
                ctx = OperationContext(
                    log=recorder,
                    progress=ProgressReporter(progress),
                    tracker=tracker,
                    commands=self.commands,
                    runner=self.runner,
                    retry=self.retry,
                )
                tracker.start()
                try:
                    result = await definition.handler(args, ctx)
                except Exception as e:
                    logger.exception("Operation %s raised", name)
                    recorder.error("Operation failed unexpectedly", error=str(e))
                    result = aggregation_failure(f"{name} failed unexpectedly", e)
                tracker.complete(result.success)

            if self.config.include_logs and recorder.lines:
                result = result.with_logs(recorder.lines)
            span.set_attribute("operation.retried", tracker.retried)
            record_result(span, result)

        return result


def get_default_registry(**kwargs) -> OperationRegistry:
    """Registry with every built-in operation registered."""
    registry = OperationRegistry(**kwargs)
    registry.register_all(DEFAULT_OPERATIONS)
    return registry
