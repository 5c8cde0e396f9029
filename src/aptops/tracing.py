"""
OpenTelemetry helpers for operations and command attempts.

aptops only talks to the OpenTelemetry API. Spans go nowhere unless the
hosting process installs a TracerProvider with an exporter.

Span layout:
    aptops.operation           one per dispatched operation
      └── apt.command          one per process invocation (retries included)
"""

from __future__ import annotations

from typing import Optional

from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

from aptops.models import OperationResult, RawOutcome

__all__ = ["TRACER_NAME", "get_tracer", "record_outcome", "record_result"]

TRACER_NAME = "aptops"


def get_tracer(tracer_provider: Optional[trace.TracerProvider] = None) -> trace.Tracer:
    """Return the aptops tracer, from the given provider or the global one."""
    if tracer_provider is not None:
        return tracer_provider.get_tracer(TRACER_NAME)
    return trace.get_tracer(TRACER_NAME)


def record_outcome(span: Span, outcome: RawOutcome) -> None:
    """Copy a command outcome onto its span."""
    span.set_attribute("command.succeeded", outcome.succeeded)
    error = outcome.exit_error
    if error is None:
        span.set_status(Status(StatusCode.OK))
        return
    span.set_attribute("error.kind", error.kind.value)
    if error.exit_code is not None:
        span.set_attribute("command.exit_code", error.exit_code)
    span.set_status(Status(StatusCode.ERROR, error.message))


def record_result(span: Span, result: OperationResult) -> None:
    """Copy an operation result onto its span."""
    span.set_attribute("operation.success", result.success)
    span.set_attribute("operation.summary", result.summary)
    if result.success:
        span.set_status(Status(StatusCode.OK))
    else:
        span.set_status(Status(StatusCode.ERROR, result.summary))
