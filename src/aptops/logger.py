"""
Structured logging for operation events.

Operations talk to a log sink with three methods (``info``, ``warn``,
``error``), each taking a message plus optional structured fields. The
default sink, ``OperationLogger``, writes one JSON line per event to the
``aptops.operations`` logger so collectors can filter on fields:

- timestamp, level, service
- operation (the dispatched operation name)
- message and event-specific fields (cmd, stderr, error, ...)

Usage:
    from aptops.logger import OperationLogger

    log = OperationLogger(operation="removeAptPackage")
    log.info("Running apt remove", cmd="sudo apt remove -y curl")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, List, Optional, Protocol, runtime_checkable

__all__ = [
    "LogSink",
    "OperationLogger",
    "RecordingLogSink",
    "NullLogSink",
    "configure_logging",
]

_ops_logger = logging.getLogger("aptops.operations")

# Logged fields longer than this are truncated in the emitted line
_MAX_FIELD_CHARS = 4000


@runtime_checkable
class LogSink(Protocol):
    """Logging collaborator injected into every operation."""

    def info(self, message: str, **fields: Any) -> None: ...

    def warn(self, message: str, **fields: Any) -> None: ...

    def error(self, message: str, **fields: Any) -> None: ...


def _clip(value: Any) -> Any:
    if isinstance(value, str) and len(value) > _MAX_FIELD_CHARS:
        return value[:_MAX_FIELD_CHARS] + "...[truncated]"
    return value


class OperationLogger:
    """
    Structured log sink for a single operation.

    Emits JSON lines (or ``key=value`` text when ``log_format="text"``)
    through the standard logging module.
    """

    def __init__(
        self,
        operation: str = "",
        service_name: str = "aptops",
        log_format: str = "json",
        logger: Optional[logging.Logger] = None,
    ):
        self.operation = operation
        self.service_name = service_name
        self.log_format = log_format
        self._logger = logger or _ops_logger

    def _emit(self, level: str, message: str, fields: dict) -> None:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "service": self.service_name,
            "message": message,
        }
        if self.operation:
            entry["operation"] = self.operation
        entry.update({k: _clip(v) for k, v in fields.items()})

        if self.log_format == "text":
            extras = " ".join(f"{k}={v!r}" for k, v in fields.items())
            prefix = f"[{self.operation}] " if self.operation else ""
            line = f"{prefix}{message}" + (f" {extras}" if extras else "")
        else:
            line = json.dumps(entry, default=str)

        if level == "error":
            self._logger.error(line)
        elif level == "warn":
            self._logger.warning(line)
        else:
            self._logger.info(line)

    def info(self, message: str, **fields: Any) -> None:
        self._emit("info", message, fields)

    def warn(self, message: str, **fields: Any) -> None:
        self._emit("warn", message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._emit("error", message, fields)


class NullLogSink:
    """Sink that discards everything."""

    def info(self, message: str, **fields: Any) -> None:
        pass

    def warn(self, message: str, **fields: Any) -> None:
        pass

    def error(self, message: str, **fields: Any) -> None:
        pass


class RecordingLogSink:
    """
    Forwards to another sink and keeps a readable line per event.

    The recorded lines become ``OperationResult.logs`` when the
    configuration asks for logs to be attached.
    """

    def __init__(self, delegate: Optional[LogSink] = None):
        self._delegate = delegate or NullLogSink()
        self.lines: List[str] = []

    def _record(self, level: str, message: str) -> None:
        self.lines.append(f"{level.upper()}: {message}")

    def info(self, message: str, **fields: Any) -> None:
        self._record("info", message)
        self._delegate.info(message, **fields)

    def warn(self, message: str, **fields: Any) -> None:
        self._record("warn", message)
        self._delegate.warn(message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self._record("error", message)
        self._delegate.error(message, **fields)


def configure_logging(level: str = "info", stream=None) -> None:
    """Attach a plain handler to the ``aptops`` logger hierarchy.

    Log lines are already formatted by ``OperationLogger``, so the handler
    writes the bare message. Replaces the handler added by an earlier call.
    """
    root = logging.getLogger("aptops")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for existing in list(root.handlers):
        if getattr(existing, "_aptops_handler", False):
            root.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler._aptops_handler = True
    root.addHandler(handler)
