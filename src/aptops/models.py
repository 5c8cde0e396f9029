"""
Pydantic models for command execution and operation results.

These models describe a single command invocation (``CommandSpec``), what
came back from it (``RawOutcome``), and the one result handed back to the
caller per operation (``OperationResult``). All of them are immutable once
constructed.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from aptops.timeouts import OUTPUT_BUFFER_LIMIT_BYTES

__all__ = [
    "CommandSpec",
    "ErrorKind",
    "ErrorInfo",
    "RawOutcome",
    "RetryDecision",
    "OperationResult",
    "ProgressState",
    "OperationState",
]


class ErrorKind(str, Enum):
    """How an invocation failed."""
    SPAWN = "spawn"
    EXIT = "exit"
    OUTPUT_LIMIT = "output_limit"


class RetryDecision(str, Enum):
    """Classification of a failed invocation's stderr."""
    TRANSIENT = "transient"
    TERMINAL = "terminal"


class OperationState(str, Enum):
    """Lifecycle states of a single operation."""
    PENDING = "pending"
    RUNNING = "running"
    RETRYING = "retrying"
    COMPLETED_SUCCESS = "completed_success"
    COMPLETED_FAILURE = "completed_failure"

    @property
    def is_terminal(self) -> bool:
        return self in (OperationState.COMPLETED_SUCCESS, OperationState.COMPLETED_FAILURE)


class CommandSpec(BaseModel):
    """One shell command to run, with its environment and output bound."""

    model_config = ConfigDict(frozen=True)

    command: str = Field(..., min_length=1, description="Executable and arguments")
    env: Optional[Dict[str, str]] = Field(
        default=None,
        description="Variables overlaid on the inherited environment",
    )
    output_buffer_limit: int = Field(
        default=OUTPUT_BUFFER_LIMIT_BYTES,
        gt=0,
        description="Maximum bytes captured per stream",
    )


class ErrorInfo(BaseModel):
    """Why an invocation did not succeed."""

    model_config = ConfigDict(frozen=True)

    message: str
    raw_stderr: str = ""
    kind: ErrorKind = ErrorKind.EXIT
    exit_code: Optional[int] = None


class RawOutcome(BaseModel):
    """Everything observed from one process invocation."""

    model_config = ConfigDict(frozen=True)

    exit_error: Optional[ErrorInfo] = None
    stdout: str = ""
    stderr: str = ""
    attempts: int = Field(default=1, ge=1, le=2)

    @property
    def succeeded(self) -> bool:
        return self.exit_error is None

    @property
    def error_detail(self) -> str:
        """stderr when present, otherwise the error message."""
        if self.stderr:
            return self.stderr
        if self.exit_error is not None:
            return self.exit_error.message
        return ""


class OperationResult(BaseModel):
    """
    The single artifact returned for a caller-visible operation.

    ``render()`` produces the text form shown to users: a result line, a
    summary line, then ``[stdout]``, ``[stderr]`` and ``[logs]`` blocks,
    each only when it has content.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    summary: str
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    logs: Tuple[str, ...] = ()

    def render(self) -> str:
        text = f"Result: {'SUCCESS' if self.success else 'ERROR'}\nSummary: {self.summary}\n"
        if self.stdout:
            text += f"\n[stdout]\n{self.stdout}"
        if self.stderr:
            text += f"\n[stderr]\n{self.stderr}"
        if self.logs:
            text += "\n[logs]\n" + "\n".join(self.logs)
        return text

    def with_logs(self, logs) -> "OperationResult":
        return self.model_copy(update={"logs": tuple(logs)})


class ProgressState(BaseModel):
    """Step counters for a multi-step operation."""

    model_config = ConfigDict(frozen=True)

    completed_steps: int = Field(..., ge=0)
    total_steps: int = Field(..., ge=0)

    @model_validator(mode="after")
    def check_bounds(self) -> "ProgressState":
        if self.completed_steps > self.total_steps:
            raise ValueError(
                f"completed_steps ({self.completed_steps}) exceeds total_steps ({self.total_steps})"
            )
        return self
