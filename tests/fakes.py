"""Scripted collaborators shared by the aptops tests."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from aptops.models import CommandSpec, ErrorInfo, ErrorKind, RawOutcome


# ============================================================================
# Outcome helpers
# ============================================================================


def ok(stdout: str = "", stderr: str = "") -> RawOutcome:
    return RawOutcome(stdout=stdout, stderr=stderr)


def failed(stderr: str = "", stdout: str = "", message: str = "Command failed", exit_code: int = 100) -> RawOutcome:
    return RawOutcome(
        exit_error=ErrorInfo(message=message, raw_stderr=stderr, kind=ErrorKind.EXIT, exit_code=exit_code),
        stdout=stdout,
        stderr=stderr,
    )


LOCK_STDERR = (
    "E: Could not get lock /var/lib/dpkg/lock-frontend. "
    "It is held by process 4242 (apt)\n"
    "E: Unable to acquire the dpkg frontend lock (/var/lib/dpkg/lock-frontend), "
    "is another process using it?"
)


# ============================================================================
# Fake runner
# ============================================================================


class FakeRunner:
    """
    Runner returning scripted outcomes.

    ``script`` maps a command substring to the outcomes returned, in order,
    for commands containing it. The last outcome repeats once the list is
    exhausted. Unmatched commands succeed with empty output.
    """

    def __init__(self, script: Optional[Dict[str, Sequence[RawOutcome]]] = None):
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.calls: List[CommandSpec] = []

    @property
    def commands(self) -> List[str]:
        return [spec.command for spec in self.calls]

    def count(self, fragment: str) -> int:
        return sum(1 for cmd in self.commands if fragment in cmd)

    async def run(self, spec: CommandSpec) -> RawOutcome:
        self.calls.append(spec)
        for fragment, outcomes in self.script.items():
            if fragment in spec.command:
                if len(outcomes) > 1:
                    return outcomes.pop(0)
                return outcomes[0]
        return ok()


class RaisingRunner:
    """Runner that raises for commands containing a fragment."""

    def __init__(self, fragment: str, exc: Exception):
        self.fragment = fragment
        self.exc = exc
        self.calls: List[CommandSpec] = []

    async def run(self, spec: CommandSpec) -> RawOutcome:
        self.calls.append(spec)
        if self.fragment in spec.command:
            raise self.exc
        return ok()


class RecordingSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class ListLogSink:
    """Log sink collecting (level, message, fields) tuples."""

    def __init__(self):
        self.entries: List[tuple] = []

    def info(self, message, **fields):
        self.entries.append(("info", message, fields))

    def warn(self, message, **fields):
        self.entries.append(("warn", message, fields))

    def error(self, message, **fields):
        self.entries.append(("error", message, fields))

    def messages(self, level: Optional[str] = None) -> List[str]:
        return [m for lvl, m, _ in self.entries if level is None or lvl == level]
