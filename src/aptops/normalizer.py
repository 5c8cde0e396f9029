"""
Result normalization: raw process outcomes in, one ``OperationResult`` out.

Three shapes are handled:

- a single command (install step, remove, only-upgrade, autoremove, list);
- an ordered sequence of commands that stops at the first failure
  (update followed by upgrade);
- the composed status report of the package status query.

Failures are described with the command's stderr when it wrote any,
otherwise with the error message from the runner.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from aptops.models import OperationResult, RawOutcome

__all__ = [
    "StepOutcome",
    "PackageStatus",
    "normalize",
    "normalize_sequence",
    "aggregation_failure",
    "render_status_report",
]


@dataclass(frozen=True)
class StepOutcome:
    """The outcome of one labeled step in a multi-step operation."""
    label: str
    outcome: RawOutcome
    failure_summary: Optional[str] = None


@dataclass(frozen=True)
class PackageStatus:
    """Answers from the three status sub-checks."""
    package: str
    installed: str
    upgradable: bool
    available: str


def _failure_summary(operation: str, outcome: RawOutcome) -> str:
    return f"{operation} failed: {outcome.error_detail}"


def normalize(outcome: RawOutcome, operation: str, success_summary: str) -> OperationResult:
    """Normalize a single-command operation."""
    if outcome.succeeded:
        summary = success_summary
    else:
        summary = _failure_summary(operation, outcome)
    return OperationResult(
        success=outcome.succeeded,
        summary=summary,
        stdout=outcome.stdout,
        stderr=outcome.stderr,
    )


def normalize_sequence(
    steps: Sequence[StepOutcome],
    success_summary: str,
    combine: bool = True,
) -> OperationResult:
    """
    Normalize an ordered, short-circuiting sequence of steps.

    The first failed step decides the result and only its streams are
    reported. When every step succeeded, ``combine`` joins the labeled
    stdout of all steps and their non-empty stderr; otherwise the final
    step's streams pass through unchanged.
    """
    if not steps:
        raise ValueError("normalize_sequence requires at least one step")

    for step in steps:
        if not step.outcome.succeeded:
            return OperationResult(
                success=False,
                summary=step.failure_summary or _failure_summary(step.label, step.outcome),
                stdout=step.outcome.stdout,
                stderr=step.outcome.stderr,
            )

    if not combine:
        last = steps[-1].outcome
        return OperationResult(
            success=True,
            summary=success_summary,
            stdout=last.stdout,
            stderr=last.stderr,
        )

    stdout = "\n".join(f"{step.label.lower()} stdout:\n{step.outcome.stdout}" for step in steps)
    stderr = "\n".join(step.outcome.stderr for step in steps if step.outcome.stderr)
    return OperationResult(success=True, summary=success_summary, stdout=stdout, stderr=stderr)


def aggregation_failure(context: str, exc: BaseException) -> OperationResult:
    """Result for an internal fault while sequencing or fanning out."""
    return OperationResult(success=False, summary=f"{context}: {exc}")


def render_status_report(status: PackageStatus) -> OperationResult:
    """Compose the package status report."""
    report = f"Package: {status.package}\n"
    report += f"Installed: {status.installed}\n"
    if status.upgradable:
        report += "Upgradable: yes\n"
    report += f"Available: {status.available}"
    summary = (
        f"Status for package {status.package}: Installed={status.installed}, "
        f"Upgradable={'true' if status.upgradable else 'false'}, Available={status.available}"
    )
    return OperationResult(success=True, summary=summary, stdout=report)
