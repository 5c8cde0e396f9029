"""
Operation handlers.

Each handler takes validated arguments plus an ``OperationContext`` and
returns exactly one ``OperationResult``. Handlers compose command
invocations (through the retry policy, or straight through the runner for
the lightweight status checks) and hand the raw outcomes to the
normalizer. They never raise for command failures.

Operations:
    ping                        Liveness check
    installAptPackage           apt update, then apt install -y
    removeAptPackage            apt remove -y
    queryAptPackageStatus       installed / upgradable / available report
    updateAptPackages           apt update, then apt upgrade -y
    listUpgradableAptPackages   apt list --upgradable
    upgradeSpecificAptPackage   apt install --only-upgrade -y
    autoremoveAptPackages       apt autoremove -y
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Annotated, Awaitable, Callable, List, Type

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from aptops.commands import AptCommands
from aptops.lifecycle import OperationTracker
from aptops.logger import LogSink
from aptops.models import CommandSpec, OperationResult, RawOutcome
from aptops.normalizer import (
    PackageStatus,
    StepOutcome,
    aggregation_failure,
    normalize,
    normalize_sequence,
    render_status_report,
)
from aptops.progress import ProgressReporter
from aptops.retry import CommandRunner, RetryPolicy

__all__ = [
    "NoArgs",
    "PackagesArgs",
    "PackageArgs",
    "OperationContext",
    "OperationDefinition",
    "DEFAULT_OPERATIONS",
]

logger = logging.getLogger(__name__)

PACKAGE_NAME_PATTERN = r"^[a-zA-Z0-9._+-]+$"

PackageName = Annotated[str, StringConstraints(min_length=1, pattern=PACKAGE_NAME_PATTERN)]


# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------

class NoArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")


class PackagesArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    packages: List[PackageName] = Field(..., min_length=1)


class PackageArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    package: PackageName


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------

@dataclass
class OperationContext:
    """Collaborators available to a handler for the span of one operation."""
    log: LogSink
    progress: ProgressReporter
    tracker: OperationTracker
    commands: AptCommands
    runner: CommandRunner
    retry: RetryPolicy

    async def run(self, spec: CommandSpec) -> RawOutcome:
        """Run a command through the retry policy, as the next invocation."""
        self.tracker.next_invocation()
        return await self.retry.execute(spec, log=self.log, tracker=self.tracker)

    async def run_once(self, spec: CommandSpec) -> RawOutcome:
        """Run a command directly, with no retry."""
        return await self.runner.run(spec)


Handler = Callable[[BaseModel, OperationContext], Awaitable[OperationResult]]


@dataclass(frozen=True)
class OperationDefinition:
    """An entry in the dispatch table."""
    name: str
    description: str
    params_model: Type[BaseModel]
    handler: Handler


# ---------------------------------------------------------------------------
# Shared single-command flow
# ---------------------------------------------------------------------------

async def _run_single(
    ctx: OperationContext,
    spec: CommandSpec,
    operation: str,
    success_summary: str,
    running_message: str,
    failed_message: str,
    succeeded_message: str,
) -> OperationResult:
    ctx.log.info(running_message, cmd=spec.command)
    outcome = await ctx.run(spec)
    if outcome.succeeded:
        ctx.log.info(succeeded_message, stdout=outcome.stdout)
    else:
        ctx.log.error(failed_message, error=outcome.exit_error.message, stderr=outcome.stderr)
    return normalize(outcome, operation=operation, success_summary=success_summary)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def ping(args: NoArgs, ctx: OperationContext) -> OperationResult:
    return OperationResult(success=True, summary="aptops is running.")


async def install_packages(args: PackagesArgs, ctx: OperationContext) -> OperationResult:
    """Refresh the package index, then install the requested packages.

    Neither step goes through the retry policy; a lock failure is reported
    as is.
    """
    pkg_list = " ".join(args.packages)
    ctx.progress.report(0, 2)

    ctx.log.info("Running apt update")
    update = await ctx.run_once(ctx.commands.update())
    update_step = StepOutcome("Apt update", update, failure_summary="Apt update failed before install.")
    if not update.succeeded:
        ctx.log.error("Apt update failed", error=update.exit_error.message, stderr=update.stderr)
        return normalize_sequence([update_step], success_summary="")
    ctx.log.info("Apt update succeeded", stdout=update.stdout)
    ctx.progress.report(1, 2)

    spec = ctx.commands.install(args.packages)
    ctx.log.info("Running apt install", cmd=spec.command)
    install = await ctx.run_once(spec)
    if install.succeeded:
        ctx.log.info("Apt install succeeded", stdout=install.stdout)
        ctx.progress.report(2, 2)
    else:
        ctx.log.error("Apt install failed", error=install.exit_error.message, stderr=install.stderr)

    return normalize_sequence(
        [update_step, StepOutcome("Apt install", install)],
        success_summary=f"Apt install succeeded for: {pkg_list}",
        combine=False,
    )


async def remove_packages(args: PackagesArgs, ctx: OperationContext) -> OperationResult:
    pkg_list = " ".join(args.packages)
    return await _run_single(
        ctx,
        ctx.commands.remove(args.packages),
        operation="Apt remove",
        success_summary=f"Apt remove succeeded for: {pkg_list}",
        running_message="Running apt remove",
        failed_message="Apt remove failed",
        succeeded_message="Apt remove succeeded",
    )


async def query_package_status(args: PackageArgs, ctx: OperationContext) -> OperationResult:
    """
    Report whether a package is installed, upgradable and available.

    The three checks run concurrently. A check that cannot run, or that
    fails, answers with its negative default; only an unexpected fault in
    the fan-out itself fails the operation.
    """
    pkg = args.package

    async def check_installed() -> str:
        try:
            outcome = await ctx.run_once(ctx.commands.dpkg_list(pkg))
        except Exception as e:
            logger.debug("installed check for %s failed: %s", pkg, e)
            return "not installed"
        if not outcome.succeeded:
            return "not installed"
        return "installed" if pkg in outcome.stdout else "not installed"

    async def check_upgradable() -> bool:
        try:
            outcome = await ctx.run_once(ctx.commands.list_upgradable())
        except Exception as e:
            logger.debug("upgradable check for %s failed: %s", pkg, e)
            return False
        prefix = f"{pkg}/"
        return any(line.startswith(prefix) for line in outcome.stdout.splitlines())

    async def check_available() -> str:
        try:
            outcome = await ctx.run_once(ctx.commands.cache_show(pkg))
        except Exception as e:
            logger.debug("available check for %s failed: %s", pkg, e)
            return "not available"
        return "available" if "Package:" in outcome.stdout else "not available"

    ctx.log.info("Querying package status", pkg=pkg)
    try:
        installed, upgradable, available = await asyncio.gather(
            check_installed(),
            check_upgradable(),
            check_available(),
        )
        return render_status_report(
            PackageStatus(package=pkg, installed=installed, upgradable=upgradable, available=available)
        )
    except Exception as e:
        ctx.log.error("Query package status failed", error=str(e))
        return aggregation_failure("Failed to query package status", e)


async def update_and_upgrade(args: NoArgs, ctx: OperationContext) -> OperationResult:
    """Refresh the package index, then upgrade everything."""
    ctx.progress.report(0, 3)

    ctx.log.info("Running apt update")
    update = await ctx.run(ctx.commands.update())
    ctx.progress.report(1, 3)
    if not update.succeeded:
        ctx.log.error("Apt update failed", error=update.exit_error.message, stderr=update.stderr)
        return normalize_sequence([StepOutcome("Apt update", update)], success_summary="")

    ctx.log.info("Running apt upgrade")
    upgrade = await ctx.run(ctx.commands.upgrade())
    if not upgrade.succeeded:
        ctx.progress.report(2, 3)
        ctx.log.error("Apt upgrade failed", error=upgrade.exit_error.message, stderr=upgrade.stderr)
    else:
        ctx.progress.report(3, 3)

    return normalize_sequence(
        [StepOutcome("Apt update", update), StepOutcome("Apt upgrade", upgrade)],
        success_summary="Apt update and upgrade completed successfully.",
    )


async def list_upgradable(args: NoArgs, ctx: OperationContext) -> OperationResult:
    return await _run_single(
        ctx,
        ctx.commands.list_upgradable(),
        operation="Listing upgradable packages",
        success_summary="Listed upgradable packages successfully.",
        running_message="Listing upgradable apt packages",
        failed_message="Listing upgradable packages failed",
        succeeded_message="Listed upgradable packages",
    )


async def upgrade_package(args: PackageArgs, ctx: OperationContext) -> OperationResult:
    ctx.progress.report(0, 2)
    result = await _run_single(
        ctx,
        ctx.commands.install([args.package], only_upgrade=True),
        operation="Apt only-upgrade",
        success_summary=f"Apt only-upgrade succeeded for: {args.package}",
        running_message="Running apt install --only-upgrade",
        failed_message="Apt only-upgrade failed",
        succeeded_message="Apt only-upgrade succeeded",
    )
    ctx.progress.report(2 if result.success else 1, 2)
    return result


async def autoremove(args: NoArgs, ctx: OperationContext) -> OperationResult:
    return await _run_single(
        ctx,
        ctx.commands.autoremove(),
        operation="Apt autoremove",
        success_summary="Apt autoremove completed successfully.",
        running_message="Running apt autoremove",
        failed_message="Apt autoremove failed",
        succeeded_message="Apt autoremove succeeded",
    )


DEFAULT_OPERATIONS = (
    OperationDefinition(
        name="ping",
        description="Check if the aptops service is running.",
        params_model=NoArgs,
        handler=ping,
    ),
    OperationDefinition(
        name="installAptPackage",
        description="Install one or more apt packages using sudo.",
        params_model=PackagesArgs,
        handler=install_packages,
    ),
    OperationDefinition(
        name="removeAptPackage",
        description="Remove one or more apt packages using sudo.",
        params_model=PackagesArgs,
        handler=remove_packages,
    ),
    OperationDefinition(
        name="queryAptPackageStatus",
        description="Query if a package is installed, available, or upgradable.",
        params_model=PackageArgs,
        handler=query_package_status,
    ),
    OperationDefinition(
        name="updateAptPackages",
        description="Update the apt package list and upgrade all packages using sudo.",
        params_model=NoArgs,
        handler=update_and_upgrade,
    ),
    OperationDefinition(
        name="listUpgradableAptPackages",
        description="List all upgradable apt packages.",
        params_model=NoArgs,
        handler=list_upgradable,
    ),
    OperationDefinition(
        name="upgradeSpecificAptPackage",
        description="Upgrade a specific apt package using sudo.",
        params_model=PackageArgs,
        handler=upgrade_package,
    ),
    OperationDefinition(
        name="autoremoveAptPackages",
        description=(
            "Remove packages that were automatically installed to satisfy dependencies "
            "for other packages and are now no longer needed."
        ),
        params_model=NoArgs,
        handler=autoremove,
    ),
)
