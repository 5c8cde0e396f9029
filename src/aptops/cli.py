"""
aptops CLI - run apt operations and print their results.

Commands:
    aptops ping                  Check that aptops responds
    aptops install PKG...        apt update, then apt install -y
    aptops remove PKG...         apt remove -y
    aptops status PKG            Installed / upgradable / available report
    aptops update                apt update, then apt upgrade -y
    aptops list-upgradable       apt list --upgradable
    aptops upgrade PKG           apt install --only-upgrade -y
    aptops autoremove            apt autoremove -y
    aptops operations            List registered operations
    aptops call NAME --args JSON Dispatch any operation by name

Exit status is 0 when the operation succeeded and 1 otherwise.
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Dict, Optional

import click

from aptops.config import get_config
from aptops.logger import configure_logging
from aptops.registry import get_default_registry


def _echo_progress(completed: int, total: int) -> None:
    click.echo(f"[progress] {completed}/{total}", err=True)


def _dispatch(ctx: click.Context, name: str, arguments: Optional[Dict[str, Any]] = None) -> None:
    settings = ctx.obj or {}
    registry = get_default_registry(config=settings.get("config"))
    progress = _echo_progress if settings.get("progress") else None
    result = asyncio.run(registry.dispatch(name, arguments, progress=progress))
    click.echo(result.render())
    ctx.exit(0 if result.success else 1)


@click.group()
@click.version_option(package_name="aptops")
@click.option("--show-logs", is_flag=True, help="Append operation log lines to the result")
@click.option("--progress", "show_progress", is_flag=True, help="Print step progress to stderr")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default=None,
    help="Log level (default from APTOPS_LOG_LEVEL)",
)
@click.pass_context
def main(ctx: click.Context, show_logs: bool, show_progress: bool, log_level: Optional[str]):
    """aptops - privileged apt operations with structured results."""
    overrides: Dict[str, Any] = {}
    if show_logs:
        overrides["include_logs"] = True
    if log_level:
        overrides["log_level"] = log_level
    config = get_config(**overrides)
    configure_logging(config.log_level)
    ctx.obj = {"config": config, "progress": show_progress}


@main.command()
@click.pass_context
def ping(ctx):
    """Check that aptops responds."""
    _dispatch(ctx, "ping")


@main.command()
@click.argument("packages", nargs=-1, required=True)
@click.pass_context
def install(ctx, packages):
    """Install one or more packages."""
    _dispatch(ctx, "installAptPackage", {"packages": list(packages)})


@main.command()
@click.argument("packages", nargs=-1, required=True)
@click.pass_context
def remove(ctx, packages):
    """Remove one or more packages."""
    _dispatch(ctx, "removeAptPackage", {"packages": list(packages)})


@main.command()
@click.argument("package")
@click.pass_context
def status(ctx, package):
    """Show whether PACKAGE is installed, upgradable and available."""
    _dispatch(ctx, "queryAptPackageStatus", {"package": package})


@main.command()
@click.pass_context
def update(ctx):
    """Update the package list and upgrade all packages."""
    _dispatch(ctx, "updateAptPackages")


@main.command("list-upgradable")
@click.pass_context
def list_upgradable(ctx):
    """List upgradable packages."""
    _dispatch(ctx, "listUpgradableAptPackages")


@main.command()
@click.argument("package")
@click.pass_context
def upgrade(ctx, package):
    """Upgrade a single package."""
    _dispatch(ctx, "upgradeSpecificAptPackage", {"package": package})


@main.command()
@click.pass_context
def autoremove(ctx):
    """Remove automatically installed packages that are no longer needed."""
    _dispatch(ctx, "autoremoveAptPackages")


@main.command()
@click.option("--format", "output_format", type=click.Choice(["text", "json"]), default="text")
@click.pass_context
def operations(ctx, output_format):
    """List registered operations."""
    registry = get_default_registry(config=(ctx.obj or {}).get("config"))
    if output_format == "json":
        payload = [
            {
                "name": d.name,
                "description": d.description,
                "parameters": d.params_model.model_json_schema(),
            }
            for d in registry.definitions()
        ]
        click.echo(json.dumps(payload, indent=2))
        return
    for definition in registry.definitions():
        click.echo(f"{definition.name:<28} {definition.description}")


@main.command()
@click.argument("name")
@click.option("--args", "raw_args", default="{}", help="Operation arguments as a JSON object")
@click.pass_context
def call(ctx, name, raw_args):
    """Dispatch operation NAME with JSON arguments."""
    try:
        arguments = json.loads(raw_args)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--args")
    if not isinstance(arguments, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--args")
    _dispatch(ctx, name, arguments)


if __name__ == "__main__":
    sys.exit(main())
