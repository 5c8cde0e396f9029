"""
Builders for every command aptops is allowed to run.

No other module forms command strings. Privileged commands get the
configured privilege prefix (``sudo`` unless configured otherwise);
query commands run unprivileged. Package tokens are shell-quoted.
"""

from __future__ import annotations

import shlex
from typing import Iterable, Optional

from aptops.config import AptOpsConfig, get_config
from aptops.models import CommandSpec

__all__ = ["AptCommands"]


class AptCommands:
    """Produces ``CommandSpec`` objects for apt, apt-cache and dpkg."""

    def __init__(self, config: Optional[AptOpsConfig] = None):
        self.config = config or get_config()

    def _spec(self, command: str) -> CommandSpec:
        return CommandSpec(
            command=command,
            env=dict(self.config.env_overrides) or None,
            output_buffer_limit=self.config.output_buffer_limit,
        )

    def _privileged(self, *parts: str) -> CommandSpec:
        prefix = [self.config.privilege_command] if self.config.privilege_command else []
        return self._spec(" ".join(prefix + [self.config.apt_binary, *parts]))

    @staticmethod
    def _quote_all(packages: Iterable[str]) -> str:
        return " ".join(shlex.quote(p) for p in packages)

    # Privileged

    def update(self) -> CommandSpec:
        return self._privileged("update")

    def upgrade(self) -> CommandSpec:
        return self._privileged("upgrade", "-y")

    def install(self, packages: Iterable[str], only_upgrade: bool = False) -> CommandSpec:
        flags = ["install", "--only-upgrade", "-y"] if only_upgrade else ["install", "-y"]
        return self._privileged(*flags, self._quote_all(packages))

    def remove(self, packages: Iterable[str]) -> CommandSpec:
        return self._privileged("remove", "-y", self._quote_all(packages))

    def autoremove(self) -> CommandSpec:
        return self._privileged("autoremove", "-y")

    # Unprivileged queries

    def list_upgradable(self) -> CommandSpec:
        # apt warns about its unstable CLI on stderr when piped
        return self._spec(f"{self.config.apt_binary} list --upgradable 2>/dev/null")

    def dpkg_list(self, package: str) -> CommandSpec:
        return self._spec(f"{self.config.dpkg_binary} -l {shlex.quote(package)}")

    def cache_show(self, package: str) -> CommandSpec:
        return self._spec(f"{self.config.apt_cache_binary} show {shlex.quote(package)}")
