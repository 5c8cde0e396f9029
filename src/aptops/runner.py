"""
Process runner: executes one shell command and captures what it produced.

The runner never raises for process failures. A command that cannot be
started, exits non-zero, or writes more than its buffer limit still comes
back as a ``RawOutcome``, with ``exit_error`` describing what went wrong.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from typing import Dict, List, Optional

from aptops.models import CommandSpec, ErrorInfo, ErrorKind, RawOutcome
from aptops.timeouts import OUTPUT_READ_CHUNK_BYTES

__all__ = ["ProcessRunner"]

logger = logging.getLogger(__name__)


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


class ProcessRunner:
    """Runs a ``CommandSpec`` as a child process via the shell."""

    def __init__(self, chunk_size: int = OUTPUT_READ_CHUNK_BYTES):
        self.chunk_size = chunk_size

    def _build_env(self, spec: CommandSpec) -> Optional[Dict[str, str]]:
        if not spec.env:
            return None
        env = dict(os.environ)
        env.update(spec.env)
        return env

    @staticmethod
    def _kill(proc: asyncio.subprocess.Process) -> None:
        """Kill the child and everything in its session."""
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            try:
                proc.kill()
            except ProcessLookupError:
                pass

    async def _drain(self, stream: asyncio.StreamReader, buffer: bytearray, limit: int) -> bool:
        """Read ``stream`` into ``buffer`` until EOF. Returns True on overflow."""
        while True:
            chunk = await stream.read(self.chunk_size)
            if not chunk:
                return False
            buffer.extend(chunk)
            if len(buffer) > limit:
                del buffer[limit:]
                return True

    async def run(self, spec: CommandSpec) -> RawOutcome:
        """Execute ``spec`` and wait for the child to terminate."""
        logger.debug("Spawning command: %s", spec.command)
        try:
            proc = await asyncio.create_subprocess_shell(
                spec.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._build_env(spec),
                start_new_session=True,
            )
        except OSError as e:
            logger.debug("Spawn failed for %s: %s", spec.command, e)
            return RawOutcome(
                exit_error=ErrorInfo(
                    message=f"Failed to spawn '{spec.command}': {e}",
                    kind=ErrorKind.SPAWN,
                ),
            )

        buffers = {"stdout": bytearray(), "stderr": bytearray()}
        tasks = {
            asyncio.ensure_future(
                self._drain(proc.stdout, buffers["stdout"], spec.output_buffer_limit)
            ): "stdout",
            asyncio.ensure_future(
                self._drain(proc.stderr, buffers["stderr"], spec.output_buffer_limit)
            ): "stderr",
        }

        overflowed: List[str] = []
        pending = set(tasks)
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if task.result():
                    overflowed.append(tasks[task])
            if overflowed:
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
                pending = set()
                self._kill(proc)

        returncode = await proc.wait()
        stdout = _decode(bytes(buffers["stdout"]))
        stderr = _decode(bytes(buffers["stderr"]))

        if overflowed:
            stream_name = overflowed[0]
            logger.debug("Output limit exceeded on %s for %s", stream_name, spec.command)
            return RawOutcome(
                exit_error=ErrorInfo(
                    message=f"{stream_name} maxBuffer length exceeded",
                    raw_stderr=stderr,
                    kind=ErrorKind.OUTPUT_LIMIT,
                    exit_code=returncode,
                ),
                stdout=stdout,
                stderr=stderr,
            )

        if returncode != 0:
            if returncode < 0:
                message = f"Command terminated by signal {-returncode}: {spec.command}"
            else:
                message = f"Command failed: {spec.command} (exit code {returncode})"
            logger.debug(message)
            return RawOutcome(
                exit_error=ErrorInfo(
                    message=message,
                    raw_stderr=stderr,
                    kind=ErrorKind.EXIT,
                    exit_code=returncode,
                ),
                stdout=stdout,
                stderr=stderr,
            )

        logger.debug("Command succeeded: %s", spec.command)
        return RawOutcome(stdout=stdout, stderr=stderr)
