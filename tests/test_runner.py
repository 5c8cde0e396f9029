"""
Tests for ProcessRunner against real shell commands.
"""

import asyncio
from unittest.mock import patch

from aptops.models import CommandSpec, ErrorKind
from aptops.runner import ProcessRunner


def run(spec: CommandSpec):
    return asyncio.run(ProcessRunner().run(spec))


class TestSuccess:

    def test_captures_stdout_and_stderr(self):
        outcome = run(CommandSpec(command="echo out; echo err 1>&2"))
        assert outcome.succeeded
        assert outcome.stdout == "out\n"
        assert outcome.stderr == "err\n"
        assert outcome.attempts == 1

    def test_environment_overrides_applied(self):
        outcome = run(CommandSpec(command='echo "$APTOPS_RUNNER_TEST"', env={"APTOPS_RUNNER_TEST": "hello"}))
        assert outcome.stdout == "hello\n"

    def test_environment_inherited(self):
        outcome = run(CommandSpec(command='echo "$APTOPS_SERVICE_NAME"', env={"OTHER": "1"}))
        assert outcome.stdout == "aptops-test\n"


class TestFailure:

    def test_nonzero_exit(self):
        outcome = run(CommandSpec(command="echo partial; echo 'E: Unable to locate package nope' 1>&2; exit 100"))
        assert not outcome.succeeded
        assert outcome.exit_error.kind is ErrorKind.EXIT
        assert outcome.exit_error.exit_code == 100
        assert outcome.exit_error.raw_stderr == "E: Unable to locate package nope\n"
        assert outcome.stdout == "partial\n"
        assert "Command failed" in outcome.exit_error.message

    def test_missing_executable_is_unsuccessful_outcome(self):
        outcome = run(CommandSpec(command="aptops-definitely-not-a-binary --version"))
        assert not outcome.succeeded
        assert outcome.exit_error.kind is ErrorKind.EXIT
        assert outcome.exit_error.exit_code == 127

    def test_spawn_failure_is_captured(self):
        async def refuse(*args, **kwargs):
            raise PermissionError("permission denied")

        with patch("aptops.runner.asyncio.create_subprocess_shell", refuse):
            outcome = run(CommandSpec(command="sudo apt update"))

        assert not outcome.succeeded
        assert outcome.exit_error.kind is ErrorKind.SPAWN
        assert "permission denied" in outcome.exit_error.message
        assert outcome.stdout == ""
        assert outcome.stderr == ""


class TestOutputLimit:

    def test_stdout_over_limit(self):
        spec = CommandSpec(command="head -c 5000 /dev/zero | tr '\\0' 'a'", output_buffer_limit=1024)
        outcome = run(spec)
        assert not outcome.succeeded
        assert outcome.exit_error.kind is ErrorKind.OUTPUT_LIMIT
        assert outcome.exit_error.message == "stdout maxBuffer length exceeded"
        assert len(outcome.stdout) == 1024

    def test_stderr_over_limit(self):
        spec = CommandSpec(command="head -c 5000 /dev/zero | tr '\\0' 'b' 1>&2", output_buffer_limit=2048)
        outcome = run(spec)
        assert outcome.exit_error.kind is ErrorKind.OUTPUT_LIMIT
        assert outcome.exit_error.message == "stderr maxBuffer length exceeded"
        assert len(outcome.stderr) == 2048

    def test_output_at_limit_is_fine(self):
        spec = CommandSpec(command="head -c 1024 /dev/zero | tr '\\0' 'c'", output_buffer_limit=1024)
        outcome = run(spec)
        assert outcome.succeeded
        assert len(outcome.stdout) == 1024
