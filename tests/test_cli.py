"""
Tests for the aptops CLI.
"""

import json
import logging
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from aptops.cli import main
from aptops.registry import get_default_registry

from fakes import FakeRunner, RecordingSleep, failed, ok


@pytest.fixture
def cli():
    return CliRunner()


@pytest.fixture
def fake_runner():
    return FakeRunner({
        "apt install": [ok("Setting up curl...")],
        "apt remove": [failed("E: Unable to locate package curl")],
        "dpkg -l": [ok("ii  curl  7.81.0")],
        "apt-cache show": [ok("Package: curl")],
    })


@pytest.fixture(autouse=True)
def patched_registry(fake_runner):
    def build(config=None):
        return get_default_registry(config=config, runner=fake_runner, sleep=RecordingSleep())

    with patch("aptops.cli.get_default_registry", side_effect=build):
        yield
    logging.getLogger("aptops").handlers.clear()


class TestOperationCommands:

    def test_ping(self, cli):
        result = cli.invoke(main, ["ping"])
        assert result.exit_code == 0
        assert "Result: SUCCESS" in result.output

    def test_install(self, cli, fake_runner):
        result = cli.invoke(main, ["install", "curl"])
        assert result.exit_code == 0
        assert "Summary: Apt install succeeded for: curl" in result.output
        assert "[stdout]\nSetting up curl..." in result.output
        assert fake_runner.commands == ["sudo apt update", "sudo apt install -y curl"]

    def test_remove_failure_exit_code(self, cli):
        result = cli.invoke(main, ["remove", "curl"])
        assert result.exit_code == 1
        assert "Result: ERROR" in result.output
        assert "E: Unable to locate package curl" in result.output

    def test_status(self, cli):
        result = cli.invoke(main, ["status", "curl"])
        assert result.exit_code == 0
        assert "Installed: installed" in result.output
        assert "Available: available" in result.output

    def test_invalid_package_name(self, cli, fake_runner):
        result = cli.invoke(main, ["upgrade", "curl;reboot"])
        assert result.exit_code == 1
        assert "Invalid arguments for upgradeSpecificAptPackage" in result.output
        assert fake_runner.calls == []

    def test_progress_flag(self, cli):
        result = cli.invoke(main, ["--progress", "update"])
        assert result.exit_code == 0
        assert "[progress] 3/3" in result.output

    def test_show_logs_flag(self, cli):
        result = cli.invoke(main, ["--show-logs", "autoremove"])
        assert result.exit_code == 0
        assert "[logs]\nINFO: Running apt autoremove" in result.output


class TestCall:

    def test_call_by_name(self, cli):
        result = cli.invoke(main, ["call", "installAptPackage", "--args", '{"packages": ["curl"]}'])
        assert result.exit_code == 0
        assert "Apt install succeeded for: curl" in result.output

    def test_call_unknown_operation(self, cli):
        result = cli.invoke(main, ["call", "nope"])
        assert result.exit_code == 1
        assert "Result: ERROR" in result.output
        assert "Unknown operation 'nope'" in result.output

    def test_call_bad_json(self, cli):
        result = cli.invoke(main, ["call", "ping", "--args", "{not json"])
        assert result.exit_code == 2
        assert "not valid JSON" in result.output


class TestOperationsListing:

    def test_text(self, cli):
        result = cli.invoke(main, ["operations"])
        assert result.exit_code == 0
        assert "queryAptPackageStatus" in result.output
        assert "autoremoveAptPackages" in result.output

    def test_json(self, cli):
        result = cli.invoke(main, ["operations", "--format", "json"])
        payload = json.loads(result.output)
        install = next(op for op in payload if op["name"] == "installAptPackage")
        assert "packages" in install["parameters"]["properties"]
