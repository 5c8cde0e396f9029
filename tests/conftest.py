"""
Pytest configuration and fixtures for aptops tests.
"""

from __future__ import annotations

import os
from typing import Dict, Generator

import pytest

from aptops.config import AptOpsConfig, reset_config


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def test_env() -> Dict[str, str]:
    """Test environment variables."""
    return {
        "APTOPS_SERVICE_NAME": "aptops-test",
        "APTOPS_LOG_FORMAT": "json",
    }


@pytest.fixture(autouse=True)
def set_test_env(test_env: Dict[str, str]) -> Generator[None, None, None]:
    """Set test environment variables and a clean config for each test."""
    original = {}
    for key, value in test_env.items():
        original[key] = os.environ.get(key)
        os.environ[key] = value
    reset_config()

    yield

    reset_config()
    for key, value in original.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value


@pytest.fixture
def config() -> AptOpsConfig:
    """Config with the default privilege prefix and a zero retry delay."""
    return AptOpsConfig(retry_delay_ms=0)
