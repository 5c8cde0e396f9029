"""
Centralized configuration for aptops.

Uses Pydantic BaseSettings for environment variable integration
and validation. All configurable values should be defined here.

Configuration sources (in order of precedence):
1. Explicit constructor arguments
2. Environment variables (APTOPS_*)
3. .env file
4. Default values

Example:
    from aptops.config import get_config

    config = get_config()
    print(config.privilege_command)  # From APTOPS_PRIVILEGE_COMMAND or "sudo"

    # Override at runtime
    config = get_config(privilege_command="")
"""

from __future__ import annotations

from typing import Dict, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from aptops.timeouts import (
    LOCK_RETRY_BUDGET_CEILING,
    LOCK_RETRY_DELAY_MS,
    LOCK_RETRY_MAX_RETRIES,
    OUTPUT_BUFFER_LIMIT_BYTES,
)


class AptOpsConfig(BaseSettings):
    """
    Central configuration for aptops.

    All settings can be overridden via environment variables
    prefixed with APTOPS_.

    Example:
        export APTOPS_PRIVILEGE_COMMAND="sudo -n"
        export APTOPS_LOG_FORMAT=text
    """

    model_config = SettingsConfigDict(
        env_prefix="APTOPS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Service identification
    service_name: str = Field(
        default="aptops",
        description="Service name for log and span attribution",
    )

    # Command construction
    privilege_command: str = Field(
        default="sudo",
        description="Prefix for privileged commands (empty when already root)",
    )
    apt_binary: str = Field(default="apt", description="apt executable")
    apt_cache_binary: str = Field(default="apt-cache", description="apt-cache executable")
    dpkg_binary: str = Field(default="dpkg", description="dpkg executable")
    env_overrides: Dict[str, str] = Field(
        default_factory=dict,
        description="Environment variables set for every command",
    )

    # Process execution
    output_buffer_limit: int = Field(
        default=OUTPUT_BUFFER_LIMIT_BYTES,
        ge=1024,
        description="Maximum bytes captured per stream for one command",
    )

    # Retry
    max_retries: int = Field(
        default=LOCK_RETRY_MAX_RETRIES,
        ge=0,
        le=LOCK_RETRY_BUDGET_CEILING,
        description="Re-invocations after a package-lock failure",
    )
    retry_delay_ms: int = Field(
        default=LOCK_RETRY_DELAY_MS,
        ge=0,
        description="Delay before retrying a package-lock failure",
    )

    # Logging
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Logging level for aptops",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format (json for collectors, text for console)",
    )
    include_logs: bool = Field(
        default=False,
        description="Attach operation log lines to each OperationResult",
    )

    @field_validator("privilege_command")
    @classmethod
    def strip_privilege_command(cls, v: str) -> str:
        return v.strip()

    @property
    def retry_delay_s(self) -> float:
        return self.retry_delay_ms / 1000.0


# Global singleton
_config: Optional[AptOpsConfig] = None


def get_config(**overrides) -> AptOpsConfig:
    """
    Get the global configuration instance.

    Creates a singleton on first call. Subsequent calls return
    the same instance unless overrides are provided.

    Args:
        **overrides: Override any config values

    Returns:
        AptOpsConfig instance
    """
    global _config

    if overrides or _config is None:
        _config = AptOpsConfig(**overrides)

    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
