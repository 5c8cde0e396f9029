"""
aptops - privileged apt operations with structured, human-readable results.

This package runs apt, apt-cache and dpkg commands on behalf of a caller
(a tool server, a CLI, an automation script), retries the one failure
that clears on its own (package-database lock contention), reports step
progress for multi-step operations, and normalizes every outcome into a
single ``OperationResult``.

Key Features:
- Dispatch table of named operations with validated arguments
- One-shot retry on "Could not get lock" style failures
- Deterministic text rendering of results
- Structured JSON logs and OpenTelemetry spans

Example usage:
    import asyncio
    from aptops import get_default_registry

    registry = get_default_registry()
    result = asyncio.run(registry.dispatch("queryAptPackageStatus", {"package": "curl"}))
    print(result.render())
"""

__version__ = "0.1.0"
__all__ = [
    "OperationResult",
    "OperationRegistry",
    "get_default_registry",
    "get_config",
    "__version__",
]


# Lazy imports to avoid loading pydantic and opentelemetry at import time
def __getattr__(name: str):
    if name == "OperationResult":
        from aptops.models import OperationResult
        return OperationResult
    if name == "OperationRegistry":
        from aptops.registry import OperationRegistry
        return OperationRegistry
    if name == "get_default_registry":
        from aptops.registry import get_default_registry
        return get_default_registry
    if name == "get_config":
        from aptops.config import get_config
        return get_config
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
