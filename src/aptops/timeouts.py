"""
Timing and retry constants for aptops.

Centralizes the values the command layer depends on so that the retry
policy, the process runner and the configuration defaults agree.
"""

from __future__ import annotations

# =============================================================================
# Process Output
# =============================================================================

# Maximum bytes captured per stream (stdout, stderr) for one invocation
OUTPUT_BUFFER_LIMIT_BYTES = 1024 * 1024

# Chunk size used when draining child process pipes
OUTPUT_READ_CHUNK_BYTES = 64 * 1024

# =============================================================================
# Retry Configuration
# =============================================================================

# Number of re-invocations allowed after a transient lock failure
LOCK_RETRY_MAX_RETRIES = 1

# Hard ceiling on the retry budget, whatever the configuration says
LOCK_RETRY_BUDGET_CEILING = 1

# Delay between the failed attempt and the retry
LOCK_RETRY_DELAY_MS = 1000

# stderr fragments that identify a held package-database lock
LOCK_SIGNATURE_PATTERNS = (
    r"Could not get lock",
    r"is another process using it",
)
