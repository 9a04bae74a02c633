"""
Standard span attributes for chatprobe.

Attribute names are shared by every component so traces from the rate
limiter, the wait engine and the bot steps line up in one backend.
"""

# =============================================================================
# Session Attributes
# =============================================================================

ATTR_CHANNEL_ID = "chatprobe.channel.id"
"""Channel the bot is currently scoped to (string)."""

ATTR_USER_ID = "chatprobe.user.id"
"""Identity the bot authenticated as (string)."""

ATTR_STEP_NAME = "chatprobe.step.name"
"""Name of the chained step being executed (string)."""

# =============================================================================
# Wait Attributes
# =============================================================================

ATTR_WAIT_TIMEOUT = "chatprobe.wait.timeout"
"""Deadline of a wait in seconds (float)."""

ATTR_WAIT_BRANCHES = "chatprobe.wait.branches"
"""Number of expectations raced by expect_any (integer)."""

ATTR_HISTORY_SIZE = "chatprobe.history.size"
"""Events in the session history when a wait was armed (integer)."""

# =============================================================================
# Rate Limiter Attributes
# =============================================================================

ATTR_OPERATION_NAME = "chatprobe.operation.name"
"""Name of the outbound operation admitted by the rate limiter (string)."""

ATTR_QUEUE_WAIT_MS = "chatprobe.queue.wait_ms"
"""Milliseconds an operation spent queued before admission (float)."""

ATTR_QUEUE_PENDING = "chatprobe.queue.pending"
"""Operations still waiting for admission (integer)."""

__all__ = [
    "ATTR_CHANNEL_ID",
    "ATTR_USER_ID",
    "ATTR_STEP_NAME",
    "ATTR_WAIT_TIMEOUT",
    "ATTR_WAIT_BRANCHES",
    "ATTR_HISTORY_SIZE",
    "ATTR_OPERATION_NAME",
    "ATTR_QUEUE_WAIT_MS",
    "ATTR_QUEUE_PENDING",
]
