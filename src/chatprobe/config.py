"""
Configuration for bots.

This module provides:
- BotConfig: Credentials and wait timeout for one bot
- DEFAULT_TIMEOUT_MS: Default wait timeout in milliseconds
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_TIMEOUT_MS = 3000


@dataclass(frozen=True)
class BotConfig:
    """
    Configuration for a bot session.

    Attributes:
        token: Credential the bot authenticates with
        timeout: How long each expect waits for a match, in milliseconds

    Example:
        >>> config = BotConfig(token="xoxb-...", timeout=500)
        >>> config.timeout_seconds
        0.5
    """

    token: str
    timeout: float = DEFAULT_TIMEOUT_MS

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not isinstance(self.token, str) or not self.token:
            raise ValueError(
                "token must be a non-empty string. "
                "Pass the bot account's API token, e.g. BotConfig(token='xoxb-...')."
            )

        if isinstance(self.timeout, bool) or not isinstance(self.timeout, int | float):
            raise ValueError(f"timeout must be a number of milliseconds, got {self.timeout!r}.")

        if self.timeout <= 0:
            raise ValueError(
                f"timeout must be positive, got {self.timeout}. "
                f"Use a value like {DEFAULT_TIMEOUT_MS} (default) milliseconds."
            )

    @property
    def timeout_seconds(self) -> float:
        """The wait timeout in seconds."""
        return self.timeout / 1000


__all__ = ["BotConfig", "DEFAULT_TIMEOUT_MS"]
