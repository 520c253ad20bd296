"""Reconnection policy.

Pure helpers: no timers, no async, no side effects. The client owns the
attempt counter and asks the policy whether and when to retry.
"""

from __future__ import annotations

from dataclasses import dataclass

from .config import LiveSessionConfig


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff with a cap, bounded by a maximum attempt count.

    ``attempt`` is the number of reconnects already performed, so the first
    retry uses ``attempt == 0`` and waits ``base_s``.
    """

    base_s: float = 1.0
    cap_s: float = 10.0
    max_attempts: int = 5

    @classmethod
    def from_config(cls, config: LiveSessionConfig) -> RetryPolicy:
        return cls(
            base_s=config.retry_base_s,
            cap_s=config.retry_cap_s,
            max_attempts=config.max_reconnect_attempts,
        )

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts

    def delay(self, attempt: int) -> float:
        """Seconds to wait before reconnect number ``attempt + 1``."""
        if attempt < 0:
            raise ValueError("attempt must be >= 0")
        return min(self.base_s * (2 ** attempt), self.cap_s)
