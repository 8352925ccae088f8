"""
Scheduling policy for retries and polling.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from nft_batcher.config import BatcherConfig

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class SchedulePolicy:
    """
    Interval, backoff multiplier and attempt bound for a repeated call.

    ``delay_for(n)`` is the pause before attempt ``n + 1``: ``interval *
    multiplier ** n``, capped at ``max_delay`` when one is set.
    """

    interval: float
    multiplier: float = 1.0
    max_attempts: int = 1
    max_delay: Optional[float] = None

    def __post_init__(self):
        if self.interval < 0:
            raise ValueError("interval must be non-negative")
        if self.multiplier < 1:
            raise ValueError("multiplier must be at least 1")
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be non-negative")

    def delay_for(self, attempt: int) -> float:
        delay = self.interval * (self.multiplier ** attempt)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    @classmethod
    def network_retry(cls, config: BatcherConfig) -> "SchedulePolicy":
        """Exponential backoff for transient submission failures (max_attempts = retries)."""
        return cls(
            interval=config.retry_base_delay_seconds,
            multiplier=config.retry_backoff_multiplier,
            max_attempts=config.max_network_retries,
            max_delay=config.retry_max_delay_seconds,
        )

    @classmethod
    def confirmation(cls, config: BatcherConfig) -> "SchedulePolicy":
        """Fixed-interval polling for confirmation."""
        return cls(
            interval=config.confirmation_poll_interval_seconds,
            multiplier=1.0,
            max_attempts=config.confirmation_max_attempts,
        )
