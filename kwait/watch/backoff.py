"""Exponential backoff for re-subscribing after stream failures."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BackoffPolicy:
    """Capped exponential backoff with a bounded number of retries.

    The n-th consecutive failure (starting at 1) waits
    ``min(initial * multiplier ** (n - 1), maximum)`` seconds.
    """

    initial: float = 0.8
    """Delay before the first retry, in seconds."""

    multiplier: float = 2.0
    """Growth factor between consecutive retries."""

    maximum: float = 30.0
    """Upper bound for a single delay, in seconds."""

    max_retries: Optional[int] = 10
    """Consecutive failures tolerated; None retries until the deadline."""

    def __post_init__(self):
        if self.initial < 0 or self.maximum < 0:
            raise ValueError("Backoff delays must not be negative")
        if self.multiplier < 1:
            raise ValueError("Backoff multiplier must be at least 1")
        if self.max_retries is not None and self.max_retries < 0:
            raise ValueError("max_retries must not be negative")

    def delay(self, attempt: int) -> float:
        """Return the delay before retry number ``attempt`` (1-based)."""
        if attempt < 1:
            return 0.0
        # Cap the exponent so large attempt counts do not overflow
        exponent = min(attempt - 1, 64)
        return min(self.initial * self.multiplier ** exponent, self.maximum)

    def exhausted(self, attempt: int) -> bool:
        """True if ``attempt`` consecutive failures exceed the retry budget."""
        return self.max_retries is not None and attempt > self.max_retries
