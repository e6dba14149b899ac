"""Shared run context: the deadline clock and the cancellation token.

Every evaluation loop receives the same RunContext. Waiting is always done
through ``RunContext.wait`` so that deadline expiry and cancellation
interrupt backoff sleeps immediately.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional


class Deadline:
    """Point in time after which the run gives up.

    Args:
        seconds: Time budget from now; None means no deadline.
        clock: Monotonic clock, replaceable in tests.
    """

    def __init__(
        self,
        seconds: Optional[float],
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds

    def remaining(self) -> Optional[float]:
        """Seconds left (never negative), or None without a deadline."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def clamp(self, seconds: float) -> float:
        """Limit a wait so it never runs past the deadline."""
        remaining = self.remaining()
        if remaining is None:
            return seconds
        return min(seconds, remaining)


class CancelToken:
    """Cancellation signal shared by all evaluation loops."""

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: Optional[str] = None

    def cancel(self, reason: str = 'cancelled') -> None:
        """Cancel the run; only the first reason is kept."""
        with self._lock:
            if self._reason is None:
                self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def wait(self, timeout: Optional[float]) -> bool:
        """Block up to ``timeout`` seconds; True if cancelled meanwhile."""
        return self._event.wait(timeout)


@dataclass
class RunContext:
    """Deadline and cancellation shared across targets."""

    deadline: Deadline = field(default_factory=lambda: Deadline(None))
    token: CancelToken = field(default_factory=CancelToken)

    @property
    def stopped(self) -> bool:
        """True once the run was cancelled or the deadline passed."""
        return self.token.cancelled or self.deadline.expired

    def wait(self, seconds: float) -> bool:
        """Sleep for ``seconds``, cut short by cancellation or the deadline.

        Returns:
            True if the run stopped during (or before) the wait.
        """
        if self.stopped:
            return True
        self.token.wait(self.deadline.clamp(seconds))
        return self.stopped
