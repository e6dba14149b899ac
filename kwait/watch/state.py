"""Per-target state machine.

    PENDING --match--> MATCHED
    PENDING --fatal error / timeout / retries exhausted--> FAILED

Both MATCHED and FAILED are terminal; transitions out of them are rejected.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from kwait.matching import Mismatch
    from kwait.source import Snapshot, Target


class MatchState(Enum):
    """State of one watched target."""
    PENDING = auto()
    MATCHED = auto()
    FAILED = auto()


class FailureReason(Enum):
    """Why a target ended in FAILED."""
    TIMEOUT = auto()            # Deadline reached or run cancelled
    RETRIES_EXHAUSTED = auto()  # Stream kept failing; reported as a timeout
    FATAL = auto()              # Target cannot be watched


class InvalidTransition(Exception):
    """Attempt to leave a terminal state."""
    pass


@dataclass
class TargetState:
    """Mutable state of one target, owned by its evaluation loop."""

    target: 'Target'

    state: MatchState = MatchState.PENDING

    reason: Optional[FailureReason] = None
    """Set when state is FAILED."""

    detail: Optional[str] = None
    """Error message for FAILED targets."""

    matched: List['Snapshot'] = field(default_factory=list)
    """Snapshots that satisfied the pattern, set when MATCHED."""

    last_mismatches: List['Mismatch'] = field(default_factory=list)
    """Why the most recent snapshot did not match, for diagnostics."""

    snapshots_seen: int = 0
    reconnects: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.state is not MatchState.PENDING

    @property
    def is_fatal(self) -> bool:
        return self.state is MatchState.FAILED and self.reason is FailureReason.FATAL

    def mark_matched(self, snapshots: List['Snapshot']) -> None:
        self._check_pending()
        self.state = MatchState.MATCHED
        self.matched = list(snapshots)
        self.last_mismatches = []

    def mark_failed(self, reason: FailureReason, detail: Optional[str] = None) -> None:
        self._check_pending()
        self.state = MatchState.FAILED
        self.reason = reason
        self.detail = detail

    def _check_pending(self) -> None:
        if self.is_terminal:
            raise InvalidTransition(
                f"{self.target} is already {self.state.name.lower()}"
            )
