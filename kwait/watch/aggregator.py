"""Combine per-target states into the outcome of a run."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from kwait.source import Target

from .state import MatchState, TargetState


class Outcome(Enum):
    """Terminal outcome of a run, valued by its process exit code."""
    ALL_MATCHED = 0
    TIMED_OUT = 1
    ERROR = 2


@dataclass
class RunResult:
    """Result of waiting for a set of targets."""

    outcome: Outcome
    states: Dict[Target, TargetState] = field(default_factory=dict)

    detail: Optional[str] = None
    """Error message when outcome is ERROR."""

    @property
    def exit_code(self) -> int:
        return self.outcome.value

    @property
    def matched(self) -> bool:
        return self.outcome is Outcome.ALL_MATCHED

    def pending_or_failed(self) -> List[TargetState]:
        """States of targets that did not match."""
        return [s for s in self.states.values() if s.state is not MatchState.MATCHED]


def aggregate(states: Dict[Target, TargetState]) -> RunResult:
    """Reduce target states to a RunResult.

    - ALL_MATCHED if every target matched
    - ERROR if any target failed with a fatal error
    - TIMED_OUT otherwise (pending, timed out or out of retries)
    """
    fatal = [s for s in states.values() if s.is_fatal]
    if fatal:
        first = fatal[0]
        return RunResult(
            Outcome.ERROR,
            states=dict(states),
            detail=f"{first.target}: {first.detail}",
        )

    if all(s.state is MatchState.MATCHED for s in states.values()):
        return RunResult(Outcome.ALL_MATCHED, states=dict(states))

    return RunResult(Outcome.TIMED_OUT, states=dict(states))
