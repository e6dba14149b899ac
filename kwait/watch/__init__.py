"""Watch-and-retry evaluation of targets against a pattern.

Each target runs its own evaluation loop:
1. Subscribe to the snapshot source
2. Match every snapshot against the pattern
3. Stop at the first match (MATCHED)
4. On stream failure, back off exponentially and subscribe again
5. On fatal error or when the deadline passes, stop (FAILED)

The WaitEngine runs all loops concurrently and aggregates their states
into a RunResult.

Example:
    from kwait.watch import WaitEngine

    engine = WaitEngine(targets=targets, pattern=pattern, source=source, timeout=120)
    result = engine.run()
    print(result.outcome.name)
"""

from .context import Deadline, CancelToken, RunContext
from .backoff import BackoffPolicy
from .state import MatchState, FailureReason, TargetState, InvalidTransition
from .watcher import TargetWatcher
from .aggregator import Outcome, RunResult, aggregate
from .engine import WaitEngine

__all__ = [
    # Context
    'Deadline',
    'CancelToken',
    'RunContext',
    'BackoffPolicy',
    # State machine
    'MatchState',
    'FailureReason',
    'TargetState',
    'InvalidTransition',
    # Evaluation
    'TargetWatcher',
    'Outcome',
    'RunResult',
    'aggregate',
    'WaitEngine',
]
