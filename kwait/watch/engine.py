"""Wait engine: run one evaluation loop per target, concurrently.

Each target gets its own worker thread running a TargetWatcher. Workers
report their terminal state through a queue; the engine thread waits on
that queue for at most the remaining deadline, so a timeout is reported on
time even when a worker is blocked reading from the network.

A fatal error on any target cancels the whole run.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from kwait.source import SnapshotSource, Target
from kwait.tree import Node

from .aggregator import RunResult, aggregate
from .backoff import BackoffPolicy
from .context import CancelToken, Deadline, RunContext
from .state import FailureReason, MatchState, TargetState
from .watcher import TargetWatcher

logger = logging.getLogger(__name__)


@dataclass
class WaitEngine:
    """Wait until every target satisfies the pattern.

    Example:
        engine = WaitEngine(
            targets=[Target("Deployment", name="web", namespace="prod")],
            pattern=read_pattern("rollout.yaml"),
            source=KubeSnapshotSource.from_config(),
            timeout=300,
        )
        result = engine.run()
        sys.exit(result.exit_code)
    """

    targets: List[Target]
    """Targets to watch; duplicates are watched once."""

    pattern: Node
    """Pattern every target must satisfy."""

    source: SnapshotSource
    """Source of observed snapshots."""

    timeout: Optional[float] = 300.0
    """Deadline in seconds; None waits forever."""

    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    """Retry policy for broken streams."""

    clock: Callable[[], float] = time.monotonic

    def __post_init__(self):
        self.targets = list(dict.fromkeys(self.targets))

    def run(self) -> RunResult:
        """Watch all targets until they match, one fails fatally or time runs out.

        Returns:
            RunResult aggregated over all targets
        """
        context = RunContext(
            deadline=Deadline(self.timeout, clock=self.clock),
            token=CancelToken(),
        )
        reports: 'queue.Queue[TargetState]' = queue.Queue()

        watchers = [
            TargetWatcher(target, self.pattern, self.source, context, self.backoff)
            for target in self.targets
        ]
        for watcher in watchers:
            thread = threading.Thread(
                target=self._work,
                args=(watcher, reports),
                name=f"kwait-{watcher.target}",
                daemon=True,
            )
            thread.start()

        states: Dict[Target, TargetState] = {}
        while len(states) < len(watchers):
            try:
                state = reports.get(timeout=context.deadline.remaining())
            except queue.Empty:
                break
            states[state.target] = state
            if state.is_fatal:
                context.token.cancel(f"cancelled after {state.target} failed")
                break

        if len(states) < len(watchers):
            context.token.cancel('deadline reached')
            for watcher in watchers:
                if watcher.target not in states:
                    states[watcher.target] = self._timed_out(watcher, context)

        return aggregate({target: states[target] for target in self.targets})

    def _work(self, watcher: TargetWatcher, reports: 'queue.Queue[TargetState]') -> None:
        try:
            state = watcher.run()
        except Exception as e:
            logger.exception("Unexpected error watching %s", watcher.target)
            state = TargetState(watcher.target)
            state.mark_failed(FailureReason.FATAL, f"unexpected error: {e}")
        reports.put(state)

    def _timed_out(self, watcher: TargetWatcher, context: RunContext) -> TargetState:
        live = watcher.state
        if live.state is MatchState.MATCHED:
            # matched before the deadline but not yet reported
            return live
        # The worker may still be running; report a copy rather than its state
        state = TargetState(
            watcher.target,
            last_mismatches=list(live.last_mismatches),
            snapshots_seen=live.snapshots_seen,
            reconnects=live.reconnects,
        )
        state.mark_failed(FailureReason.TIMEOUT, context.token.reason)
        return state
