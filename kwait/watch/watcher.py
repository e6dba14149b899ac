"""Evaluation loop for a single target.

The loop subscribes to a snapshot source, matches every incoming snapshot
against the pattern and stops at the first match. Stream failures are
retried with exponential backoff; fatal errors and the deadline end the
loop with FAILED.

The set of known objects is tracked per key so that label-selected targets
are satisfied only when every selected object matches. A named target has
at most one key, which reduces this to "the latest snapshot matches".
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from kwait.errors import FatalSourceError, RecoverableSourceError
from kwait.matching import Mismatch, explain, matches
from kwait.source import EventType, Snapshot, SnapshotSource, SourceEvent, Target
from kwait.tree import Node

from .backoff import BackoffPolicy
from .context import RunContext
from .state import FailureReason, TargetState

logger = logging.getLogger(__name__)


@dataclass
class _Observation:
    snapshot: Snapshot
    mismatches: List[Mismatch]

    @property
    def matched(self) -> bool:
        return not self.mismatches


@dataclass
class TargetWatcher:
    """Drive one target from PENDING to MATCHED or FAILED.

    Example:
        watcher = TargetWatcher(target, pattern, source, context)
        state = watcher.run()
        if state.state is MatchState.MATCHED:
            print(state.matched[0].key)
    """

    target: Target
    pattern: Node
    source: SnapshotSource
    context: RunContext
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)

    state: TargetState = field(init=False)
    _known: Dict[str, _Observation] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        self.state = TargetState(self.target)

    def run(self) -> TargetState:
        """Consume events until the target matches, fails or the run stops.

        Returns:
            The terminal TargetState.
        """
        failures = 0

        while not self.state.is_terminal:
            if self.context.stopped:
                self._fail_stopped()
                break

            received = 0
            try:
                for event in self.source.subscribe(self.target, self.context):
                    received += 1
                    if event.type is not EventType.RESTARTED:
                        # a relist alone does not prove the watch is healthy
                        failures = 0
                    if self.context.stopped:
                        break
                    if self._handle(event):
                        return self.state

                if not self.context.stopped:
                    logger.debug("Watch stream for %s ended, resubscribing", self.target)
                    if not received:
                        # an empty stream would otherwise resubscribe in a tight loop
                        self.context.wait(self.backoff.initial)
            except FatalSourceError as e:
                logger.debug("Fatal error watching %s: %s", self.target, e)
                self.state.mark_failed(FailureReason.FATAL, str(e))
                break
            except RecoverableSourceError as e:
                failures += 1
                self.state.reconnects += 1
                if self.backoff.exhausted(failures):
                    self.state.mark_failed(
                        FailureReason.RETRIES_EXHAUSTED,
                        f"gave up after {failures - 1} retries: {e}",
                    )
                    break
                delay = self.backoff.delay(failures)
                logger.warning(
                    "Watch stream for %s encountered an error and will restart "
                    "with backoff (%.1fs): %s",
                    self.target, delay, e,
                )
                self.context.wait(delay)

        return self.state

    def _handle(self, event: SourceEvent) -> bool:
        """Apply one event; return True once the target matched."""
        if event.type is EventType.RESTARTED:
            self._known.clear()
            for snapshot in event.snapshots:
                self._observe(snapshot)
        elif event.type is EventType.APPLIED:
            for snapshot in event.snapshots:
                self._observe(snapshot)
        elif event.type is EventType.DELETED:
            for snapshot in event.snapshots:
                self._known.pop(snapshot.key, None)
                logger.debug("%s: %s deleted", self.target, snapshot.key)

        if self._known and all(obs.matched for obs in self._known.values()):
            self.state.mark_matched([obs.snapshot for obs in self._known.values()])
            logger.debug("%s matched", self.target)
            return True
        return False

    def _observe(self, snapshot: Snapshot) -> None:
        self.state.snapshots_seen += 1
        if matches(self.pattern, snapshot.tree):
            mismatches = []
        else:
            mismatches = explain(self.pattern, snapshot.tree)
            self.state.last_mismatches = mismatches
        self._known[snapshot.key] = _Observation(snapshot, mismatches)
        logger.debug(
            "%s: snapshot of %s %s",
            self.target, snapshot.key,
            "matches" if not mismatches else f"differs in {len(mismatches)} place(s)",
        )

    def _fail_stopped(self) -> None:
        if self.context.token.cancelled and not self.context.deadline.expired:
            detail: Optional[str] = self.context.token.reason
        else:
            detail = 'deadline reached'
        self.state.mark_failed(FailureReason.TIMEOUT, detail)
