"""Targets, events and the snapshot source protocol.

A snapshot source turns a Target into a stream of SourceEvents. The
evaluation loop only depends on the SnapshotSource protocol, so tests and
alternative backends can provide their own implementation.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterator, Optional, Protocol, Tuple, TYPE_CHECKING, runtime_checkable

from kwait.tree import Node

if TYPE_CHECKING:
    from kwait.watch.context import RunContext


@dataclass(frozen=True)
class Target:
    """One resource, or a label-selected set of resources, to watch.

    Exactly one of ``name`` and ``selector`` is set.
    """

    kind: str
    """Resource kind in PascalCase, e.g. 'Deployment'."""

    name: Optional[str] = None
    """Resource name."""

    selector: Optional[str] = None
    """Label selector, e.g. 'app=web,tier!=cache'."""

    namespace: Optional[str] = None
    """Namespace; ignored for cluster-scoped kinds."""

    group: Optional[str] = None
    version: Optional[str] = None
    api_version: Optional[str] = None
    plural: Optional[str] = None

    def __post_init__(self):
        if (self.name is None) == (self.selector is None):
            raise ValueError("Target needs exactly one of name or selector")

    @property
    def is_selector(self) -> bool:
        return self.selector is not None

    def describe(self) -> str:
        """Return a short display form such as 'Deployment/web'."""
        if self.is_selector:
            text = f"{self.kind}[{self.selector}]"
        else:
            text = f"{self.kind}/{self.name}"
        if self.namespace:
            text = f"{self.namespace}:{text}"
        return text

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True)
class Snapshot:
    """Observed state of a single object."""

    key: str
    """Object identity, 'namespace/name' or 'name' when cluster scoped."""

    tree: Node
    """Full observed document."""


class EventType(Enum):
    """Kind of change reported by a snapshot source."""
    RESTARTED = auto()  # Full listing, replaces every known object
    APPLIED = auto()    # Object created or modified
    DELETED = auto()    # Object removed


@dataclass(frozen=True)
class SourceEvent:
    """A change in the watched set of objects."""

    type: EventType
    snapshots: Tuple[Snapshot, ...] = field(default_factory=tuple)
    """All listed objects for RESTARTED, the single changed object otherwise."""

    @classmethod
    def restarted(cls, snapshots) -> 'SourceEvent':
        return cls(EventType.RESTARTED, tuple(snapshots))

    @classmethod
    def applied(cls, snapshot: Snapshot) -> 'SourceEvent':
        return cls(EventType.APPLIED, (snapshot,))

    @classmethod
    def deleted(cls, snapshot: Snapshot) -> 'SourceEvent':
        return cls(EventType.DELETED, (snapshot,))


@runtime_checkable
class SnapshotSource(Protocol):
    """Protocol for producers of observed snapshots."""

    def subscribe(self, target: Target, context: 'RunContext') -> Iterator[SourceEvent]:
        """Open a stream of events for ``target``.

        The first event of every subscription should be RESTARTED with the
        current listing. The iterator ends when the server closes the
        stream normally; the caller then subscribes again.

        Raises:
            RecoverableSourceError: On transient failures (disconnects)
            FatalSourceError: If the target can never be watched
        """
        ...
