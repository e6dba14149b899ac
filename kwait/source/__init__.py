"""Snapshot sources: where observed resource state comes from.

A source turns a Target into a stream of events carrying observed
snapshots. KubeSnapshotSource reads from a Kubernetes API server; tests
provide in-memory sources implementing the same protocol.

Example:
    from kwait.source import KubeSnapshotSource, Target

    source = KubeSnapshotSource.from_config(namespace="prod")
    target = Target("Deployment", name="web")
"""

from .protocols import Target, Snapshot, EventType, SourceEvent, SnapshotSource
from .kube import KubeSnapshotSource, classify_api_error, load_api_client

__all__ = [
    # Protocols and data types
    'Target',
    'Snapshot',
    'EventType',
    'SourceEvent',
    'SnapshotSource',
    # Kubernetes backend
    'KubeSnapshotSource',
    'classify_api_error',
    'load_api_client',
]
