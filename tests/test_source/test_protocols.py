"""Tests for targets and source events."""

import pytest

from kwait.source import EventType, KubeSnapshotSource, Snapshot, SnapshotSource, SourceEvent, Target
from kwait.tree import Scalar


class TestTarget:
    """Tests for Target."""

    def test_named(self):
        """Test a named target."""
        target = Target("Deployment", name="web")
        assert not target.is_selector
        assert target.describe() == "Deployment/web"

    def test_selector(self):
        """Test a label selected target."""
        target = Target("Pod", selector="app=web", namespace="prod")
        assert target.is_selector
        assert str(target) == "prod:Pod[app=web]"

    def test_name_xor_selector(self):
        """Test exactly one of name and selector is required."""
        with pytest.raises(ValueError):
            Target("Pod")
        with pytest.raises(ValueError):
            Target("Pod", name="a", selector="app=web")

    def test_hashable(self):
        """Test equal targets collapse in dicts."""
        assert len({Target("Pod", name="a"), Target("Pod", name="a")}) == 1


class TestSourceEvent:
    """Tests for SourceEvent constructors."""

    def test_constructors(self):
        snapshot = Snapshot("prod/web", Scalar(1))

        assert SourceEvent.restarted([snapshot]).type is EventType.RESTARTED
        assert SourceEvent.applied(snapshot).snapshots == (snapshot,)
        assert SourceEvent.deleted(snapshot).type is EventType.DELETED
        assert SourceEvent.restarted([]).snapshots == ()


class TestProtocol:
    """Tests for the SnapshotSource protocol."""

    def test_kube_source_implements_protocol(self):
        """Test the Kubernetes source satisfies the protocol."""
        source = KubeSnapshotSource(dynamic_client=object())
        assert isinstance(source, SnapshotSource)
