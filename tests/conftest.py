"""Shared test helpers: in-memory snapshot sources and tree shortcuts."""

import threading
import time

import pytest

from kwait.source import Snapshot, SourceEvent, Target
from kwait.tree import from_python


def snap(key, obj):
    """Build a Snapshot from plain data."""
    return Snapshot(key, from_python(obj))


class ScriptedSource:
    """Snapshot source replaying a fixed script per subscription.

    Each script entry describes one subscription and is a list of steps:
    - SourceEvent: yielded
    - Exception instance: raised
    - float: pause (interruptible by the run context)

    When a subscription's steps run out the stream ends normally. Once all
    scripts are used, further subscriptions idle until the run stops.
    """

    def __init__(self, *scripts, idle=True):
        self.scripts = [list(s) for s in scripts]
        self.idle = idle
        self.subscriptions = 0
        self.consumed = 0
        self._lock = threading.Lock()

    def subscribe(self, target, context):
        with self._lock:
            self.subscriptions += 1
            steps = self.scripts.pop(0) if self.scripts else None

        if steps is None:
            if self.idle:
                while not context.wait(0.01):
                    pass
            return

        for step in steps:
            if isinstance(step, BaseException):
                raise step
            if isinstance(step, (int, float)):
                if context.wait(step):
                    return
                continue
            self.consumed += 1
            yield step


class PerTargetSource:
    """Route subscriptions to a separate source per target name or selector."""

    def __init__(self, sources):
        self.sources = sources

    def subscribe(self, target, context):
        key = target.name if target.name is not None else target.selector
        return self.sources[key].subscribe(target, context)


class BlockingSource:
    """Source whose reads block and ignore cancellation, like a hung socket."""

    def __init__(self, seconds):
        self.seconds = seconds

    def subscribe(self, target, context):
        time.sleep(self.seconds)
        return
        yield


@pytest.fixture
def deployment():
    """Observed Deployment document used across tests."""
    return {
        'apiVersion': 'apps/v1',
        'kind': 'Deployment',
        'metadata': {'name': 'web', 'namespace': 'prod', 'labels': {'app': 'web'}},
        'spec': {
            'replicas': 4,
            'selector': {'matchLabels': {'app': 'web'}},
            'template': {
                'spec': {
                    'containers': [
                        {'name': 'sidecar', 'image': 'envoy:1.29'},
                        {'name': 'my-container', 'image': 'my-image'},
                        {'name': 'metrics', 'image': 'exporter:0.5'},
                    ],
                },
            },
        },
        'status': {'availableReplicas': 4, 'replicas': 4},
    }


@pytest.fixture
def web_target():
    return Target('Deployment', name='web', namespace='prod')


@pytest.fixture
def restarted():
    """Factory for a RESTARTED event from plain documents keyed by name."""
    def factory(**objects):
        return SourceEvent.restarted(snap(key, obj) for key, obj in objects.items())
    return factory


@pytest.fixture
def applied():
    def factory(key, obj):
        return SourceEvent.applied(snap(key, obj))
    return factory


@pytest.fixture
def scripted():
    """The ScriptedSource class."""
    return ScriptedSource


@pytest.fixture
def per_target():
    return PerTargetSource


@pytest.fixture
def blocking():
    return BlockingSource
