"""Wait until Kubernetes resources match a partial document.

kwait blocks until the observed state of one or more resources satisfies a
pattern: a partial YAML document naming only the fields that matter, e.g.

    spec:
      template:
        spec:
          containers:
            - name: web
              image: registry.example.com/web:2.1
    status:
      updatedReplicas: 3
      availableReplicas: 3

Usage:
    from kwait import read_pattern, run_wait, KubeSnapshotSource, Target

    result = run_wait(
        [Target("Deployment", name="web", namespace="prod")],
        read_pattern("rollout.yaml"),
        KubeSnapshotSource.from_config(),
    )
    sys.exit(result.exit_code)

CLI:
    kwait Deployment web -f rollout.yaml --timeout 5m
"""

from .errors import (
    KwaitError,
    PatternParseError,
    ConfigError,
    SourceError,
    RecoverableSourceError,
    FatalSourceError,
)
from .tree import Scalar, Mapping, Sequence, NodeKind, from_python, to_python
from .pattern import parse_pattern_string, parse_pattern_file, read_pattern
from .matching import matches, explain
from .source import Target, KubeSnapshotSource
from .watch import WaitEngine, RunResult, Outcome, MatchState
from .config import WaitConfig, parse_duration
from .runner import run_wait, main

__version__ = '0.1.0'

__all__ = [
    # Errors
    'KwaitError',
    'PatternParseError',
    'ConfigError',
    'SourceError',
    'RecoverableSourceError',
    'FatalSourceError',
    # Trees and patterns
    'Scalar',
    'Mapping',
    'Sequence',
    'NodeKind',
    'from_python',
    'to_python',
    'parse_pattern_string',
    'parse_pattern_file',
    'read_pattern',
    # Matching
    'matches',
    'explain',
    # Watching
    'Target',
    'KubeSnapshotSource',
    'WaitEngine',
    'RunResult',
    'Outcome',
    'MatchState',
    'WaitConfig',
    'parse_duration',
    'run_wait',
    'main',
]
