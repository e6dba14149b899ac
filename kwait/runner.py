"""Command line entry point.

Waits until Kubernetes resources match a partial YAML document.

Usage:
    kwait Deployment web -f rollout.yaml --timeout 5m
    echo 'status: {readyReplicas: 3}' | kwait StatefulSet db
    kwait Pod 'app=web' -n prod -f ready.yaml

Exit codes:
    0  every target matched
    1  timed out
    2  error (bad pattern, bad arguments, fatal API error)
"""

import argparse
import logging
import sys
from typing import IO, List, Optional

import yaml

from .config import DEFAULT_TIMEOUT, WaitConfig, config_from_args
from .errors import KwaitError
from .pattern import read_pattern
from .source import KubeSnapshotSource, SnapshotSource, Target
from .tree import Node, to_python
from .watch import MatchState, Outcome, RunResult, WaitEngine

logger = logging.getLogger(__name__)

EXIT_ERROR = Outcome.ERROR.value

_SELECTOR_MARKERS = ('=', '!', '(', ',', ' in ', ' notin ')

MAX_REPORTED_MISMATCHES = 5


def looks_like_selector(identifier: str) -> bool:
    """True if ``identifier`` is a label selector rather than a resource name."""
    return any(marker in identifier for marker in _SELECTOR_MARKERS)


def build_targets(parsed: argparse.Namespace) -> List[Target]:
    """Create one Target per name or selector given on the command line."""
    common = dict(
        kind=parsed.kind,
        namespace=parsed.namespace,
        group=parsed.group,
        version=parsed.version,
        api_version=parsed.api_version,
        plural=parsed.plural,
    )

    targets = []
    for identifier in parsed.names:
        if looks_like_selector(identifier):
            targets.append(Target(selector=identifier, **common))
        else:
            targets.append(Target(name=identifier, **common))
    for selector in parsed.selector or []:
        targets.append(Target(selector=selector, **common))
    return targets


def run_wait(
    targets: List[Target],
    pattern: Node,
    source: SnapshotSource,
    config: Optional[WaitConfig] = None,
) -> RunResult:
    """Wait for ``targets`` to match ``pattern``.

    Args:
        targets: Resources to watch
        pattern: Parsed pattern document
        source: Where snapshots come from
        config: Timeout and retry settings (defaults when omitted)

    Returns:
        RunResult with the outcome and per-target states
    """
    config = config or WaitConfig()
    engine = WaitEngine(
        targets=targets,
        pattern=pattern,
        source=source,
        timeout=config.timeout,
        backoff=config.backoff_policy(),
    )
    logger.debug(
        "Waiting for %s (timeout=%s)",
        ', '.join(str(t) for t in engine.targets), config.timeout,
    )
    return engine.run()


def report(result: RunResult, config: WaitConfig, out: IO[str], err: IO[str],
           quiet: bool = False) -> None:
    """Print the matched state, or a diagnosis of what did not match."""
    if result.outcome is Outcome.ALL_MATCHED:
        if not quiet:
            documents = [
                to_python(snapshot.tree)
                for state in result.states.values()
                for snapshot in state.matched
            ]
            out.write(yaml.safe_dump_all(documents, sort_keys=False))
        return

    if result.outcome is Outcome.ERROR:
        print(f"Error: {result.detail}", file=err)
    elif config.timeout is not None:
        print(f"Timed out after {config.timeout:g}s waiting for resources to match", file=err)
    else:
        print("Gave up waiting for resources to match", file=err)

    for state in result.pending_or_failed():
        if state.is_fatal:
            continue
        if state.state is MatchState.FAILED and state.detail:
            print(f"  {state.target}: {state.reason.name.lower()} ({state.detail})", file=err)
        else:
            print(f"  {state.target}: not matched", file=err)
        if not state.snapshots_seen:
            print("    no object observed", file=err)
        for mismatch in state.last_mismatches[:MAX_REPORTED_MISMATCHES]:
            print(f"    {mismatch}", file=err)
        hidden = len(state.last_mismatches) - MAX_REPORTED_MISMATCHES
        if hidden > 0:
            print(f"    ... and {hidden} more", file=err)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='kwait',
        description='Wait until Kubernetes resources match a partial YAML document',
    )
    parser.add_argument(
        'kind',
        help='Kind of the resource in PascalCase, e.g. Deployment or ReplicaSet',
    )
    parser.add_argument(
        'names',
        nargs='*',
        metavar='NAME_OR_SELECTOR',
        help="Resource name, or label selector such as 'app=web'",
    )
    parser.add_argument(
        '-l', '--selector',
        action='append',
        help='Label selector (may be repeated)',
    )
    parser.add_argument(
        '-f', '--file',
        default=None,
        help="YAML file with the expected state; omit or pass '-' for stdin",
    )
    parser.add_argument(
        '-t', '--timeout',
        default=None,
        help=f'How long to wait, e.g. 90s, 5m, 1h30m; 0 waits forever '
             f'(default: {DEFAULT_TIMEOUT:g}s)',
    )
    parser.add_argument(
        '-n', '--namespace',
        default=None,
        help='Namespace of the resource (default: from kubeconfig); '
             'ignored for cluster-wide resources',
    )
    parser.add_argument('--group', help='Narrow resource discovery by API group')
    parser.add_argument('--version', help='Narrow resource discovery by group version, e.g. v1')
    parser.add_argument('--api-version', help='Narrow resource discovery by apiVersion, e.g. apps/v1')
    parser.add_argument('--plural', help='Narrow resource discovery by plural name')
    parser.add_argument('--context', help='Kubeconfig context to use')
    parser.add_argument(
        '--must-exist',
        action='store_true',
        help='Fail immediately if a named resource does not exist',
    )
    parser.add_argument(
        '--max-retries',
        type=int,
        default=None,
        help='Consecutive watch failures tolerated; negative retries until timeout (default: 10)',
    )
    parser.add_argument(
        '--backoff-max',
        default=None,
        help='Longest wait between watch reconnects (default: 30s)',
    )
    parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Do not print the matched state',
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Log progress to stderr',
    )
    return parser


def main(
    args: Optional[List[str]] = None,
    stdin: Optional[IO[str]] = None,
    stdout: Optional[IO[str]] = None,
    stderr: Optional[IO[str]] = None,
) -> int:
    """CLI entry point.

    Args:
        args: Command line arguments (defaults to sys.argv[1:])
        stdin: Stream the pattern is read from when no file is given
        stdout: Stream receiving the matched state
        stderr: Stream receiving diagnostics

    Returns:
        Exit code (0 matched, 1 timed out, 2 error)
    """
    out = stdout or sys.stdout
    err = stderr or sys.stderr

    parser = create_parser()
    parsed = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
        stream=err,
    )

    if not parsed.names and not parsed.selector:
        print("Error: expected a resource name or label selector", file=err)
        return EXIT_ERROR

    try:
        config = config_from_args(parsed)
        pattern = read_pattern(parsed.file, stdin=stdin)
        targets = build_targets(parsed)
        source = KubeSnapshotSource.from_config(
            context=parsed.context,
            namespace=parsed.namespace,
            must_exist=parsed.must_exist,
        )
        result = run_wait(targets, pattern, source, config)
    except KwaitError as e:
        print(f"Error: {e}", file=err)
        return EXIT_ERROR
    except Exception as e:
        print(f"Error: {e}", file=err)
        if parsed.verbose:
            import traceback
            traceback.print_exc(file=err)
        return EXIT_ERROR

    report(result, config, out, err, quiet=parsed.quiet)
    return result.exit_code


if __name__ == '__main__':
    sys.exit(main())
