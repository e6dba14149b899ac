"""Tests for the command line entry point."""

import io
from unittest.mock import patch

import pytest
import yaml

from kwait.errors import FatalSourceError, RecoverableSourceError
from kwait.runner import build_targets, create_parser, looks_like_selector, main

PATTERN = """
status:
  availableReplicas: 4
spec:
  replicas: 4
"""


def rollout(available):
    return {
        "metadata": {"name": "web", "namespace": "prod"},
        "spec": {"replicas": 4},
        "status": {"availableReplicas": available},
    }


def run_cli(args, source, stdin=PATTERN):
    out, err = io.StringIO(), io.StringIO()
    with patch("kwait.runner.KubeSnapshotSource") as kube:
        kube.from_config.return_value = source
        code = main(args, stdin=io.StringIO(stdin), stdout=out, stderr=err)
    return code, out.getvalue(), err.getvalue(), kube


class TestSelectors:
    """Tests for telling names from selectors."""

    @pytest.mark.parametrize("identifier,selector", [
        ("web", False),
        ("web-7d9c", False),
        ("app=web", True),
        ("app!=web", True),
        ("app=web,tier=front", True),
        ("env in (prod,qa)", True),
        ("!canary", True),
        ("app,tier", True),
        ("tier notin qa", True),
    ])
    def test_looks_like_selector(self, identifier, selector):
        assert looks_like_selector(identifier) is selector

    def test_build_targets(self):
        """Test names, selectors and -l options become targets."""
        parsed = create_parser().parse_args(
            ["Pod", "web-0", "app=web", "-l", "tier=db", "-n", "prod"]
        )
        targets = build_targets(parsed)

        assert [t.describe() for t in targets] == [
            "prod:Pod/web-0", "prod:Pod[app=web]", "prod:Pod[tier=db]",
        ]


class TestMain:
    """Tests for main function."""

    def test_match_prints_state(self, scripted, restarted):
        """Test a match exits 0 and prints the matched object."""
        source = scripted([restarted(**{"prod/web": rollout(4)})])

        code, out, err, _ = run_cli(["Deployment", "web", "--timeout", "10s"], source)

        assert code == 0
        assert yaml.safe_load(out)["status"]["availableReplicas"] == 4

    def test_quiet(self, scripted, restarted):
        """Test -q suppresses the output."""
        source = scripted([restarted(**{"prod/web": rollout(4)})])
        code, out, _, _ = run_cli(["Deployment", "web", "-q"], source)

        assert code == 0
        assert out == ""

    def test_pattern_file(self, tmp_path, scripted, restarted):
        """Test -f reads the pattern from a file."""
        path = tmp_path / "rollout.yaml"
        path.write_text(PATTERN)
        source = scripted([restarted(**{"prod/web": rollout(4)})])

        code, _, _, _ = run_cli(["Deployment", "web", "-f", str(path)], source, stdin="")

        assert code == 0

    def test_disconnect_then_match(self, scripted, restarted):
        """Test one stream failure still leads to exit 0."""
        source = scripted(
            [restarted(**{"prod/web": rollout(3)}), RecoverableSourceError("reset")],
            [restarted(**{"prod/web": rollout(4)})],
        )

        code, _, _, _ = run_cli(["Deployment", "web"], source)

        assert code == 0

    def test_timeout(self, scripted, restarted):
        """Test a timeout exits 1 and explains the mismatch."""
        source = scripted([restarted(**{"prod/web": rollout(3)})])

        code, out, err, _ = run_cli(["Deployment", "web", "--timeout", "300ms"], source)

        assert code == 1
        assert out == ""
        assert "Timed out" in err
        assert "status.availableReplicas: expected 4, found 3" in err

    def test_fatal_error(self, scripted):
        """Test a fatal source error exits 2."""
        source = scripted([FatalSourceError("Deployment/web not found", status=404)])

        code, _, err, _ = run_cli(["Deployment", "web"], source)

        assert code == 2
        assert "Error:" in err
        assert "not found" in err

    def test_invalid_pattern(self, scripted):
        """Test a malformed pattern exits 2 before watching."""
        source = scripted()
        code, _, err, kube = run_cli(["Deployment", "web"], source, stdin="spec: [")

        assert code == 2
        assert "Invalid YAML" in err
        assert source.subscriptions == 0
        kube.from_config.assert_not_called()

    def test_missing_pattern_file(self, tmp_path, scripted):
        """Test a missing pattern file exits 2."""
        code, _, err, _ = run_cli(
            ["Deployment", "web", "-f", str(tmp_path / "nope.yaml")], scripted()
        )
        assert code == 2
        assert "not found" in err

    def test_bad_timeout(self, scripted):
        """Test an invalid duration exits 2."""
        code, _, err, _ = run_cli(["Deployment", "web", "--timeout", "soon"], scripted())
        assert code == 2
        assert "Invalid duration" in err

    def test_no_target(self, scripted):
        """Test a missing name or selector exits 2."""
        code, _, err, _ = run_cli(["Deployment"], scripted())
        assert code == 2
        assert "expected a resource name" in err

    def test_source_options(self, scripted, restarted):
        """Test kubeconfig options are passed to the source."""
        source = scripted([restarted(**{"prod/web": rollout(4)})])

        _, _, _, kube = run_cli(
            ["Deployment", "web", "--context", "staging", "-n", "prod", "--must-exist"],
            source,
        )

        kube.from_config.assert_called_once_with(
            context="staging", namespace="prod", must_exist=True
        )

    def test_config_error_from_source(self, scripted):
        """Test an unusable kubeconfig exits 2."""
        out, err = io.StringIO(), io.StringIO()
        with patch("kwait.runner.KubeSnapshotSource") as kube:
            kube.from_config.side_effect = FatalSourceError("Failed to load Kubernetes config")
            code = main(["Deployment", "web"], stdin=io.StringIO(PATTERN), stdout=out, stderr=err)

        assert code == 2
        assert "Failed to load Kubernetes config" in err.getvalue()
