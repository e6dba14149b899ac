"""Tests for pattern parsing."""

import io

import pytest

from kwait.errors import PatternParseError
from kwait.pattern import parse_pattern_file, parse_pattern_string, read_pattern
from kwait.tree import Mapping, NodeKind, from_python


class TestParsePatternString:
    """Tests for parse_pattern_string function."""

    def test_empty_yaml(self):
        """Test an empty document is an empty mapping."""
        assert parse_pattern_string("") == Mapping()

    def test_simple_pattern(self):
        """Test parsing a nested pattern."""
        yaml = """
status:
  availableReplicas: 4
spec:
  replicas: 4
"""
        pattern = parse_pattern_string(yaml)
        assert pattern == from_python(
            {"status": {"availableReplicas": 4}, "spec": {"replicas": 4}}
        )

    def test_json(self):
        """Test JSON input is accepted."""
        pattern = parse_pattern_string('{"spec": {"replicas": 2}}')
        assert pattern.get("spec").get("replicas").value == 2

    def test_list_pattern(self):
        """Test lists are parsed as sequences."""
        yaml = """
spec:
  containers:
    - name: my-container
      image: my-image
"""
        containers = parse_pattern_string(yaml).get("spec").get("containers")
        assert containers.kind is NodeKind.SEQUENCE
        assert containers[0].get("image").value == "my-image"

    def test_timestamps_stay_strings(self):
        """Test timestamps are not converted to datetime objects."""
        pattern = parse_pattern_string("at: 2024-01-01T00:00:00Z\nday: 2024-01-01")
        assert pattern.get("at").value == "2024-01-01T00:00:00Z"
        assert pattern.get("day").value == "2024-01-01"

    def test_scalar_root(self):
        """Test a scalar document is a valid pattern."""
        assert parse_pattern_string("42").value == 42

    def test_invalid_syntax(self):
        """Test malformed YAML raises PatternParseError."""
        with pytest.raises(PatternParseError, match="Invalid YAML syntax"):
            parse_pattern_string("spec: [unclosed")

    def test_multiple_documents(self):
        """Test several documents are rejected."""
        with pytest.raises(PatternParseError, match="2 documents"):
            parse_pattern_string("a: 1\n---\nb: 2\n")

    def test_unsupported_content(self):
        """Test YAML types without a tree form are rejected."""
        with pytest.raises(PatternParseError, match="Unsupported"):
            parse_pattern_string("data: !!binary aGVsbG8=")

    def test_complex_key(self):
        """Test mapping keys must be scalars."""
        with pytest.raises(PatternParseError):
            parse_pattern_string("? [a, b]\n: value\n")


class TestParsePatternFile:
    """Tests for reading patterns from files and stdin."""

    def test_file(self, tmp_path):
        """Test reading a pattern file."""
        path = tmp_path / "pattern.yaml"
        path.write_text("spec:\n  replicas: 1\n")

        assert parse_pattern_file(path) == from_python({"spec": {"replicas": 1}})

    def test_missing_file(self, tmp_path):
        """Test a missing file raises PatternParseError."""
        with pytest.raises(PatternParseError, match="not found"):
            parse_pattern_file(tmp_path / "missing.yaml")

    def test_error_names_file(self, tmp_path):
        """Test syntax errors mention the file."""
        path = tmp_path / "broken.yaml"
        path.write_text("a: [")

        with pytest.raises(PatternParseError, match="broken.yaml"):
            parse_pattern_file(path)

    def test_read_from_stdin(self):
        """Test '-' reads from the given stream."""
        stream = io.StringIO("kind: Deployment\n")
        assert read_pattern("-", stdin=stream).get("kind").value == "Deployment"

    def test_read_default_is_stdin(self):
        """Test omitting the path reads from the stream too."""
        stream = io.StringIO("kind: Pod\n")
        assert read_pattern(None, stdin=stream).get("kind").value == "Pod"

    def test_read_path(self, tmp_path):
        """Test a real path is read from disk."""
        path = tmp_path / "p.yaml"
        path.write_text("a: 1\n")
        assert read_pattern(str(path)).get("a").value == 1
