"""Pattern document parsing.

A pattern is a partial resource document written in YAML (or JSON, which
YAML accepts). This module turns the raw text into a tree; it is the only
place in kwait that parses documents.

Example pattern:
    spec:
      replicas: 3
    status:
      availableReplicas: 3
"""

import sys
from pathlib import Path
from typing import IO, Optional, Union

import yaml

from .errors import PatternParseError
from .tree import Mapping, Node, from_python

STDIN_PATH = '-'


class PatternLoader(yaml.SafeLoader):
    """Safe loader that keeps timestamps as strings.

    The API server serializes timestamps as RFC 3339 strings, so a pattern
    value like ``2024-01-01T00:00:00Z`` must stay text to compare equal.
    """


PatternLoader.add_constructor(
    'tag:yaml.org,2002:timestamp', PatternLoader.construct_yaml_str
)


def parse_pattern_string(content: str, source: str = '<string>') -> Node:
    """Parse pattern content from a string.

    Args:
        content: YAML or JSON text
        source: Name of the input, used in error messages

    Returns:
        Root node of the pattern. An empty document yields an empty mapping.

    Raises:
        PatternParseError: If the content is not a single valid document
    """
    try:
        documents = list(yaml.load_all(content, Loader=PatternLoader))
    except yaml.YAMLError as e:
        raise PatternParseError(f"Invalid YAML syntax in {source}: {e}")

    documents = [doc for doc in documents if doc is not None]
    if len(documents) > 1:
        raise PatternParseError(
            f"{source} contains {len(documents)} documents, expected one"
        )

    if not documents:
        return Mapping()

    try:
        return from_python(documents[0])
    except (TypeError, ValueError) as e:
        raise PatternParseError(f"Unsupported pattern content in {source}: {e}")


def parse_pattern_file(path: Union[str, Path]) -> Node:
    """Parse a pattern from a file.

    Raises:
        PatternParseError: If the file is missing, unreadable or invalid
    """
    path = Path(path)
    if not path.exists():
        raise PatternParseError(f"Pattern file not found: {path}")

    try:
        content = path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise PatternParseError(f"Failed to read pattern from {path}: {e}")

    return parse_pattern_string(content, source=str(path))


def read_pattern(path: Optional[str] = None, stdin: Optional[IO[str]] = None) -> Node:
    """Read the pattern from a file, or from standard input.

    Args:
        path: File path; None or '-' reads from ``stdin``
        stdin: Stream to read from (defaults to sys.stdin)
    """
    if path is not None and path != STDIN_PATH:
        return parse_pattern_file(path)

    stream = stdin if stdin is not None else sys.stdin
    try:
        content = stream.read()
    except (OSError, UnicodeDecodeError) as e:
        raise PatternParseError(f"Failed to read pattern from standard input: {e}")

    return parse_pattern_string(content, source='<stdin>')
