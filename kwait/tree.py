"""Tree values: the common representation of patterns and observed state.

Both the pattern supplied by the caller and every snapshot received from the
cluster are converted into a tree of three node kinds:

- Scalar: a string, number, boolean or null
- Mapping: string keys to child nodes
- Sequence: ordered child nodes

Nodes are frozen; all recursive code dispatches on ``node.kind``.

Example:
    from kwait.tree import from_python, NodeKind

    node = from_python({"spec": {"replicas": 3}})
    assert node.kind is NodeKind.MAPPING
    assert node.get("spec").get("replicas").value == 3
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Iterator, Optional, Tuple, Union

ScalarValue = Union[str, int, float, bool, None]


class NodeKind(Enum):
    """Variant tag of a tree node."""
    SCALAR = auto()
    MAPPING = auto()
    SEQUENCE = auto()


@dataclass(frozen=True)
class Scalar:
    """Leaf node holding a string, number, boolean or null."""
    value: ScalarValue = None

    @property
    def kind(self) -> NodeKind:
        return NodeKind.SCALAR


@dataclass(frozen=True)
class Mapping:
    """Node with unique string keys.

    Entries keep their input order, which only matters for display.
    """
    entries: Tuple[Tuple[str, 'Node'], ...] = ()
    _index: Dict[str, 'Node'] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        index = {}
        for key, value in self.entries:
            if key in index:
                raise ValueError(f"Duplicate mapping key: {key!r}")
            index[key] = value
        # frozen dataclass, so the lookup table is set through object
        object.__setattr__(self, '_index', index)

    @property
    def kind(self) -> NodeKind:
        return NodeKind.MAPPING

    def get(self, key: str) -> Optional['Node']:
        """Return the child stored under ``key``, or None."""
        return self._index.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._index

    def __len__(self) -> int:
        return len(self.entries)

    def keys(self) -> Iterator[str]:
        return (key for key, _ in self.entries)

    def items(self) -> Iterator[Tuple[str, 'Node']]:
        return iter(self.entries)


@dataclass(frozen=True)
class Sequence:
    """Node with ordered children."""
    items: Tuple['Node', ...] = ()

    @property
    def kind(self) -> NodeKind:
        return NodeKind.SEQUENCE

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator['Node']:
        return iter(self.items)

    def __getitem__(self, index: int) -> 'Node':
        return self.items[index]


Node = Union[Scalar, Mapping, Sequence]


def key_text(key: Any) -> str:
    """Normalize a mapping key to its textual form.

    YAML allows non-string keys (``80:``, ``true:``). Observed documents come
    from JSON where keys are always strings, so keys are compared as text.

    Raises:
        TypeError: If the key is not a scalar.
    """
    if isinstance(key, str):
        return key
    if isinstance(key, bool):
        return 'true' if key else 'false'
    if key is None:
        return 'null'
    if isinstance(key, (int, float)):
        return str(key)
    raise TypeError(f"Mapping keys must be scalars, got {type(key).__name__}")


def from_python(obj: Any) -> Node:
    """Build a tree from plain Python data.

    Args:
        obj: Nested dicts, lists/tuples and scalars, as produced by a YAML
             or JSON parser.

    Returns:
        The root node.

    Raises:
        TypeError: If a value has no tree representation.
    """
    if obj is None or isinstance(obj, (str, bool, int, float)):
        return Scalar(obj)
    if isinstance(obj, dict):
        return Mapping(tuple(
            (key_text(key), from_python(value)) for key, value in obj.items()
        ))
    if isinstance(obj, (list, tuple)):
        return Sequence(tuple(from_python(item) for item in obj))
    raise TypeError(f"Unsupported value of type {type(obj).__name__}")


def to_python(node: Node) -> Any:
    """Convert a tree back to plain dicts, lists and scalars."""
    if node.kind is NodeKind.MAPPING:
        return {key: to_python(value) for key, value in node.items()}
    if node.kind is NodeKind.SEQUENCE:
        return [to_python(item) for item in node.items]
    return node.value
