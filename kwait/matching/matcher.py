"""Structural subset matching of a pattern tree against an observed tree.

Rules by node kind:

- Scalar vs Scalar: type-aware equality (numbers numerically, everything
  else exactly)
- Mapping vs Mapping: every pattern key must exist in the observed mapping
  and match recursively; extra observed keys are ignored
- Sequence vs Sequence: every pattern element must match a distinct
  observed element, in any order (injective matching)
- Anything else: no match

Matching never raises for well-formed trees; a mismatch is just False.
"""

import math
from dataclasses import dataclass
from typing import List, Tuple

from kwait.tree import Node, NodeKind, ScalarValue

from .bipartite import has_perfect_left_matching, maximum_matching


def _is_number(value: ScalarValue) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def scalars_equal(pattern: ScalarValue, observed: ScalarValue) -> bool:
    """Compare two scalar values.

    Numbers compare numerically (``4 == 4.0``) and NaN equals NaN. Booleans
    never equal numbers, and strings never equal numbers.
    """
    if _is_number(pattern) and _is_number(observed):
        if isinstance(pattern, float) and isinstance(observed, float):
            if math.isnan(pattern) and math.isnan(observed):
                return True
        return pattern == observed
    if type(pattern) is not type(observed):
        return False
    return pattern == observed


def matches(pattern: Node, observed: Node) -> bool:
    """Decide whether ``observed`` satisfies ``pattern``.

    Args:
        pattern: Partial document describing the required state
        observed: Observed document

    Returns:
        True if every part of the pattern is present in the observed tree.
    """
    if pattern.kind is not observed.kind:
        return False

    if pattern.kind is NodeKind.SCALAR:
        return scalars_equal(pattern.value, observed.value)

    if pattern.kind is NodeKind.MAPPING:
        for key, expected in pattern.items():
            actual = observed.get(key)
            if actual is None or not matches(expected, actual):
                return False
        return True

    return has_perfect_left_matching(
        len(pattern),
        len(observed),
        lambda i, j: matches(pattern[i], observed[j]),
    )


@dataclass(frozen=True)
class Mismatch:
    """One reason why an observed tree does not satisfy a pattern."""

    path: Tuple[str, ...]
    """Location in the pattern, e.g. ('spec', 'containers', '[0]')."""

    message: str
    """Human readable description."""

    def __str__(self) -> str:
        location = '.'.join(self.path) if self.path else '<root>'
        return f"{location}: {self.message}"


def _describe(node: Node) -> str:
    if node.kind is NodeKind.SCALAR:
        return repr(node.value)
    if node.kind is NodeKind.MAPPING:
        return f"mapping with {len(node)} key(s)"
    return f"list with {len(node)} element(s)"


def explain(pattern: Node, observed: Node) -> List[Mismatch]:
    """List the reasons ``observed`` does not satisfy ``pattern``.

    Returns:
        An empty list if and only if ``matches(pattern, observed)`` is True.
    """
    mismatches: List[Mismatch] = []
    _explain(pattern, observed, (), mismatches)
    return mismatches


def _explain(
    pattern: Node,
    observed: Node,
    path: Tuple[str, ...],
    out: List[Mismatch],
) -> None:
    if pattern.kind is not observed.kind:
        out.append(Mismatch(
            path,
            f"expected {_describe(pattern)}, found {_describe(observed)}",
        ))
        return

    if pattern.kind is NodeKind.SCALAR:
        if not scalars_equal(pattern.value, observed.value):
            out.append(Mismatch(
                path, f"expected {pattern.value!r}, found {observed.value!r}"
            ))
        return

    if pattern.kind is NodeKind.MAPPING:
        for key, expected in pattern.items():
            actual = observed.get(key)
            if actual is None:
                out.append(Mismatch(path + (key,), "missing"))
            else:
                _explain(expected, actual, path + (key,), out)
        return

    if len(pattern) > len(observed):
        out.append(Mismatch(
            path,
            f"expected at least {len(pattern)} element(s), "
            f"found {len(observed)}",
        ))
        return

    pairs = maximum_matching(
        len(pattern),
        len(observed),
        lambda i, j: matches(pattern[i], observed[j]),
    )
    for i in range(len(pattern)):
        if i not in pairs:
            out.append(Mismatch(
                path + (f"[{i}]",),
                "no distinct observed element satisfies this entry",
            ))
