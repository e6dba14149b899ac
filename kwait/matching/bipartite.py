"""Maximum bipartite matching via augmenting paths.

Used to decide list patterns: each pattern element (left side) must be
paired with a distinct observed element (right side). A greedy first-fit
assignment is not enough: with pattern ``[A, B]`` and observed ``[x, y]``
where ``x`` satisfies both and ``y`` only ``A``, taking ``x`` for ``A``
leaves ``B`` unmatched. Augmenting paths reassign ``A`` to ``y`` instead.
"""

from typing import Callable, Dict, List, Optional


def maximum_matching(
    left_size: int,
    right_size: int,
    compatible: Callable[[int, int], bool],
) -> Dict[int, int]:
    """Compute a maximum matching of a bipartite graph.

    Edges are discovered lazily through ``compatible`` and each pair is
    evaluated at most once.

    Args:
        left_size: Number of left vertices (pattern elements)
        right_size: Number of right vertices (observed elements)
        compatible: ``compatible(i, j)`` is True if left ``i`` may pair
                    with right ``j``

    Returns:
        Mapping of left index to right index for every matched left vertex.
    """
    edges: List[Optional[List[int]]] = [None] * left_size

    def neighbours(i: int) -> List[int]:
        if edges[i] is None:
            edges[i] = [j for j in range(right_size) if compatible(i, j)]
        return edges[i]

    owner: Dict[int, int] = {}  # right index -> left index

    def augment(i: int, visited: List[bool]) -> bool:
        for j in neighbours(i):
            if visited[j]:
                continue
            visited[j] = True
            if j not in owner or augment(owner[j], visited):
                owner[j] = i
                return True
        return False

    for i in range(left_size):
        augment(i, [False] * right_size)

    return {i: j for j, i in owner.items()}


def has_perfect_left_matching(
    left_size: int,
    right_size: int,
    compatible: Callable[[int, int], bool],
) -> bool:
    """Return True if every left vertex can be matched to a distinct right one."""
    if left_size > right_size:
        return False
    if left_size == 0:
        return True
    return len(maximum_matching(left_size, right_size, compatible)) == left_size
