"""Pattern matching of partial documents against observed state.

A pattern is satisfied when every value it names is present in the
observed document. Lists match existentially and injectively: each pattern
element needs its own observed element, in any order.

Example:
    from kwait.matching import matches, explain
    from kwait.tree import from_python

    pattern = from_python({"spec": {"containers": [{"image": "web:2"}]}})
    observed = from_python(deployment_spec)

    if not matches(pattern, observed):
        for mismatch in explain(pattern, observed):
            print(mismatch)
"""

from .bipartite import maximum_matching, has_perfect_left_matching
from .matcher import matches, explain, scalars_equal, Mismatch

__all__ = [
    # Matcher
    'matches',
    'explain',
    'scalars_equal',
    'Mismatch',
    # Bipartite matching
    'maximum_matching',
    'has_perfect_left_matching',
]
