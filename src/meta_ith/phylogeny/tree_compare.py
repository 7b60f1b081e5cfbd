"""
Tree Comparison
Distances between two trees built on the same samples
"""

import math

from ..errors import IncompatibleTipSetError

TREE_DISTANCE_METHODS = ('score', 'PH85')


def branch_score(tree_a, tree_b, include_terminal=False):
    """
    Kuhner-Felsenstein branch score distance.

    Square root of the summed squared differences of branch lengths over the
    union of both trees' splits; a split missing from one tree counts as length 0.
    Only internal splits are compared unless `include_terminal` is set.
    """
    splits_a = tree_a.splits(include_terminal=include_terminal)
    splits_b = tree_b.splits(include_terminal=include_terminal)
    total = 0.0
    for split in set(splits_a) | set(splits_b):
        total += (splits_a.get(split, 0.0) - splits_b.get(split, 0.0)) ** 2
    return math.sqrt(total)


def topological_distance(tree_a, tree_b):
    """Penny-Hendy distance: internal splits present in exactly one of the trees"""
    splits_a = set(tree_a.splits())
    splits_b = set(tree_b.splits())
    return len(splits_a ^ splits_b)


def tree_distance(tree_a, tree_b, method='score', include_terminal=False):
    """
    Compare two trees over the same tip set.

    Parameters:
    -----------
    method : str
        'score' for the branch score distance, 'PH85' for the topological distance
    include_terminal : bool
        Add terminal edges to the branch score

    Raises:
    -------
    IncompatibleTipSetError
        If the trees do not have identical tip label sets
    """
    tips_a, tips_b = set(tree_a.tip_labels), set(tree_b.tip_labels)
    if tips_a != tips_b:
        raise IncompatibleTipSetError(
            f"Trees have different tips: only in first {sorted(tips_a - tips_b)}, "
            f"only in second {sorted(tips_b - tips_a)}")
    if method == 'score':
        return branch_score(tree_a, tree_b, include_terminal=include_terminal)
    if method == 'PH85':
        return float(topological_distance(tree_a, tree_b))
    raise ValueError(f"Unknown tree distance method '{method}', expected one of {TREE_DISTANCE_METHODS}")
