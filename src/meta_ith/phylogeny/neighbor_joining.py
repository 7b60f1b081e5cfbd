"""
Neighbor Joining
Unrooted tree inference from a dissimilarity matrix (Saitou & Nei 1987)
"""

import logging
from collections import deque

import numpy as np
import pandas as pd

from ..errors import InsufficientTipsError, MalformedInputError

logger = logging.getLogger(__name__)


class PhyloTree:
    """
    Unrooted weighted tree stored as an edge list.

    Tips are nodes 0..n-1 in the order of `tip_labels`; internal nodes follow.
    Each edge is a (parent, child) pair oriented away from the node that is
    never a child (the central node of the last neighbor-joining step), so a tip
    is always the child of exactly one edge.
    """

    def __init__(self, tip_labels, edges, edge_lengths):
        self.tip_labels = [str(label) for label in tip_labels]
        self.edges = np.asarray(edges, dtype=int).reshape(-1, 2)
        self.edge_lengths = np.asarray(edge_lengths, dtype=float)
        if len(self.edges) != len(self.edge_lengths):
            raise ValueError("edges and edge_lengths differ in length")
        self._children = None

    def __repr__(self):
        return (f"PhyloTree({self.n_tips} tips, {len(self.edges)} edges, "
                f"total length {self.total_length:.6g})")

    @property
    def n_tips(self):
        return len(self.tip_labels)

    @property
    def n_nodes(self):
        return int(self.edges.max()) + 1 if len(self.edges) else self.n_tips

    @property
    def root(self):
        """The node that is nobody's child"""
        parents = set(self.edges[:, 0]) - set(self.edges[:, 1])
        return int(min(parents))

    @property
    def total_length(self):
        return float(self.edge_lengths.sum())

    def children(self, node):
        if self._children is None:
            self._children = {}
            for idx, (parent, child) in enumerate(self.edges):
                self._children.setdefault(int(parent), []).append((int(child), idx))
        return self._children.get(node, [])

    def tip_index(self, label):
        try:
            return self.tip_labels.index(label)
        except ValueError:
            raise KeyError(f"Tip '{label}' not in tree") from None

    def tip_edge_lengths(self, label):
        """Lengths of the edges whose child is the given tip"""
        tip = self.tip_index(label)
        return self.edge_lengths[self.edges[:, 1] == tip]

    def clades(self):
        """Map each edge index to the set of tip labels below its child"""
        below = {}

        def collect(node):
            if node < self.n_tips:
                return frozenset([self.tip_labels[node]])
            tips = frozenset()
            for child, idx in self.children(node):
                child_tips = collect(child)
                below[idx] = child_tips
                tips = tips | child_tips
            return tips

        collect(self.root)
        return below

    def splits(self, include_terminal=False):
        """
        Bipartitions of the tip set induced by each edge, with their lengths.

        A split is keyed by the side that does not contain the alphabetically
        first tip label, so identical bipartitions of two trees share a key
        whatever their rooting.
        """
        all_tips = frozenset(self.tip_labels)
        reference = min(all_tips)
        result = {}
        for idx, clade in self.clades().items():
            side = all_tips - clade if reference in clade else clade
            if not include_terminal and (len(side) == 1 or len(all_tips) - len(side) == 1):
                continue
            result[side] = result.get(side, 0.0) + float(self.edge_lengths[idx])
        return result

    def patristic_distances(self):
        """Tip-to-tip path lengths along the tree"""
        adjacency = {}
        for (parent, child), length in zip(self.edges, self.edge_lengths):
            adjacency.setdefault(int(parent), []).append((int(child), length))
            adjacency.setdefault(int(child), []).append((int(parent), length))

        n = self.n_tips
        dist = np.zeros((n, n))
        for tip in range(n):
            seen = {tip: 0.0}
            queue = deque([tip])
            while queue:
                node = queue.popleft()
                for neighbor, length in adjacency.get(node, []):
                    if neighbor not in seen:
                        seen[neighbor] = seen[node] + length
                        queue.append(neighbor)
            for other in range(n):
                dist[tip, other] = seen[other]
        return pd.DataFrame(dist, index=self.tip_labels, columns=self.tip_labels)


def _validate_distances(distances, labels, source):
    if isinstance(distances, pd.DataFrame):
        if list(distances.index) != list(distances.columns):
            raise MalformedInputError("Distance matrix row and column labels differ",
                                      source=source)
        labels = list(distances.index)
        values = distances.to_numpy(dtype=float)
    else:
        values = np.asarray(distances, dtype=float)
        if labels is None:
            labels = [str(i) for i in range(len(values))]

    if values.ndim != 2 or values.shape[0] != values.shape[1]:
        raise MalformedInputError(f"Distance matrix is not square: {values.shape}", source=source)
    if len(labels) != values.shape[0]:
        raise MalformedInputError("Label count does not match matrix size", source=source)
    if len(set(labels)) != len(labels):
        raise MalformedInputError(f"Duplicate tip labels: {labels}", source=source)
    if values.shape[0] < 3:
        raise InsufficientTipsError(
            f"Neighbor joining needs at least 3 samples, got {values.shape[0]}", source=source)
    if not np.isfinite(values).all():
        raise MalformedInputError("Distance matrix has missing or infinite values", source=source)
    if (values < 0).any():
        raise MalformedInputError("Distance matrix has negative entries", source=source)
    if (np.diag(values) != 0).any():
        raise MalformedInputError("Distance matrix diagonal is not zero", source=source)
    scale = max(1.0, float(values.max()))
    if not np.allclose(values, values.T, rtol=0, atol=1e-12 * scale):
        raise MalformedInputError("Distance matrix is not symmetric", source=source)
    return [str(label) for label in labels], values


def neighbor_joining(distances, labels=None, clamp_negative=False, source=None) -> PhyloTree:
    """
    Build an unrooted neighbor-joining tree.

    At each step the pair (i, j) minimizing Q(i, j) = (k - 2) d(i, j) - r_i - r_j
    is joined, where k is the number of active nodes and r the row sums; ties go to
    the first pair in row-major order over i < j. The new node takes the first
    position of the active list and the remaining nodes keep their order. The last
    three nodes are joined to a central node.

    Parameters:
    -----------
    distances : pd.DataFrame or array-like
        Square, symmetric, non-negative matrix with a zero diagonal
    labels : list of str, optional
        Tip labels when `distances` is not a labelled DataFrame
    clamp_negative : bool
        Replace negative branch lengths by zero. Off by default: clamping changes
        the total tree length.
    source : str, optional
        Sample file name used in error messages

    Returns:
    --------
    PhyloTree
        Tree with one tip per input label, 2n - 3 edges
    """
    labels, D = _validate_distances(distances, labels, source)
    n = len(labels)

    active = list(range(n))
    next_node = n
    edges = []
    lengths = []

    while len(active) > 3:
        k = len(active)
        r = D.sum(axis=1)
        q = (k - 2) * D - r[:, None] - r[None, :]
        rows, cols = np.triu_indices(k, 1)
        best = int(np.argmin(q[rows, cols]))
        i, j = int(rows[best]), int(cols[best])

        delta = (r[i] - r[j]) / (k - 2)
        length_i = (D[i, j] + delta) / 2
        length_j = (D[i, j] - delta) / 2
        edges.extend([(next_node, active[i]), (next_node, active[j])])
        lengths.extend([length_i, length_j])

        keep = [m for m in range(k) if m not in (i, j)]
        new_row = (D[i, keep] + D[j, keep] - D[i, j]) / 2
        reduced = np.zeros((k - 1, k - 1))
        reduced[1:, 1:] = D[np.ix_(keep, keep)]
        reduced[0, 1:] = new_row
        reduced[1:, 0] = new_row
        D = reduced
        active = [next_node] + [active[m] for m in keep]
        next_node += 1

    center = next_node
    final = [
        (D[0, 1] + D[0, 2] - D[1, 2]) / 2,
        (D[0, 1] + D[1, 2] - D[0, 2]) / 2,
        (D[0, 2] + D[1, 2] - D[0, 1]) / 2,
    ]
    for node, length in zip(active, final):
        edges.append((center, node))
        lengths.append(length)

    lengths = np.array(lengths, dtype=float)
    n_negative = int((lengths < 0).sum())
    if n_negative:
        action = "clamped to zero" if clamp_negative else "kept"
        logger.debug(f"{source or 'tree'}: {n_negative} negative branch length(s) {action}")
        if clamp_negative:
            lengths = np.maximum(lengths, 0.0)

    return PhyloTree(labels, edges, lengths)
