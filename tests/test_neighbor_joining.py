import numpy as np
import pandas as pd
import pytest

from meta_ith.errors import InsufficientTipsError, MalformedInputError
from meta_ith.phylogeny import neighbor_joining


def _matrix(labels, pairs):
    d = pd.DataFrame(0.0, index=labels, columns=labels)
    for (a, b), value in pairs.items():
        d.loc[a, b] = value
        d.loc[b, a] = value
    return d


def additive_four_tips():
    # ((A:1,B:2):1,C:1,D:3)
    return _matrix(list("ABCD"), {
        ("A", "B"): 3, ("A", "C"): 3, ("A", "D"): 5,
        ("B", "C"): 4, ("B", "D"): 6, ("C", "D"): 4,
    })


def test_three_tip_star():
    d = _matrix(["N", "T1", "T2"], {("N", "T1"): 0.075, ("N", "T2"): 0.175, ("T1", "T2"): 0.1})
    tree = neighbor_joining(d)
    assert tree.n_tips == 3
    assert len(tree.edges) == 3
    assert tree.tip_edge_lengths("N").sum() == pytest.approx(0.075)
    assert tree.tip_edge_lengths("T1").sum() == pytest.approx(0.0, abs=1e-15)
    assert tree.tip_edge_lengths("T2").sum() == pytest.approx(0.1)
    assert tree.total_length == pytest.approx(0.175)


def test_additive_tree_is_recovered():
    tree = neighbor_joining(additive_four_tips())
    assert tree.n_tips == 4
    assert len(tree.edges) == 2 * 4 - 3
    assert tree.tip_edge_lengths("A").sum() == pytest.approx(1.0)
    assert tree.tip_edge_lengths("B").sum() == pytest.approx(2.0)
    assert tree.tip_edge_lengths("C").sum() == pytest.approx(1.0)
    assert tree.tip_edge_lengths("D").sum() == pytest.approx(3.0)
    assert tree.total_length == pytest.approx(8.0)
    assert tree.splits() == {frozenset({"C", "D"}): pytest.approx(1.0)}


def test_patristic_distances_match_additive_input():
    d = additive_four_tips()
    tree = neighbor_joining(d)
    patristic = tree.patristic_distances().loc[d.index, d.columns]
    np.testing.assert_allclose(patristic.to_numpy(), d.to_numpy())


def test_tip_labels_preserved():
    rng = np.random.default_rng(1)
    features = rng.random((10, 6))
    labels = ["N", "R1", "R2", "R3", "R4", "R5"]
    d = np.abs(features[:, :, None] - features[:, None, :]).sum(axis=0) / 20
    tree = neighbor_joining(pd.DataFrame(d, index=labels, columns=labels))
    assert sorted(tree.tip_labels) == sorted(labels)
    assert len(tree.edges) == 2 * len(labels) - 3


def test_deterministic():
    d = additive_four_tips()
    first = neighbor_joining(d)
    second = neighbor_joining(d.copy())
    assert (first.edges == second.edges).all()
    assert (first.edge_lengths == second.edge_lengths).all()


def test_array_input_with_labels():
    d = additive_four_tips()
    tree = neighbor_joining(d.to_numpy(), labels=list("ABCD"))
    assert tree.tip_labels == list("ABCD")


def test_fewer_than_three_tips():
    d = _matrix(["N", "T1"], {("N", "T1"): 0.2})
    with pytest.raises(InsufficientTipsError):
        neighbor_joining(d)


def test_asymmetric_matrix_is_rejected():
    d = additive_four_tips()
    d.loc["A", "B"] = 4
    with pytest.raises(MalformedInputError, match="symmetric"):
        neighbor_joining(d)


def test_nonzero_diagonal_is_rejected():
    d = additive_four_tips()
    d.loc["C", "C"] = 1
    with pytest.raises(MalformedInputError):
        neighbor_joining(d)


def test_negative_lengths_kept_unless_clamped():
    # the triangle inequality fails for (T1, T2, N), giving a negative N branch
    d = _matrix(["N", "T1", "T2"], {("N", "T1"): 0.1, ("N", "T2"): 0.1, ("T1", "T2"): 0.5})
    tree = neighbor_joining(d)
    assert tree.tip_edge_lengths("N").sum() == pytest.approx(-0.15)
    assert tree.total_length == pytest.approx(0.35)

    clamped = neighbor_joining(d, clamp_negative=True)
    assert clamped.tip_edge_lengths("N").sum() == 0.0
    assert (clamped.edge_lengths >= 0).all()


def test_ties_join_first_pair_in_row_major_order():
    labels = ["N", "T1", "T2", "T3", "T4"]
    d = pd.DataFrame(1.0, index=labels, columns=labels)
    for label in labels:
        d.loc[label, label] = 0.0
    tree = neighbor_joining(d)

    first_cherry = {tree.tip_labels[child] for child in tree.edges[:2, 1]}
    assert first_cherry == {"N", "T1"}
    assert set(tree.splits()) == {frozenset({"T2", "T3", "T4"}), frozenset({"T3", "T4"})}
