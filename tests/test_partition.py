from __future__ import annotations

import numpy as np
import pytest
from sklearn.metrics import adjusted_rand_score, fowlkes_mallows_score, rand_score

from clusteval.core.partition import compare_partitions, contingency_table, pair_counts


def _random_labels(seed: int, n: int = 50, k: int = 4) -> np.ndarray:
    return np.random.default_rng(seed).integers(0, k, size=n)


def test_scenario_identical_three_items():
    res = compare_partitions(np.array([1, 1, 2]), np.array([1, 1, 2]))
    assert res.rand == 1.0
    assert res.adjusted_rand == 1.0
    assert res.jaccard == 1.0
    assert np.isclose(res.morey_agresti, 1.0)
    assert np.isclose(res.fowlkes_mallows, 1.0)


def test_scenario_crossed_four_items():
    res = compare_partitions(np.array([1, 1, 2, 2]), np.array([1, 2, 1, 2]))
    assert np.isclose(res.rand, 2.0 / 6.0)
    assert res.adjusted_rand <= 0.0
    assert np.isclose(res.adjusted_rand, -0.5)
    assert res.jaccard == 0.0
    assert res.fowlkes_mallows == 0.0
    assert np.isclose(res.morey_agresti, 0.0)


def test_pair_counts_cover_all_pairs():
    table = contingency_table(_random_labels(0), _random_labels(1))
    pc = pair_counts(table)
    assert pc.n_items == 50
    assert pc.n_pairs == 50 * 49 / 2
    assert min(pc.same_both, pc.same_truth_only, pc.same_pred_only, pc.diff_both) >= 0


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_identity_gives_one_for_every_index(seed):
    labels = _random_labels(seed)
    res = compare_partitions(labels, labels)
    for value in res.as_dict().values():
        assert np.isclose(value, 1.0)


@pytest.mark.parametrize("seed", [0, 5, 9])
def test_swapping_partitions_leaves_indices_unchanged(seed):
    a = _random_labels(seed)
    b = _random_labels(seed + 100, k=3)
    ab = compare_partitions(a, b).as_dict()
    ba = compare_partitions(b, a).as_dict()
    for key in ("rand", "adjusted_rand", "jaccard", "fowlkes_mallows", "morey_agresti"):
        assert np.isclose(ab[key], ba[key])


@pytest.mark.parametrize("seed", range(6))
def test_index_ranges(seed):
    res = compare_partitions(_random_labels(seed, n=30, k=2 + seed), _random_labels(seed + 50, n=30))
    assert 0.0 <= res.rand <= 1.0
    assert 0.0 <= res.jaccard <= 1.0
    assert -1.0 <= res.adjusted_rand <= 1.0
    assert 0.0 <= res.fowlkes_mallows <= 1.0


@pytest.mark.parametrize("seed", [3, 4])
def test_matches_sklearn_reference(seed):
    a = _random_labels(seed, n=80, k=5)
    b = _random_labels(seed + 7, n=80, k=3)
    res = compare_partitions(a, b)
    assert np.isclose(res.rand, rand_score(a, b))
    assert np.isclose(res.adjusted_rand, adjusted_rand_score(a, b))
    assert np.isclose(res.fowlkes_mallows, fowlkes_mallows_score(a, b))


def test_single_item_is_all_nan():
    res = compare_partitions(np.array([3]), np.array([7]))
    assert all(np.isnan(v) for v in res.as_dict().values())


def test_single_group_in_both_partitions_is_valid():
    res = compare_partitions(np.zeros(5), np.zeros(5))
    assert res.rand == 1.0
    assert res.jaccard == 1.0
    assert np.isnan(res.adjusted_rand)
    assert np.isnan(res.morey_agresti)


def test_one_group_vs_all_singletons():
    res = compare_partitions(np.array([0, 0, 0, 0]), np.array([0, 1, 2, 3]))
    assert res.rand == 0.0
    assert res.jaccard == 0.0
    assert res.adjusted_rand == 0.0
    assert np.isnan(res.fowlkes_mallows)


def test_labels_are_arbitrary_discrete_values():
    named = compare_partitions(
        np.array(["Group1", "Group1", "Group2", "Group3"]), np.array([7, 7, 2, 9])
    )
    assert named.rand == 1.0
    assert np.isclose(named.adjusted_rand, 1.0)

    a = _random_labels(11)
    b = _random_labels(12)
    relabeled = np.array([f"c{x * 13}" for x in b], dtype=object)
    assert compare_partitions(a, b) == compare_partitions(a, relabeled)


def test_contingency_table_counts_items():
    table = contingency_table(np.array(["a", "a", "b", "b"]), np.array([0, 1, 1, 1]))
    assert table.shape == (2, 2)
    assert table.sum() == 4
    assert table.tolist() == [[1, 1], [0, 2]]


def test_input_shape_errors():
    with pytest.raises(ValueError, match="same items"):
        compare_partitions(np.array([1, 2, 3]), np.array([1, 2]))
    with pytest.raises(ValueError, match="at least one item"):
        compare_partitions(np.array([]), np.array([]))
    with pytest.raises(ValueError, match="1D"):
        compare_partitions(np.zeros((2, 2)), np.zeros((2, 2)))
    with pytest.raises(ValueError, match="missing labels"):
        compare_partitions(np.array([1.0, np.nan]), np.array([1.0, 2.0]))
