"""Partition agreement indices computed from a single contingency table."""

from __future__ import annotations

import numpy as np
import pandas as pd
from scipy.special import comb
from sklearn.metrics.cluster import contingency_matrix

from clusteval.core.types import PairCounts, PartitionIndices


def _encode_labels(name: str, labels: np.ndarray) -> np.ndarray:
    arr = np.asarray(labels, dtype=object)
    if arr.ndim != 1:
        raise ValueError(f"{name} must be a 1D label vector, got shape {arr.shape}.")
    codes, _ = pd.factorize(arr, use_na_sentinel=True)
    if np.any(codes < 0):
        raise ValueError(f"{name} contains missing labels.")
    return codes


def contingency_table(truth: np.ndarray, predicted: np.ndarray) -> np.ndarray:
    """Count items per (truth group, predicted cluster) pair.

    Labels are arbitrary hashables; rows follow first appearance in `truth`,
    columns first appearance in `predicted`.
    """
    t = _encode_labels("truth", truth)
    p = _encode_labels("predicted", predicted)
    if t.size != p.size:
        raise ValueError(
            f"truth and predicted must cover the same items: {t.size} vs {p.size}."
        )
    if t.size == 0:
        raise ValueError("Partitions must contain at least one item.")
    return np.asarray(contingency_matrix(t, p), dtype=np.int64)


def pair_counts(table: np.ndarray) -> PairCounts:
    """Classify all item pairs from a contingency table."""
    tab = np.asarray(table, dtype=np.int64)
    if tab.ndim != 2:
        raise ValueError("Contingency table must be 2D.")
    n = int(tab.sum())
    n_pairs = float(comb(n, 2, exact=True))
    same_both = float(comb(tab, 2).sum())
    same_truth = float(comb(tab.sum(axis=1), 2).sum())
    same_pred = float(comb(tab.sum(axis=0), 2).sum())
    return PairCounts(
        same_both=same_both,
        same_truth_only=same_truth - same_both,
        same_pred_only=same_pred - same_both,
        diff_both=n_pairs - same_truth - same_pred + same_both,
        n_items=n,
    )


def _ratio(num: float, den: float) -> float:
    if den == 0:
        return float("nan")
    return float(num / den)


def indices_from_table(table: np.ndarray) -> PartitionIndices:
    """Derive all five agreement indices from one contingency table."""
    tab = np.asarray(table, dtype=np.int64)
    pc = pair_counts(tab)
    n = pc.n_items
    if n < 2:
        return PartitionIndices()

    a = pc.same_both
    same_truth = a + pc.same_truth_only
    same_pred = a + pc.same_pred_only
    n_pairs = pc.n_pairs
    agree = a + pc.diff_both

    expected = same_truth * same_pred / n_pairs
    ari = _ratio(a - expected, 0.5 * (same_truth + same_pred) - expected)

    # Morey-Agresti: expected sum of squared cell counts under independence.
    row_sq = float(np.square(tab.sum(axis=1).astype(float)).sum())
    col_sq = float(np.square(tab.sum(axis=0).astype(float)).sum())
    expected_agree = n_pairs + row_sq * col_sq / float(n) ** 2 - 0.5 * (row_sq + col_sq)
    ma = _ratio(agree - expected_agree, n_pairs - expected_agree)

    fm = _ratio(a, float(np.sqrt(same_truth * same_pred)))
    jaccard = _ratio(a, a + pc.same_truth_only + pc.same_pred_only)

    return PartitionIndices(
        rand=_ratio(agree, n_pairs),
        adjusted_rand=ari,
        morey_agresti=ma,
        fowlkes_mallows=fm,
        jaccard=jaccard,
    )


def compare_partitions(truth: np.ndarray, predicted: np.ndarray) -> PartitionIndices:
    """Compare a ground-truth partition with a predicted one.

    Args:
        truth: Per-item true group labels.
        predicted: Per-item predicted cluster labels, same order as `truth`.

    Returns:
        PartitionIndices with Rand, adjusted Rand (Hubert-Arabie),
        Morey-Agresti adjusted Rand, Fowlkes-Mallows and Jaccard. Indices whose
        denominator vanishes (single item, one group in both partitions,
        all singletons) are NaN.
    """
    return indices_from_table(contingency_table(truth, predicted))
