"""Per-replicate evaluation: partition agreement plus DE and marker call scoring."""

from __future__ import annotations

from dataclasses import replace

import numpy as np

from clusteval.core.classification import score_calls
from clusteval.core.partition import compare_partitions
from clusteval.core.truth import derive_truth_table
from clusteval.core.types import MetricsRow, ReplicateData

DEFAULT_THRESHOLD = 0.05


def _gene_vector(name: str, values: np.ndarray, n_genes: int, dtype=float) -> np.ndarray:
    if dtype is bool:
        arr = np.asarray(values)
        if arr.dtype != bool:
            raise ValueError(f"{name} must be boolean, got dtype {arr.dtype}.")
        arr = arr.ravel()
    else:
        arr = np.asarray(values, dtype=dtype).ravel()
    if arr.size != n_genes:
        raise ValueError(f"{name} length {arr.size} does not match {n_genes} genes.")
    return arr


def select_eligible(eligible: np.ndarray, pvalues: np.ndarray) -> np.ndarray:
    """Mask of genes that passed the upstream filter and carry a p-value."""
    elig = np.asarray(eligible)
    if elig.dtype != bool:
        raise ValueError(f"eligible must be boolean, got dtype {elig.dtype}.")
    elig = elig.ravel()
    pv = np.asarray(pvalues, dtype=float).ravel()
    if elig.size != pv.size:
        raise ValueError(f"eligible and pvalues length mismatch: {elig.size} vs {pv.size}.")
    return elig & np.isfinite(pv)


def evaluate_replicate(
    replicate: ReplicateData, threshold: float = DEFAULT_THRESHOLD
) -> MetricsRow:
    """Score one replicate against its simulation ground truth.

    The DE and marker passes each use their own eligible set: genes flagged
    eligible upstream whose corresponding p-value is present. A gene is
    called when its p-value is strictly below `threshold`. Degenerate rates
    come back as NaN and mark the row `degraded`; malformed inputs raise
    ValueError.
    """
    thr = float(threshold)
    if not (0.0 < thr <= 1.0):
        raise ValueError(f"threshold must be in (0, 1], got {threshold}.")

    de_true, marker_true = derive_truth_table(replicate.de_factors)
    n_genes = int(de_true.size)
    eligible = _gene_vector("eligible", replicate.eligible, n_genes, dtype=bool)
    de_p = _gene_vector("de_pvalues", replicate.de_pvalues, n_genes)
    marker_p = _gene_vector("marker_pvalues", replicate.marker_pvalues, n_genes)

    de_mask = select_eligible(eligible, de_p)
    marker_mask = select_eligible(eligible, marker_p)

    de_counts, de_rates = score_calls(de_true[de_mask], de_p[de_mask] < thr, n_genes)
    marker_counts, marker_rates = score_calls(
        marker_true[marker_mask], marker_p[marker_mask] < thr, n_genes
    )

    partition = compare_partitions(replicate.group_labels, replicate.cluster_labels)

    row = MetricsRow(
        replicate_id=str(replicate.replicate_id),
        partition=partition,
        de_counts=de_counts,
        de_rates=de_rates,
        marker_counts=marker_counts,
        marker_rates=marker_rates,
        n_genes=n_genes,
    )
    if row.has_missing():
        return replace(row, status="degraded")
    return row
