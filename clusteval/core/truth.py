"""Ground-truth DE and marker status from simulated DE factors."""

from __future__ import annotations

import numpy as np

from clusteval.core.types import GeneTruth

BASELINE_FACTOR = 1.0


def _factor_matrix(de_factors: np.ndarray) -> np.ndarray:
    mat = np.asarray(de_factors, dtype=float)
    if mat.ndim == 1:
        mat = mat[None, :]
    if mat.ndim != 2:
        raise ValueError(f"de_factors must be genes x groups, got shape {mat.shape}.")
    if mat.shape[1] < 1:
        raise ValueError("de_factors must have at least one group column.")
    if not np.isfinite(mat).all():
        raise ValueError("de_factors must be finite.")
    return mat


def derive_truth_table(de_factors: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Return boolean (de_true, marker_true) arrays, one entry per gene.

    A factor counts as changed only when it differs exactly from 1.0; the
    simulator writes unchanged genes as exactly 1.
    """
    mat = _factor_matrix(de_factors)
    n_changed = np.count_nonzero(mat != BASELINE_FACTOR, axis=1)
    return n_changed >= 1, n_changed == 1


def derive_gene_truth(factors: np.ndarray) -> GeneTruth:
    """Truth status for a single gene's per-group factor vector."""
    vec = np.asarray(factors, dtype=float)
    if vec.ndim != 1:
        raise ValueError("factors must be a 1D per-group vector.")
    de_true, marker_true = derive_truth_table(vec)
    return GeneTruth(de_true=bool(de_true[0]), marker_true=bool(marker_true[0]))
