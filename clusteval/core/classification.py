"""Confusion counts and derived rates for gene-level DE and marker calls."""

from __future__ import annotations

import numpy as np

from clusteval.core.types import ClassificationRates, ConfusionCounts


def _as_bool_1d(name: str, values: np.ndarray) -> np.ndarray:
    arr = np.asarray(values)
    if arr.ndim != 1:
        raise ValueError(f"{name} must be 1D, got shape {arr.shape}.")
    if arr.dtype != bool:
        raise ValueError(f"{name} must be boolean, got dtype {arr.dtype}.")
    return arr


def confusion_counts(truth: np.ndarray, predicted: np.ndarray) -> ConfusionCounts:
    """Count TP/TN/FP/FN over parallel boolean vectors.

    Callers pass only eligible genes; no filtering happens here.
    """
    t = _as_bool_1d("truth", truth)
    p = _as_bool_1d("predicted", predicted)
    if t.size != p.size:
        raise ValueError(f"truth and predicted length mismatch: {t.size} vs {p.size}.")
    return ConfusionCounts(
        tp=int(np.count_nonzero(t & p)),
        tn=int(np.count_nonzero(~t & ~p)),
        fp=int(np.count_nonzero(~t & p)),
        fn=int(np.count_nonzero(t & ~p)),
    )


def _rate(num: float, den: float) -> float:
    if den == 0:
        return float("nan")
    return float(num) / float(den)


def classification_rates(counts: ConfusionCounts, n_total_genes: int) -> ClassificationRates:
    """Derive accuracy, recall, precision, F1 and FPR.

    Accuracy divides by `n_total_genes`, the gene count of the whole dataset,
    so genes outside the eligible set dilute it. Any rate with a zero
    denominator is NaN rather than 0.
    """
    n_total = int(n_total_genes)
    if n_total <= 0:
        raise ValueError("n_total_genes must be positive.")
    if counts.n_eligible > n_total:
        raise ValueError(
            f"Eligible gene count {counts.n_eligible} exceeds n_total_genes {n_total}."
        )

    recall = _rate(counts.tp, counts.tp + counts.fn)
    precision = _rate(counts.tp, counts.tp + counts.fp)
    if np.isnan(recall) or np.isnan(precision):
        f1 = float("nan")
    else:
        f1 = _rate(2.0 * precision * recall, precision + recall)

    return ClassificationRates(
        accuracy=_rate(counts.tp + counts.tn, n_total),
        recall=recall,
        precision=precision,
        f1=f1,
        fpr=_rate(counts.fp, counts.fp + counts.tn),
    )


def score_calls(
    truth: np.ndarray, predicted: np.ndarray, n_total_genes: int
) -> tuple[ConfusionCounts, ClassificationRates]:
    counts = confusion_counts(truth, predicted)
    return counts, classification_rates(counts, n_total_genes)
