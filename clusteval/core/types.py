"""Typed input and result containers for clusteval core operations."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import Any

import numpy as np

PARTITION_COLUMNS = (
    "rand",
    "adjusted_rand",
    "morey_agresti",
    "fowlkes_mallows",
    "jaccard",
)
RATE_NAMES = ("accuracy", "recall", "precision", "f1", "fpr")
COUNT_NAMES = ("tp", "tn", "fp", "fn")

# Export contract: these lead every metrics table, in this order.
METRIC_COLUMNS = (
    "replicate_id",
    *PARTITION_COLUMNS,
    *(f"de_{name}" for name in RATE_NAMES),
    *(f"marker_{name}" for name in RATE_NAMES),
)
EXTRA_COLUMNS = (
    *(f"de_{name}" for name in COUNT_NAMES),
    *(f"marker_{name}" for name in COUNT_NAMES),
    "n_genes",
    "status",
    "error",
)


def _nan() -> float:
    return float("nan")


@dataclass(frozen=True)
class PartitionIndices:
    """Agreement indices between a truth and a predicted partition."""

    rand: float = field(default_factory=_nan)
    adjusted_rand: float = field(default_factory=_nan)
    morey_agresti: float = field(default_factory=_nan)
    fowlkes_mallows: float = field(default_factory=_nan)
    jaccard: float = field(default_factory=_nan)

    def as_dict(self) -> dict[str, float]:
        return {name: float(getattr(self, name)) for name in PARTITION_COLUMNS}


@dataclass(frozen=True)
class PairCounts:
    """Item-pair classification derived from a contingency table.

    - `same_both`: pairs grouped together in both partitions (a).
    - `same_truth_only`: together in truth, apart in the prediction (b).
    - `same_pred_only`: apart in truth, together in the prediction (c).
    - `diff_both`: apart in both (d).
    """

    same_both: float
    same_truth_only: float
    same_pred_only: float
    diff_both: float
    n_items: int

    @property
    def n_pairs(self) -> float:
        return self.same_both + self.same_truth_only + self.same_pred_only + self.diff_both


@dataclass(frozen=True)
class ConfusionCounts:
    tp: int = 0
    tn: int = 0
    fp: int = 0
    fn: int = 0

    @property
    def n_eligible(self) -> int:
        return int(self.tp + self.tn + self.fp + self.fn)


@dataclass(frozen=True)
class ClassificationRates:
    """Rates derived from ConfusionCounts; NaN marks an undefined rate."""

    accuracy: float = field(default_factory=_nan)
    recall: float = field(default_factory=_nan)
    precision: float = field(default_factory=_nan)
    f1: float = field(default_factory=_nan)
    fpr: float = field(default_factory=_nan)


@dataclass(frozen=True)
class GeneTruth:
    de_true: bool
    marker_true: bool


@dataclass(frozen=True)
class ReplicateData:
    """Ground truth and clustering output for one simulated replicate.

    Cell axis: `group_labels`, `cluster_labels`.
    Gene axis: `de_factors` (genes x groups), `eligible`, `de_pvalues`,
    `marker_pvalues`. Missing p-values are NaN.
    """

    replicate_id: str
    group_labels: np.ndarray
    cluster_labels: np.ndarray
    de_factors: np.ndarray
    eligible: np.ndarray
    de_pvalues: np.ndarray
    marker_pvalues: np.ndarray
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def n_genes(self) -> int:
        return int(np.asarray(self.de_factors).shape[0])


@dataclass(frozen=True)
class MetricsRow:
    """One evaluated replicate; immutable once produced."""

    replicate_id: str
    partition: PartitionIndices
    de_counts: ConfusionCounts
    de_rates: ClassificationRates
    marker_counts: ConfusionCounts
    marker_rates: ClassificationRates
    n_genes: int | None
    status: str = "ok"
    error: str | None = None

    def as_record(self) -> dict[str, Any]:
        """Flatten into the export column layout."""
        rec: dict[str, Any] = {"replicate_id": self.replicate_id}
        rec.update(self.partition.as_dict())
        for prefix, rates in (("de", self.de_rates), ("marker", self.marker_rates)):
            for name in RATE_NAMES:
                rec[f"{prefix}_{name}"] = float(getattr(rates, name))
        # A failed replicate was never scored: its counts are missing, not zero.
        scored = self.status != "failed"
        for prefix, counts in (("de", self.de_counts), ("marker", self.marker_counts)):
            for name in COUNT_NAMES:
                rec[f"{prefix}_{name}"] = int(getattr(counts, name)) if scored else _nan()
        rec["n_genes"] = _nan() if self.n_genes is None else int(self.n_genes)
        rec["status"] = self.status
        rec["error"] = self.error
        return rec

    def has_missing(self) -> bool:
        values = list(self.partition.as_dict().values())
        for rates in (self.de_rates, self.marker_rates):
            values.extend(float(getattr(rates, f.name)) for f in fields(rates))
        return any(math.isnan(v) for v in values)


def failed_row(replicate_id: str, error: str, n_genes: int | None = None) -> MetricsRow:
    """Placeholder row for a replicate whose evaluation raised.

    `n_genes` stays None when the replicate never loaded far enough to know it.
    """
    return MetricsRow(
        replicate_id=str(replicate_id),
        partition=PartitionIndices(),
        de_counts=ConfusionCounts(),
        de_rates=ClassificationRates(),
        marker_counts=ConfusionCounts(),
        marker_rates=ClassificationRates(),
        n_genes=None if n_genes is None else int(n_genes),
        status="failed",
        error=str(error),
    )
