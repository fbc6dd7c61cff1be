"""Core evaluation subpackage."""

from clusteval.core.classification import (
    classification_rates,
    confusion_counts,
    score_calls,
)
from clusteval.core.partition import (
    compare_partitions,
    contingency_table,
    indices_from_table,
    pair_counts,
)
from clusteval.core.truth import derive_gene_truth, derive_truth_table
from clusteval.core.types import (
    METRIC_COLUMNS,
    ClassificationRates,
    ConfusionCounts,
    GeneTruth,
    MetricsRow,
    PairCounts,
    PartitionIndices,
    ReplicateData,
)

__all__ = [
    "METRIC_COLUMNS",
    "ClassificationRates",
    "ConfusionCounts",
    "GeneTruth",
    "MetricsRow",
    "PairCounts",
    "PartitionIndices",
    "ReplicateData",
    "classification_rates",
    "compare_partitions",
    "confusion_counts",
    "contingency_table",
    "derive_gene_truth",
    "derive_truth_table",
    "indices_from_table",
    "pair_counts",
    "score_calls",
]
