"""clusteval public API."""

from clusteval._version import __version__
from clusteval.aggregate import MetricsAggregator
from clusteval.core.classification import classification_rates, confusion_counts, score_calls
from clusteval.core.partition import compare_partitions, contingency_table
from clusteval.core.truth import derive_gene_truth, derive_truth_table
from clusteval.core.types import METRIC_COLUMNS, MetricsRow, ReplicateData
from clusteval.evaluation import evaluate_replicate


def run_benchmark(*args, **kwargs):
    """Lazy wrapper around ``clusteval.benchmark.run_benchmark``."""
    from clusteval.benchmark import run_benchmark as _run_benchmark

    return _run_benchmark(*args, **kwargs)


__all__ = [
    "__version__",
    "METRIC_COLUMNS",
    "MetricsAggregator",
    "MetricsRow",
    "ReplicateData",
    "classification_rates",
    "compare_partitions",
    "confusion_counts",
    "contingency_table",
    "derive_gene_truth",
    "derive_truth_table",
    "evaluate_replicate",
    "run_benchmark",
    "score_calls",
]
