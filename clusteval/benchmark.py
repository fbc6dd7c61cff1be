"""Simulate, cluster and score many replicates with one master seed.

The simulator and clustering algorithm are supplied by the caller and are
only reached through the two call contracts below.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Protocol

import numpy as np

from clusteval.aggregate import MetricsAggregator, evaluate_isolated
from clusteval.core.types import MetricsRow, ReplicateData, failed_row
from clusteval.evaluation import DEFAULT_THRESHOLD
from clusteval.parallel import parallel_map
from clusteval.seeding import replicate_seed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationResult:
    counts: np.ndarray
    group_labels: np.ndarray
    de_factors: np.ndarray
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ClusteringResult:
    cluster_labels: np.ndarray
    eligible: np.ndarray
    de_pvalues: np.ndarray
    marker_pvalues: np.ndarray


class Simulator(Protocol):
    def __call__(self, n_groups: int, seed: int) -> SimulationResult: ...


class Clusterer(Protocol):
    def __call__(self, counts: np.ndarray, n_clusters: int, seed: int) -> ClusteringResult: ...


@dataclass(frozen=True)
class ReplicateSpec:
    replicate_id: str
    sim_seed: int
    cluster_seed: int


def make_replicate_specs(n_replicates: int, master_seed: int, prefix: str = "rep") -> list[ReplicateSpec]:
    if int(n_replicates) <= 0:
        raise ValueError("n_replicates must be positive.")
    width = len(str(int(n_replicates)))
    specs = []
    for i in range(1, int(n_replicates) + 1):
        rid = f"{prefix}{i:0{width}d}"
        specs.append(
            ReplicateSpec(
                replicate_id=rid,
                sim_seed=replicate_seed(master_seed, rid, "simulate"),
                cluster_seed=replicate_seed(master_seed, rid, "cluster"),
            )
        )
    return specs


def build_replicate(
    spec: ReplicateSpec,
    simulator: Simulator,
    clusterer: Clusterer,
    n_groups: int,
) -> ReplicateData:
    sim = simulator(int(n_groups), spec.sim_seed)
    clus = clusterer(sim.counts, int(n_groups), spec.cluster_seed)
    return ReplicateData(
        replicate_id=spec.replicate_id,
        group_labels=np.asarray(sim.group_labels),
        cluster_labels=np.asarray(clus.cluster_labels),
        de_factors=np.asarray(sim.de_factors, dtype=float),
        eligible=np.asarray(clus.eligible),
        de_pvalues=np.asarray(clus.de_pvalues, dtype=float),
        marker_pvalues=np.asarray(clus.marker_pvalues, dtype=float),
        metadata={"sim_seed": spec.sim_seed, "cluster_seed": spec.cluster_seed, **sim.params},
    )


def _run_replicate(
    spec: ReplicateSpec,
    simulator: Simulator,
    clusterer: Clusterer,
    n_groups: int,
    threshold: float,
) -> MetricsRow:
    try:
        replicate = build_replicate(spec, simulator, clusterer, n_groups)
    except Exception as exc:  # noqa: BLE001
        return failed_row(spec.replicate_id, f"{type(exc).__name__}: {exc}")
    return evaluate_isolated(replicate, threshold)


def run_benchmark(
    simulator: Simulator,
    clusterer: Clusterer,
    *,
    n_replicates: int,
    n_groups: int,
    master_seed: int = 0,
    threshold: float = DEFAULT_THRESHOLD,
    n_jobs: int = 1,
    backend: str = "loky",
    chunk_size: int = 25,
) -> MetricsAggregator:
    """Run simulate -> cluster -> evaluate for every replicate.

    Each replicate draws its own seeds from `master_seed` and its id, so
    results do not depend on worker count or scheduling. The clustering
    algorithm is asked for `n_groups` clusters.
    """
    if int(n_groups) < 1:
        raise ValueError("n_groups must be at least 1.")
    specs = make_replicate_specs(n_replicates, master_seed)
    rows = parallel_map(
        partial(
            _run_replicate,
            simulator=simulator,
            clusterer=clusterer,
            n_groups=int(n_groups),
            threshold=float(threshold),
        ),
        specs,
        n_jobs=n_jobs,
        backend=backend,
        chunk_size=chunk_size,
    )
    for row in rows:
        if row.status == "failed":
            logger.warning("Replicate %s failed: %s", row.replicate_id, row.error)

    agg = MetricsAggregator(threshold, n_jobs=n_jobs, backend=backend, chunk_size=chunk_size)
    agg.add(rows)
    counts = agg.failure_counts()
    logger.info(
        "Benchmark finished: n_replicates=%d ok=%d degraded=%d failed=%d",
        len(rows),
        counts["ok"],
        counts["degraded"],
        counts["failed"],
    )
    return agg
