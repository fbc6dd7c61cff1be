from __future__ import annotations

import numpy as np
import pytest

from clusteval.core.types import ReplicateData


def make_toy_replicate(replicate_id: str = "rep1", **overrides) -> ReplicateData:
    """Six cells in three groups and six genes with hand-checked calls."""
    fields = dict(
        replicate_id=replicate_id,
        group_labels=np.array(["Group1", "Group1", "Group2", "Group2", "Group3", "Group3"]),
        cluster_labels=np.array([1, 1, 0, 0, 2, 2]),
        de_factors=np.array(
            [
                [1.0, 1.0, 1.0],
                [1.0, 1.5, 1.0],
                [1.2, 1.5, 1.0],
                [1.0, 1.0, 0.5],
                [1.0, 1.0, 1.0],
                [2.0, 1.0, 1.0],
            ]
        ),
        eligible=np.array([True, True, True, True, True, False]),
        de_pvalues=np.array([0.5, 0.01, 0.02, np.nan, 0.01, 0.001]),
        marker_pvalues=np.array([0.9, 0.01, 0.03, 0.2, np.nan, 0.0]),
    )
    fields.update(overrides)
    return ReplicateData(**fields)


def make_random_replicate(seed: int, replicate_id: str | None = None) -> ReplicateData:
    rng = np.random.default_rng(seed)
    n_cells, n_genes, n_groups = 60, 80, 3
    factors = np.ones((n_genes, n_groups))
    changed = rng.random((n_genes, n_groups)) < 0.2
    factors[changed] = rng.lognormal(0.0, 0.5, size=int(changed.sum()))
    de_p = rng.random(n_genes)
    de_p[rng.random(n_genes) < 0.1] = np.nan
    marker_p = rng.random(n_genes)
    marker_p[rng.random(n_genes) < 0.1] = np.nan
    return ReplicateData(
        replicate_id=replicate_id or f"rep{seed}",
        group_labels=rng.integers(0, n_groups, size=n_cells),
        cluster_labels=rng.integers(0, n_groups, size=n_cells),
        de_factors=factors,
        eligible=rng.random(n_genes) < 0.8,
        de_pvalues=de_p,
        marker_pvalues=marker_p,
    )


@pytest.fixture
def toy_replicate() -> ReplicateData:
    return make_toy_replicate()


@pytest.fixture
def toy_factory():
    return make_toy_replicate


@pytest.fixture
def random_factory():
    return make_random_replicate
