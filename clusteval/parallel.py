"""Order-stable parallel helpers for replicate workloads."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable
from typing import TypeVar

from joblib import Parallel, delayed

T = TypeVar("T")
R = TypeVar("R")

BACKENDS = ("loky", "multiprocessing", "threading")

logger = logging.getLogger(__name__)


def resolve_n_jobs(n_jobs: int) -> int:
    """Map joblib-style worker counts (-1 = all cores) to a positive int."""
    jobs = int(n_jobs)
    n_cpu = os.cpu_count() or 1
    if jobs < 0:
        return max(1, n_cpu + 1 + jobs)
    return max(1, jobs)


def _call_indexed(func: Callable[[T], R], indexed: tuple[int, T]) -> tuple[int, R]:
    idx, item = indexed
    return idx, func(item)


def parallel_map(
    func: Callable[[T], R],
    items: Iterable[T],
    *,
    n_jobs: int = 1,
    backend: str = "loky",
    chunk_size: int = 25,
) -> list[R]:
    """Apply `func` to items with deterministic, order-stable aggregation.

    Output order is always aligned to input order, independent of scheduling.
    """
    seq = list(items)
    if not seq:
        return []
    if backend not in BACKENDS:
        raise ValueError(f"Unknown backend '{backend}'. Choose from {', '.join(BACKENDS)}.")

    jobs = resolve_n_jobs(n_jobs)
    chunks = max(1, int(chunk_size))

    if jobs == 1 or len(seq) == 1:
        logger.info("parallel_map serial execution: n_items=%d", len(seq))
        return [func(item) for item in seq]

    logger.info(
        "parallel_map n_items=%d n_jobs=%d backend=%s chunk_size=%d",
        len(seq),
        jobs,
        backend,
        chunks,
    )
    rows = Parallel(n_jobs=jobs, backend=backend, batch_size=chunks)(
        delayed(_call_indexed)(func, pair) for pair in enumerate(seq)
    )
    rows.sort(key=lambda x: x[0])
    return [row for _, row in rows]
