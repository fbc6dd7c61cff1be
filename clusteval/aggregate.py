"""Run replicate evaluations and assemble the cross-replicate metrics table."""

from __future__ import annotations

import logging
import traceback
from collections.abc import Iterable
from functools import partial
from pathlib import Path

import numpy as np
import pandas as pd

from clusteval.core.types import (
    EXTRA_COLUMNS,
    METRIC_COLUMNS,
    MetricsRow,
    ReplicateData,
    failed_row,
)
from clusteval.evaluation import DEFAULT_THRESHOLD, evaluate_replicate
from clusteval.io import atomic_write_table
from clusteval.parallel import parallel_map

logger = logging.getLogger(__name__)

STATUSES = ("ok", "degraded", "failed")
VALUE_COLUMNS = list(METRIC_COLUMNS[1:])


def evaluate_isolated(replicate: ReplicateData, threshold: float) -> MetricsRow:
    """Evaluate one replicate, converting any exception into a failed row."""
    try:
        return evaluate_replicate(replicate, threshold=threshold)
    except Exception as exc:  # noqa: BLE001
        rid = getattr(replicate, "replicate_id", "?")
        msg = f"{type(exc).__name__}: {exc}"
        logger.debug("Replicate %s traceback:\n%s", rid, traceback.format_exc())
        shape = np.shape(getattr(replicate, "de_factors", ()))
        n_genes = int(shape[0]) if len(shape) >= 1 else None
        return failed_row(str(rid), msg, n_genes=n_genes)


class MetricsAggregator:
    """Collect one MetricsRow per replicate, keyed by replicate id.

    Replicates are independent; a failure in one is recorded as a `failed`
    row and never interrupts the others. Rows keep submission order.
    """

    def __init__(
        self,
        threshold: float = DEFAULT_THRESHOLD,
        *,
        n_jobs: int = 1,
        backend: str = "loky",
        chunk_size: int = 25,
    ) -> None:
        self.threshold = float(threshold)
        self.n_jobs = int(n_jobs)
        self.backend = str(backend)
        self.chunk_size = int(chunk_size)
        self._rows: dict[str, MetricsRow] = {}

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def rows(self) -> list[MetricsRow]:
        return list(self._rows.values())

    def _check_new_ids(self, ids: list[str]) -> None:
        seen: set[str] = set()
        dupes = []
        for rid in ids:
            if rid in seen or rid in self._rows:
                dupes.append(rid)
            seen.add(rid)
        if dupes:
            raise ValueError(f"Duplicate replicate ids: {sorted(set(dupes))}")

    def add(self, rows: Iterable[MetricsRow]) -> None:
        """Merge already-evaluated rows by replicate id."""
        batch = list(rows)
        self._check_new_ids([row.replicate_id for row in batch])
        for row in batch:
            self._rows[row.replicate_id] = row

    def run(self, replicates: Iterable[ReplicateData]) -> pd.DataFrame:
        """Evaluate replicates (possibly in parallel) and return the full table."""
        batch = list(replicates)
        self._check_new_ids([str(rep.replicate_id) for rep in batch])

        rows = parallel_map(
            partial(evaluate_isolated, threshold=self.threshold),
            batch,
            n_jobs=self.n_jobs,
            backend=self.backend,
            chunk_size=self.chunk_size,
        )
        for row in rows:
            if row.status == "failed":
                logger.warning("Replicate %s failed: %s", row.replicate_id, row.error)
        self.add(rows)

        counts = self.failure_counts()
        logger.info(
            "Evaluated %d replicates: ok=%d degraded=%d failed=%d",
            len(batch),
            counts["ok"],
            counts["degraded"],
            counts["failed"],
        )
        return self.to_frame()

    def failure_counts(self) -> dict[str, int]:
        counts = {status: 0 for status in STATUSES}
        for row in self._rows.values():
            counts[row.status] += 1
        return counts

    def to_frame(self, sort_by_id: bool = False) -> pd.DataFrame:
        """Flat export table: contract columns first, then counts and status."""
        columns = list(METRIC_COLUMNS) + list(EXTRA_COLUMNS)
        df = pd.DataFrame([row.as_record() for row in self._rows.values()], columns=columns)
        if sort_by_id and not df.empty:
            df = df.sort_values("replicate_id", kind="mergesort").reset_index(drop=True)
        return df

    def long_format(self, metrics: list[str] | None = None, dropna: bool = True) -> pd.DataFrame:
        """One row per (replicate_id, metric, value) for distribution plots."""
        value_cols = list(metrics) if metrics is not None else VALUE_COLUMNS
        unknown = [m for m in value_cols if m not in VALUE_COLUMNS]
        if unknown:
            raise KeyError(f"Unknown metrics: {unknown}")
        df = self.to_frame()
        long_df = df.melt(
            id_vars=["replicate_id", "status"],
            value_vars=value_cols,
            var_name="metric",
            value_name="value",
        )
        long_df["value"] = long_df["value"].astype(float)
        if dropna:
            long_df = long_df.dropna(subset=["value"]).reset_index(drop=True)
        return long_df

    def summarize(self) -> pd.DataFrame:
        """Per-metric distribution summary across replicates (NaN ignored)."""
        df = self.to_frame()
        values = df[VALUE_COLUMNS].astype(float)
        summary = values.describe().T
        summary.index.name = "metric"
        return summary.reset_index()

    def write(self, path: str | Path, sep: str = ",") -> Path:
        return atomic_write_table(path, self.to_frame(), sep=sep)
