from __future__ import annotations

import logging

import numpy as np
import pandas as pd
import pytest

from clusteval.aggregate import MetricsAggregator
from clusteval.core.types import EXTRA_COLUMNS, METRIC_COLUMNS, failed_row
from clusteval.io import read_metrics_table


def _batch(random_factory, n=4):
    return [random_factory(seed, replicate_id=f"rep{seed:02d}") for seed in range(n)]


def test_table_layout_and_submission_order(random_factory):
    reps = _batch(random_factory)[::-1]
    agg = MetricsAggregator()
    df = agg.run(reps)
    assert list(df.columns[: len(METRIC_COLUMNS)]) == list(METRIC_COLUMNS)
    assert df["replicate_id"].tolist() == [r.replicate_id for r in reps]
    assert agg.to_frame(sort_by_id=True)["replicate_id"].tolist() == sorted(
        r.replicate_id for r in reps
    )


def test_parallel_run_matches_serial(random_factory):
    reps = _batch(random_factory, n=6)
    serial = MetricsAggregator().run(reps)
    threaded = MetricsAggregator(n_jobs=3, backend="threading", chunk_size=1).run(reps)
    pd.testing.assert_frame_equal(serial, threaded)


def test_failed_replicate_does_not_abort_siblings(random_factory, toy_factory, caplog):
    caplog.set_level(logging.WARNING)
    bad = toy_factory("broken", cluster_labels=np.array([0, 1]))
    reps = [random_factory(0, "rep00"), bad, random_factory(1, "rep01")]
    agg = MetricsAggregator()
    df = agg.run(reps)

    assert df["replicate_id"].tolist() == ["rep00", "broken", "rep01"]
    failed = df.loc[df["replicate_id"] == "broken"].iloc[0]
    assert failed["status"] == "failed"
    assert "ValueError" in failed["error"]
    assert failed[list(METRIC_COLUMNS[1:])].isna().all()
    count_cols = [c for c in EXTRA_COLUMNS if c not in {"n_genes", "status", "error"}]
    assert failed[count_cols].isna().all()
    assert failed["n_genes"] == 6
    assert df.loc[df["replicate_id"] != "broken", count_cols].notna().all().all()
    assert df.loc[df["replicate_id"] != "broken", "rand"].notna().all()

    counts = agg.failure_counts()
    assert counts["failed"] == 1
    assert counts["ok"] + counts["degraded"] == 2
    assert "broken" in caplog.text


def test_duplicate_ids_rejected(random_factory):
    agg = MetricsAggregator()
    with pytest.raises(ValueError, match="Duplicate"):
        agg.run([random_factory(0, "x"), random_factory(1, "x")])
    agg.run([random_factory(0, "x")])
    with pytest.raises(ValueError, match="Duplicate"):
        agg.run([random_factory(1, "x")])
    assert len(agg) == 1


@pytest.mark.parametrize("sep", [",", "\t"])
def test_table_round_trip(random_factory, toy_factory, tmp_path, sep):
    agg = MetricsAggregator()
    agg.run(_batch(random_factory) + [toy_factory("toy", de_factors=np.ones((6, 3)))])
    original = agg.to_frame()
    path = agg.write(tmp_path / "metrics.tsv", sep=sep)
    loaded = read_metrics_table(path, sep=sep)

    assert loaded["replicate_id"].tolist() == original["replicate_id"].tolist()
    numeric = [c for c in original.columns if c not in {"replicate_id", "status", "error"}]
    for col in numeric:
        a = original[col].to_numpy(dtype=float)
        b = loaded[col].to_numpy(dtype=float)
        assert np.array_equal(a, b, equal_nan=True), col
    assert loaded["status"].tolist() == original["status"].tolist()


def test_long_format_and_summary(random_factory):
    agg = MetricsAggregator()
    agg.run(_batch(random_factory, n=5))
    wide = agg.to_frame()

    long_df = agg.long_format(dropna=False)
    assert len(long_df) == 5 * (len(METRIC_COLUMNS) - 1)
    rand_vals = long_df.loc[long_df["metric"] == "rand", "value"].to_numpy()
    assert np.allclose(rand_vals, wide["rand"].to_numpy())

    only = agg.long_format(metrics=["de_f1"])
    assert set(only["metric"]) <= {"de_f1"}
    with pytest.raises(KeyError):
        agg.long_format(metrics=["not_a_metric"])

    summary = agg.summarize().set_index("metric")
    assert np.isclose(summary.loc["rand", "mean"], wide["rand"].mean())
    assert summary.loc["jaccard", "count"] == wide["jaccard"].notna().sum()


def test_empty_aggregator_has_contract_columns():
    df = MetricsAggregator().to_frame()
    assert df.empty
    assert list(df.columns[: len(METRIC_COLUMNS)]) == list(METRIC_COLUMNS)


def test_unloaded_replicate_exports_missing_counts(random_factory, tmp_path):
    agg = MetricsAggregator()
    agg.add([failed_row("unreadable", "OSError: truncated file")])
    agg.run([random_factory(0, "rep00")])
    path = agg.write(tmp_path / "metrics.csv")
    loaded = read_metrics_table(path).set_index("replicate_id")

    assert np.isnan(loaded.loc["unreadable", "n_genes"])
    assert np.isnan(loaded.loc["unreadable", ["de_tp", "de_fn", "marker_tp", "marker_fn"]].astype(float)).all()
    assert loaded.loc["rep00", "n_genes"] == 80
    assert loaded["de_tp"].sum() == loaded.loc["rep00", "de_tp"]
