"""Command-line interface: evaluate clustered replicate files and export metrics."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Iterable

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402

from clusteval.aggregate import MetricsAggregator
from clusteval.config import EvalSettings, load_json_config
from clusteval.core.types import ReplicateData, failed_row
from clusteval.io import (
    atomic_write_table,
    ensure_dir,
    load_replicate_h5ad,
    setup_logger,
    write_json,
)
from clusteval.plotting import plot_metric_distributions, plot_style_dict


def _resolve_inputs(raw: Any, base_dir: Path) -> list[tuple[str, Path]]:
    """Normalize the `inputs` config entry to ordered (replicate_id, path) pairs."""
    if isinstance(raw, dict):
        pairs = [(str(k), Path(v)) for k, v in raw.items()]
    elif isinstance(raw, list):
        pairs = [(Path(p).stem, Path(p)) for p in raw]
    else:
        raise ValueError("Config 'inputs' must be a list of paths or an id -> path mapping.")
    if not pairs:
        raise ValueError("Config 'inputs' is empty.")
    return [(rid, p if p.is_absolute() else base_dir / p) for rid, p in pairs]


def _load_all(
    inputs: list[tuple[str, Path]],
    settings: EvalSettings,
    logger: logging.Logger,
) -> tuple[list[ReplicateData], list[tuple[str, str]]]:
    loaded: list[ReplicateData] = []
    failures: list[tuple[str, str]] = []
    for rid, path in inputs:
        try:
            loaded.append(load_replicate_h5ad(path, rid, **settings.anndata_keys()))
        except (FileNotFoundError, KeyError, ValueError, OSError) as exc:
            logger.warning("Replicate %s not loaded from %s: %s", rid, path, exc)
            failures.append((rid, f"{type(exc).__name__}: {exc}"))
    return loaded, failures


def run_evaluation(config_path: str | Path) -> MetricsAggregator:
    """Load, evaluate and export every replicate named in a JSON config."""
    cfg_path = Path(config_path)
    cfg = load_json_config(cfg_path)
    settings = EvalSettings.from_dict(cfg)
    if "inputs" not in cfg:
        raise ValueError(f"Config '{cfg_path}' is missing 'inputs'.")
    outdir = Path(cfg.get("outdir", "clusteval_out"))
    if not outdir.is_absolute():
        outdir = cfg_path.parent / outdir

    results_dir = ensure_dir(outdir / "results")
    logger = setup_logger(outdir / "logs" / "clusteval.log", "clusteval")
    write_json(outdir / "config" / "settings.json", settings.as_dict())

    inputs = _resolve_inputs(cfg["inputs"], cfg_path.parent)
    logger.info("Loading %d replicate inputs", len(inputs))
    replicates, load_failures = _load_all(inputs, settings, logger)

    agg = MetricsAggregator(
        settings.threshold,
        n_jobs=settings.n_jobs,
        backend=settings.backend,
        chunk_size=settings.chunk_size,
    )
    agg.add(failed_row(rid, err) for rid, err in load_failures)
    agg.run(replicates)

    ext = ".tsv" if settings.separator == "\t" else ".csv"
    table_path = atomic_write_table(
        results_dir / f"metrics{ext}", agg.to_frame(sort_by_id=True), sep=settings.separator
    )
    atomic_write_table(results_dir / f"metrics_summary{ext}", agg.summarize(), sep=settings.separator)
    long_df = agg.long_format()
    atomic_write_table(results_dir / f"metrics_long{ext}", long_df, sep=settings.separator)
    counts = agg.failure_counts()
    write_json(results_dir / "failure_counts.json", counts)

    if settings.plots:
        fig, _ = plot_metric_distributions(long_df, outdir / "plots" / "metric_distributions.png")
        plt.close(fig)
        write_json(outdir / "config" / "plot_style.json", plot_style_dict())

    logger.info("Metrics table written to %s", table_path.as_posix())
    logger.info(
        "Replicate status: ok=%d degraded=%d failed=%d",
        counts["ok"],
        counts["degraded"],
        counts["failed"],
    )
    return agg


def evaluate_main(argv: Iterable[str] | None = None) -> int:
    """Evaluate replicates from a JSON config.

    Args:
        argv: Command-line arguments (if None, uses sys.argv).

    Returns:
        Exit code: 0 when at least one replicate was scored, 1 otherwise.
    """
    parser = argparse.ArgumentParser(description="Score clustering and DE calls on simulated replicates")
    parser.add_argument("--config", required=True, help="Path to a JSON run config")
    args = parser.parse_args(list(argv) if argv is not None else None)

    agg = run_evaluation(args.config)
    counts = agg.failure_counts()
    return 0 if counts["ok"] + counts["degraded"] > 0 else 1
