"""Distribution plots of replicate metrics."""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from clusteval.core.types import PARTITION_COLUMNS, RATE_NAMES
from clusteval.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle, apply_plot_style
from clusteval.plotting.utils import annotate_n, save_figure

METRIC_PANELS = {
    "Clustering agreement": list(PARTITION_COLUMNS),
    "DE genes": [f"de_{name}" for name in RATE_NAMES],
    "Marker genes": [f"marker_{name}" for name in RATE_NAMES],
}


def _panel_label(metric: str) -> str:
    for prefix in ("de_", "marker_"):
        if metric.startswith(prefix):
            return metric[len(prefix):]
    return metric


def _draw_panel(
    ax: plt.Axes,
    long_df: pd.DataFrame,
    metrics: list[str],
    title: str,
    style: PlotStyle,
    rng: np.random.Generator,
) -> None:
    data = []
    for metric in metrics:
        vals = long_df.loc[long_df["metric"] == metric, "value"].to_numpy(dtype=float)
        data.append(vals[np.isfinite(vals)])

    positions = np.arange(1, len(metrics) + 1, dtype=float)
    if not any(v.size for v in data):
        ax.text(0.5, 0.5, "no finite values", transform=ax.transAxes, ha="center", va="center")
    else:
        drawable = [(pos, vals) for pos, vals in zip(positions, data) if vals.size]
        bp = ax.boxplot(
            [vals for _, vals in drawable],
            positions=[pos for pos, _ in drawable],
            widths=style.box_width,
            patch_artist=True,
            showfliers=False,
        )
        for box in bp["boxes"]:
            box.set_facecolor(style.box_facecolor)
        for med in bp["medians"]:
            med.set_color(style.median_color)
        for pos, vals in drawable:
            xs = pos + rng.uniform(-style.jitter, style.jitter, size=vals.size)
            ax.scatter(xs, vals, s=style.point_size, alpha=style.point_alpha, color=style.point_color)
    for pos, vals in zip(positions, data):
        annotate_n(ax, vals.size, pos)

    ax.set_xticks(positions)
    ax.set_xticklabels([_panel_label(m) for m in metrics], rotation=style.tick_rotation, ha="right")
    ax.set_xlim(0.4, len(metrics) + 0.6)
    ax.set_title(title)
    ax.set_ylabel("Value")


def plot_metric_distributions(
    long_df: pd.DataFrame,
    out_path: Path | None = None,
    *,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
    seed: int = 0,
):
    """Box plots of each metric across replicates, one panel per metric family.

    `long_df` is the output of ``MetricsAggregator.long_format`` (columns
    `metric` and `value`). NaN values are dropped per metric.
    """
    missing = [c for c in ("metric", "value") if c not in long_df.columns]
    if missing:
        raise KeyError(f"long_df missing columns: {missing}")

    apply_plot_style(style)
    rng = np.random.default_rng(int(seed))
    w, h = style.figsize_panel
    fig, axes = plt.subplots(1, len(METRIC_PANELS), figsize=(w * len(METRIC_PANELS), h))
    for ax, (title, metrics) in zip(np.atleast_1d(axes), METRIC_PANELS.items()):
        _draw_panel(ax, long_df, metrics, title, style, rng)
    fig.tight_layout()

    if out_path is not None:
        save_figure(fig, Path(out_path), style=style, close=False)
    return fig, axes
