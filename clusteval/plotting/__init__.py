"""Plotting API for replicate metric tables."""

from clusteval.plotting.metrics import METRIC_PANELS, plot_metric_distributions
from clusteval.plotting.styles import (
    DEFAULT_PLOT_STYLE,
    PlotStyle,
    apply_plot_style,
    plot_style_dict,
)
from clusteval.plotting.utils import annotate_n, save_figure

__all__ = [
    "METRIC_PANELS",
    "PlotStyle",
    "DEFAULT_PLOT_STYLE",
    "apply_plot_style",
    "plot_style_dict",
    "plot_metric_distributions",
    "annotate_n",
    "save_figure",
]
