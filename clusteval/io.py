"""Filesystem, logging, and AnnData helpers around the evaluation core."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

import anndata as ad
import numpy as np
import pandas as pd

from clusteval.core.types import ReplicateData

_FACTOR_SUFFIX = re.compile(r"(\d+)$")


def ensure_dir(path: str | Path) -> Path:
    """Create a directory if needed and return it as ``Path``."""
    out = Path(path)
    out.mkdir(parents=True, exist_ok=True)
    return out


def write_json(path: str | Path, payload: dict[str, Any] | list[Any]) -> Path:
    out = Path(path)
    ensure_dir(out.parent)
    out.write_text(json.dumps(payload, indent=2, sort_keys=True, default=str), encoding="utf-8")
    return out


def setup_logger(log_path: Path, logger_name: str) -> logging.Logger:
    ensure_dir(log_path.parent)
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    fh = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    fh.setFormatter(formatter)
    logger.addHandler(fh)
    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    logger.addHandler(sh)
    return logger


def atomic_write_table(path: str | Path, df: pd.DataFrame, sep: str = ",") -> Path:
    """Write a delimited table by replacing a temporary file.

    Floats use 17 significant digits so a read-back reproduces them exactly;
    missing values are written as empty cells.
    """
    out = Path(path)
    ensure_dir(out.parent)
    tmp = out.with_suffix(out.suffix + ".tmp")
    df.to_csv(tmp, index=False, sep=sep, float_format="%.17g", na_rep="")
    tmp.replace(out)
    return out


def read_metrics_table(path: str | Path, sep: str = ",") -> pd.DataFrame:
    table_path = Path(path)
    if not table_path.exists():
        raise FileNotFoundError(f"Metrics table not found: {table_path}")
    return pd.read_csv(
        table_path,
        sep=sep,
        dtype={"replicate_id": str, "status": str, "error": str},
        keep_default_na=False,
        na_values=[""],
    )


def _factor_columns(var: pd.DataFrame, prefix: str) -> list[str]:
    cols = [str(c) for c in var.columns if str(c).startswith(prefix)]
    if not cols:
        raise KeyError(f"No DE factor columns with prefix '{prefix}' in adata.var.")

    def _order(col: str) -> tuple[int, str]:
        m = _FACTOR_SUFFIX.search(col[len(prefix):])
        return (int(m.group(1)) if m else -1, col)

    return sorted(cols, key=_order)


def _require(frame: pd.DataFrame, key: str, where: str) -> pd.Series:
    if key not in frame.columns:
        raise KeyError(f"adata.{where}['{key}'] not found.")
    return frame[key]


def replicate_from_anndata(
    adata: ad.AnnData,
    replicate_id: str,
    *,
    truth_key: str = "Group",
    cluster_key: str = "cluster",
    de_factor_prefix: str = "DEFacGroup",
    eligible_key: str = "passed_filter",
    de_pvalue_key: str = "de_pvalue",
    marker_pvalue_key: str = "marker_pvalue",
) -> ReplicateData:
    """Build ReplicateData from a simulated, clustered AnnData object.

    Expects splatter-style annotations: true groups in ``obs[truth_key]`` and
    one ``var[f"{prefix}{k}"]`` factor column per group. Clustering output sits
    next to them; missing p-values become NaN.
    """
    obs = adata.obs
    var = adata.var
    factors = var[_factor_columns(var, de_factor_prefix)].to_numpy(dtype=float)
    eligible = _require(var, eligible_key, "var").fillna(False).astype(bool).to_numpy()
    de_p = pd.to_numeric(_require(var, de_pvalue_key, "var"), errors="coerce")
    marker_p = pd.to_numeric(_require(var, marker_pvalue_key, "var"), errors="coerce")
    return ReplicateData(
        replicate_id=str(replicate_id),
        group_labels=_require(obs, truth_key, "obs").to_numpy(dtype=object),
        cluster_labels=_require(obs, cluster_key, "obs").to_numpy(dtype=object),
        de_factors=factors,
        eligible=eligible,
        de_pvalues=de_p.to_numpy(dtype=float),
        marker_pvalues=marker_p.to_numpy(dtype=float),
        metadata={"n_cells": int(adata.n_obs), "gene_names": np.asarray(adata.var_names)},
    )


def load_replicate_h5ad(path: str | Path, replicate_id: str | None = None, **keys: str) -> ReplicateData:
    """Read one replicate from an ``.h5ad`` file; the id defaults to the file stem."""
    h5ad_path = Path(path)
    if not h5ad_path.exists():
        raise FileNotFoundError(f"Input file '{h5ad_path}' not found.")
    adata = ad.read_h5ad(h5ad_path)
    rid = replicate_id if replicate_id is not None else h5ad_path.stem
    return replicate_from_anndata(adata, str(rid), **keys)
