"""Configuration loading utilities for clusteval runs."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from clusteval.parallel import BACKENDS


def load_json_config(path: str | Path) -> dict[str, Any]:
    """Load and validate a run config from a JSON file."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    if config_path.suffix.lower() != ".json":
        raise ValueError(
            f"Unsupported config format for '{config_path}'. Use a .json config file."
        )

    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise ValueError(
            f"Invalid JSON in config '{config_path}' at line {exc.lineno}, "
            f"column {exc.colno}: {exc.msg}"
        ) from exc

    if not isinstance(data, dict):
        raise ValueError(
            f"Invalid config root in '{config_path}': expected JSON object, got {type(data).__name__}."
        )
    return data


@dataclass(frozen=True)
class EvalSettings:
    """Evaluation and AnnData column settings shared by the CLI and library."""

    threshold: float = 0.05
    n_jobs: int = 1
    backend: str = "loky"
    chunk_size: int = 25
    separator: str = ","
    truth_key: str = "Group"
    cluster_key: str = "cluster"
    de_factor_prefix: str = "DEFacGroup"
    eligible_key: str = "passed_filter"
    de_pvalue_key: str = "de_pvalue"
    marker_pvalue_key: str = "marker_pvalue"
    plots: bool = True

    def __post_init__(self) -> None:
        if not (0.0 < float(self.threshold) <= 1.0):
            raise ValueError(f"threshold must be in (0, 1], got {self.threshold}.")
        if self.backend not in BACKENDS:
            raise ValueError(f"backend must be one of {', '.join(BACKENDS)}, got '{self.backend}'.")
        if self.separator not in {",", "\t"}:
            raise ValueError("separator must be ',' or a tab.")

    @classmethod
    def from_dict(cls, cfg: dict[str, Any]) -> "EvalSettings":
        """Build settings from a config mapping, ignoring run-level keys."""
        known = {f.name for f in fields(cls)}
        run_keys = {"inputs", "outdir"}
        unknown = sorted(k for k in cfg if k not in known and k not in run_keys)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        return cls(**{k: v for k, v in cfg.items() if k in known})

    def anndata_keys(self) -> dict[str, str]:
        return {
            "truth_key": self.truth_key,
            "cluster_key": self.cluster_key,
            "de_factor_prefix": self.de_factor_prefix,
            "eligible_key": self.eligible_key,
            "de_pvalue_key": self.de_pvalue_key,
            "marker_pvalue_key": self.marker_pvalue_key,
        }

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)
