#!/usr/bin/env python3
"""Evaluate clustered replicate .h5ad files listed in a JSON config."""

from __future__ import annotations

from clusteval.cli import evaluate_main

if __name__ == "__main__":
    raise SystemExit(evaluate_main())
