from __future__ import annotations
from typing import Iterable
import numpy as np
import pandas as pd

from .aggregate import GROUPINGS


def log1p_taxa(wide: pd.DataFrame, taxa: Iterable[str]) -> pd.DataFrame:
    """
    Copy of the wide table with every taxon column replaced by log(1 + count).
    Non-taxon columns are untouched.
    """
    taxa = list(taxa)
    X = wide[taxa].to_numpy(dtype=float, copy=True)
    if np.any(X < 0):
        raise ValueError("log1p_taxa requires nonnegative counts.")
    out = wide.copy()
    out[taxa] = np.log1p(X)
    return out


def add_rate_variants(long: pd.DataFrame, value: str = "organisms_L") -> pd.DataFrame:
    """
    Per-sample rates (count divided by each group size) and log1p of the raw
    value and of each rate, e.g. organisms_L_season, organisms_L_season_log.
    """
    out = long.copy()
    rates = [value]
    for factor in GROUPINGS:
        suffix = factor.removeprefix("n_samples_")
        col = f"{value}_{suffix}"
        out[col] = out[value] / out[factor]
        rates.append(col)
    for col in rates:
        out[f"{col}_log"] = np.log1p(out[col])
    return out
