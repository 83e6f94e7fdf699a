from __future__ import annotations
import logging

import pandas as pd

logger = logging.getLogger(__name__)

# normalization factor column -> grouping key
GROUPINGS = {
    "n_samples_season": ["season", "sample_type", "site_type"],
    "n_samples_year": ["year", "sample_type", "site_type"],
    "n_samples_site": ["site", "sample_type", "site_type"],
}


def group_sizes(wide: pd.DataFrame, by: list[str], name: str = "n_samples") -> pd.DataFrame:
    """
    Number of samples per group. Missing key values form their own group,
    so every sample belongs to exactly one row of the result.
    """
    return (
        wide.groupby(by, dropna=False, observed=True)
        .size()
        .rename(name)
        .reset_index()
    )


def normalization_tables(wide: pd.DataFrame) -> dict[str, pd.DataFrame]:
    return {name: group_sizes(wide, by, name) for name, by in GROUPINGS.items()}


def add_normalization_factors(wide: pd.DataFrame) -> pd.DataFrame:
    """Left-join each group size back onto the samples under its own column."""
    out = wide
    for name, table in normalization_tables(wide).items():
        out = out.merge(table, on=GROUPINGS[name], how="left", validate="many_to_one")
        out[name] = out[name].astype(int)
    if len(out) != len(wide):
        raise RuntimeError("Normalization factors changed the row count")
    logger.debug("Added normalization factors %s", list(GROUPINGS))
    return out
