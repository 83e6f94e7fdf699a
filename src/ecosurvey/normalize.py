"""
Per-year normalization of raw invertebrate count sheets.

Every survey year has its own column layout and sampling volume. A single
generic routine, driven by a YearConfig, turns any of them into the canonical
table: sample_id, survey_year, date, site, sample_type and one column per
canonical taxon holding organisms per liter.
"""
from __future__ import annotations
from typing import Iterable, Optional
import logging

import numpy as np
import pandas as pd

from .config import META_COLUMNS, Override, YearConfig
from .cleaning import (
    normalize_columns, normalize_labels, require_columns, coerce_numeric,
    parse_dates, harmonize_ids, ensure_nonnegative,
)
from .exceptions import ConfigError
from .validators import validate_normalized

logger = logging.getLogger(__name__)

ID_COLUMNS = ["sample_id", "survey_year", "date", "site", "sample_type"]


def _rename_map(cfg: YearConfig) -> dict[str, str]:
    """Rename map keyed by normalized raw header, so config keys may be written as they appear in the sheet."""
    return dict(zip(normalize_labels(cfg.columns.keys()), cfg.columns.values()))


def apply_overrides(df: pd.DataFrame, overrides: Iterable[Override], year: Optional[str] = None) -> pd.DataFrame:
    """
    Apply documented single-cell corrections. Rows are addressed by raw row index.
    """
    df = df.copy()
    for o in overrides:
        if o.row not in df.index or o.column not in df.columns:
            raise ConfigError("Override addresses a missing cell", {"year": year, "row": o.row, "column": o.column})
        before = df.at[o.row, o.column]
        if o.op == "divide":
            df.at[o.row, o.column] = before / o.value
        elif o.op == "multiply":
            df.at[o.row, o.column] = before * o.value
        else:
            df.at[o.row, o.column] = o.value
        logger.warning(
            "Override %s row %s %s: %s %s %s -> %s %s",
            year, o.row, o.column, before, o.op, o.value, df.at[o.row, o.column],
            f"({o.note})" if o.note else "",
        )
    return df


def normalize_year(
    raw: pd.DataFrame,
    cfg: YearConfig,
    taxa: Iterable[str],
    source: Optional[str] = None,
) -> pd.DataFrame:
    """
    Normalize one year's raw table to the canonical schema.

    Args:
        raw: Raw table as read (header rows already skipped)
        cfg: The year's configuration
        taxa: Canonical ordered taxon list
        source: File name used in error messages (default: cfg.file)

    Returns:
        Canonical table, one row per retained raw row

    Raises:
        RawSchemaError: a column named in cfg.columns is missing
        TableValidationError: a retained row lacks a date or site, or a count is not finite
    """
    taxa = list(taxa)
    source = source or cfg.file
    df = normalize_columns(raw)
    rename = _rename_map(cfg)
    require_columns(df, list(rename), source=source)

    if cfg.drop_rows:
        df = df.drop(index=list(cfg.drop_rows))

    out = pd.DataFrame(index=df.index)
    for raw_col, target in rename.items():
        if target in META_COLUMNS:
            out[target] = df[raw_col]
    for col, value in cfg.defaults.items():
        out[col] = out[col].fillna(value) if col in out.columns else value
    for col in META_COLUMNS:
        if col not in out.columns:
            out[col] = np.nan
    out = parse_dates(out, {"date": cfg.date_format})
    out = harmonize_ids(out, "site")
    out = harmonize_ids(out, "sample_type")

    count_cols = [c for c, t in rename.items() if t not in META_COLUMNS]
    counts = coerce_numeric(df, count_cols, fill=0.0)
    for taxon in taxa:
        sources = [c for c in count_cols if rename[c] == taxon]
        out[taxon] = counts[sources].sum(axis=1) / cfg.divisor if sources else 0.0
    out[taxa] = out[taxa].astype(float)

    out = apply_overrides(out, cfg.overrides, year=cfg.key)

    out["survey_year"] = np.full(len(out), cfg.year, dtype=int)
    out["sample_id"] = pd.Series([f"{cfg.key}-{i}" for i in out.index], index=out.index, dtype=str)
    out = out[ID_COLUMNS + taxa].reset_index(drop=True)

    ensure_nonnegative(out, taxa)
    out = validate_normalized(out, taxa, source=source)
    logger.info("Normalized %s: %d samples, divisor %s, %d/%d taxa recorded",
                cfg.key, len(out), cfg.divisor, len(cfg.taxon_columns), len(taxa))
    return out
