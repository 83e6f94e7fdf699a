from __future__ import annotations
from typing import Iterable, Optional
import logging

import pandas as pd

from .config import WATER_QUALITY_COLUMNS, SourceConfig, SurveyConfig
from .cleaning import (
    normalize_columns, normalize_labels, require_columns, coerce_numeric,
    parse_dates, harmonize_ids, canonicalize_site,
)

logger = logging.getLogger(__name__)

WQ_KEYS = ["site", "year", "month"]

# -------------------------------
# Water quality
# -------------------------------

def summarize_water_quality(
    wq: pd.DataFrame,
    cfg: SourceConfig,
    site_corrections: Optional[dict[str, str]] = None,
    source: Optional[str] = None,
) -> pd.DataFrame:
    """
    Rename a raw water-quality sheet and average each measurement per (site, year, month).

    Unparseable readings stay missing (they are not zero-filled like counts).
    """
    df = normalize_columns(wq)
    rename = dict(zip(normalize_labels(cfg.columns.keys()), cfg.columns.values()))
    require_columns(df, list(rename), source=source or cfg.file)
    df = df[list(rename)].rename(columns=rename)
    for required in ("date", "site"):
        if required not in df.columns:
            raise KeyError(f"Water-quality config must map a '{required}' column")

    measures = [c for c in WATER_QUALITY_COLUMNS if c in df.columns]
    df = parse_dates(df, {"date": cfg.date_format})
    df = harmonize_ids(df, "site")
    df["site"] = canonicalize_site(df["site"], site_corrections or {})
    df = coerce_numeric(df, measures, fill=None)
    df = df.dropna(subset=["date", "site"])
    df["year"] = df["date"].dt.year.astype(int)
    df["month"] = df["date"].dt.month.astype(int)

    out = df.groupby(WQ_KEYS, as_index=False)[measures].mean()
    for col in WATER_QUALITY_COLUMNS:
        if col not in out.columns:
            out[col] = float("nan")
    return out[WQ_KEYS + list(WATER_QUALITY_COLUMNS)]


def merge_water_quality(wide: pd.DataFrame, wq_summary: pd.DataFrame) -> pd.DataFrame:
    """Left-join monthly water quality onto samples by (site, year, month); row count is unchanged."""
    overlap = [c for c in WATER_QUALITY_COLUMNS if c in wide.columns]
    if overlap:
        raise ValueError(f"Columns already exist in wide table: {overlap}")
    out = wide.merge(wq_summary, on=WQ_KEYS, how="left", validate="many_to_one")
    if len(out) != len(wide):
        raise RuntimeError("Water-quality merge changed the row count")
    matched = int(out[list(WATER_QUALITY_COLUMNS)].notna().any(axis=1).sum())
    logger.info("Water quality matched %d of %d samples", matched, len(out))
    return out


# -------------------------------
# Coverage
# -------------------------------

def taxon_coverage(config: SurveyConfig) -> pd.DataFrame:
    """
    Which canonical taxa each survey year's layout records: rows=taxa, cols=years.
    A False cell means that year contributes zeros for the taxon. Several
    instrument files of one year count as recording a taxon if any of them does.
    """
    rep: dict[int, list[bool]] = {}
    for cfg in config.years:
        recorded = [t in cfg.taxon_columns for t in config.taxa]
        prev = rep.get(cfg.year, [False] * len(recorded))
        rep[cfg.year] = [a or b for a, b in zip(prev, recorded)]
    out = pd.DataFrame(rep, index=pd.Index(config.taxa, name="taxon"))
    return out.sort_index(axis=1)


def assert_unique(df: pd.DataFrame, cols: Iterable[str], name: str = "frame") -> None:
    cols = list(cols)
    dups = df[df.duplicated(subset=cols, keep=False)]
    if not dups.empty:
        raise ValueError(f"{name} has duplicate {cols} (first 10): {dups[cols].head(10).values.tolist()}")
