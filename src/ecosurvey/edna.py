"""
Normalization of vendor eDNA species-detection exports.

The vendor sheet lists one row per (sample, sequence variant, species) with a
read count. Rows are renamed to a canonical layout, reads are summed per
(sample, species), and a detection flag is derived from reads > 0.
"""
from __future__ import annotations
from typing import Optional
import logging

import pandas as pd

from .config import SourceConfig
from .cleaning import (
    normalize_columns, normalize_labels, require_columns, coerce_numeric,
    parse_dates, harmonize_ids, canonicalize_site,
)

logger = logging.getLogger(__name__)

EDNA_REQUIRED = ["date", "site", "taxon", "reads"]
EDNA_COLUMNS = ["sample_id", "date", "site", "taxon", "reads", "detected"]


def normalize_edna(
    raw: pd.DataFrame,
    cfg: SourceConfig,
    site_corrections: Optional[dict[str, str]] = None,
    source: Optional[str] = None,
) -> pd.DataFrame:
    source = source or cfg.file
    df = normalize_columns(raw)
    rename = dict(zip(normalize_labels(cfg.columns.keys()), cfg.columns.values()))
    require_columns(df, list(rename), source=source)
    df = df[list(rename)].rename(columns=rename)
    absent = [c for c in EDNA_REQUIRED if c not in df.columns]
    if absent:
        raise KeyError(f"eDNA config for {source} must map columns {absent}")

    df = parse_dates(df, {"date": cfg.date_format})
    df = harmonize_ids(df, "site")
    df = harmonize_ids(df, "taxon")
    df["site"] = canonicalize_site(df["site"], site_corrections or {})
    df = coerce_numeric(df, ["reads"], fill=0.0)
    # vendor footer / summary lines carry no species name
    df = df.dropna(subset=["taxon"])
    df = df[df["taxon"] != ""]
    undated = df[["date", "site"]].isna().any(axis=1)
    if undated.any():
        logger.warning("Dropping %d eDNA rows without date or site in %s", int(undated.sum()), source)
        df = df[~undated]
    if "sample_id" not in df.columns:
        df["sample_id"] = df["site"].astype(str) + "_" + df["date"].dt.strftime("%Y-%m-%d")
    else:
        df = harmonize_ids(df, "sample_id")

    out = df.groupby(["sample_id", "date", "site", "taxon"], as_index=False, sort=True)["reads"].sum()
    out["detected"] = out["reads"] > 0
    logger.info("eDNA %s: %d detections of %d taxa in %d samples",
                source, int(out["detected"].sum()), out["taxon"].nunique(), out["sample_id"].nunique())
    return out[EDNA_COLUMNS]


def edna_detection_matrix(detections: pd.DataFrame) -> pd.DataFrame:
    """Site x taxon presence table: True if the taxon was detected at the site at least once."""
    return detections.pivot_table(
        index="site", columns="taxon", values="detected", aggfunc="any", fill_value=False
    ).astype(bool)
