from __future__ import annotations
from typing import Iterable
import logging

import numpy as np
import pandas as pd

from .config import SEASONS, SeasonConfig, SurveyConfig
from .cleaning import canonicalize_site, canonicalize_sample_type, fill_absent_taxa, unmapped_codes
from .normalize import ID_COLUMNS
from .validators import validate_unified

logger = logging.getLogger(__name__)

SITE_FIELDS = ["site_name", "site_type", "reserve"]


def relabel_season(labels: pd.Series, renames: dict[str, str]) -> pd.Series:
    """Lower-case season tags and apply the label corrections (e.g. 'autum' -> 'fall')."""
    renames = {k.lower(): v for k, v in renames.items()}

    def _fix(s):
        if not isinstance(s, str):
            return s
        s = s.strip().lower()
        return renames.get(s, s)

    return labels.map(_fix)


def derive_season(dates: pd.Series, seasons: SeasonConfig) -> pd.Series:
    """Calendar month -> ordered categorical season (winter < spring < summer < fall)."""
    labels = relabel_season(dates.dt.month.map(seasons.months), seasons.renames)
    return pd.Series(pd.Categorical(labels, categories=list(SEASONS), ordered=True),
                     index=dates.index, name="season")


def derive_breach_status(dates: pd.Series, intervals: pd.DataFrame) -> pd.Series:
    """
    Status of the first interval (inclusive on both ends) that contains each date.
    Dates in no interval get a null status.
    """
    status = pd.Series(np.nan, index=dates.index, dtype=object, name="breach_status")
    for row in intervals.itertuples(index=False):
        hit = status.isna() & dates.between(row.start, row.end)
        status[hit] = row.breach_status
    return status


def _empty_table(taxa: list[str]) -> pd.DataFrame:
    dtypes = {"sample_id": str, "survey_year": int, "date": "datetime64[ns]", "site": str, "sample_type": object}
    dtypes.update({t: float for t in taxa})
    return pd.DataFrame({c: pd.Series(dtype=d) for c, d in dtypes.items()})


def union_tables(tables: Iterable[pd.DataFrame], taxa: Iterable[str]) -> pd.DataFrame:
    """
    Ordered union on the canonical columns. A taxon column missing from one
    table is zero in that table's rows.
    """
    taxa = list(taxa)
    frames = list(tables)
    if not frames:
        return _empty_table(taxa)
    wide = pd.concat(frames, ignore_index=True, sort=False)
    for t in taxa:
        if t not in wide.columns:
            wide[t] = 0.0
    wide = fill_absent_taxa(wide, taxa)
    wide[taxa] = wide[taxa].astype(float)
    return wide[ID_COLUMNS + taxa]


def unify(
    tables: Iterable[pd.DataFrame],
    config: SurveyConfig,
    site_metadata: pd.DataFrame,
    breach_intervals: pd.DataFrame,
) -> pd.DataFrame:
    """
    Concatenate per-year tables and add canonical categories and derived metadata.

    Returns:
        One row per input sample, columns: ids, derived date parts, season,
        site metadata, breach_status, then the canonical taxa.
    """
    taxa = list(config.taxa)
    frames = list(tables)
    n_in = sum(len(t) for t in frames)
    wide = union_tables(frames, taxa)

    wide["site"] = canonicalize_site(wide["site"], config.site_corrections)
    wide["sample_type"] = canonicalize_sample_type(wide["sample_type"], config.sample_types)
    wide["year"] = wide["date"].dt.year.astype(int)
    wide["month"] = wide["date"].dt.month.astype(int)
    wide["season"] = derive_season(wide["date"], config.seasons)
    wide["breach_status"] = derive_breach_status(wide["date"], breach_intervals)

    wide = wide.merge(site_metadata[["site"] + SITE_FIELDS], on="site", how="left", validate="many_to_one")
    if len(wide) != n_in:
        raise RuntimeError(f"Unify changed the row count: {n_in} -> {len(wide)}")

    unclassified = int(wide["breach_status"].isna().sum())
    if unclassified:
        logger.warning("%d samples fall outside every breach interval", unclassified)

    cols = ["sample_id", "survey_year", "date", "year", "month", "season",
            "site", *SITE_FIELDS, "sample_type", "breach_status", *taxa]
    wide = validate_unified(wide[cols], taxa)
    logger.info("Unified %d tables into %d samples", len(frames), len(wide))
    return wide


def unmapped_code_report(wide: pd.DataFrame, config: SurveyConfig, site_metadata: pd.DataFrame) -> pd.DataFrame:
    """
    Site and sample-type codes with no canonical form, with sample counts.

    Such codes are kept verbatim in the output; this table is for manual review.
    """
    st = config.sample_types
    st_canonical = set(st.exact.values()) | {c for _, c in st.contains}
    found = {
        "site": unmapped_codes(wide["site"], config.site_corrections, site_metadata["site"]),
        "sample_type": unmapped_codes(wide["sample_type"], st.exact, st_canonical),
    }
    rows = [
        {"field": field, "code": code, "n_samples": int((wide[field] == code).sum())}
        for field, codes in found.items() for code in codes
    ]
    report = pd.DataFrame(rows, columns=["field", "code", "n_samples"])
    for r in report.itertuples(index=False):
        logger.warning("Unmapped %s code '%s' in %d samples", r.field, r.code, r.n_samples)
    return report
