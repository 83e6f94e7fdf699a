from __future__ import annotations
from pathlib import Path
import logging

import pandas as pd

from .cleaning import normalize_columns, require_columns
from .exceptions import RawInputError

logger = logging.getLogger(__name__)

SITE_METADATA_COLUMNS = ["site", "site_name", "site_type", "reserve", "description"]
BREACH_COLUMNS = ["start", "end", "breach_status"]
EXCEL_SUFFIXES = (".xlsx", ".xlsm")


def _existing(path: str | Path) -> Path:
    path = Path(path)
    if not path.exists():
        raise RawInputError(str(path), "file not found")
    return path


def read_raw(path: str | Path, skiprows: int = 0, sheet: str | None = None) -> pd.DataFrame:
    """
    Read one raw survey export (CSV or Excel) after skipping the vendor header rows.

    Fully blank rows (trailing ",,," lines in spreadsheet exports) are dropped.
    The remaining rows keep their positional labels so that configured row
    drops and overrides address the same raw rows either way.
    """
    path = _existing(path)
    suffix = path.suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        df = pd.read_excel(path, sheet_name=sheet or 0, skiprows=skiprows, engine="openpyxl")
    elif suffix == ".xls":
        raise RawInputError(str(path), "legacy .xls workbooks are not supported, save as .xlsx")
    else:
        df = pd.read_csv(path, skiprows=skiprows)
    df = df.reset_index(drop=True)
    blank = df.isna().all(axis=1)
    if blank.any():
        logger.info("Dropped %d blank rows from %s", int(blank.sum()), path.name)
        df = df[~blank]
    logger.debug("Read %d rows x %d columns from %s", len(df), df.shape[1], path.name)
    return df


def read_site_metadata(path: str | Path) -> pd.DataFrame:
    """Static site table: site -> site_name, site_type (slough | pool), reserve, description."""
    df = normalize_columns(pd.read_csv(_existing(path), dtype=str, keep_default_na=False))
    require_columns(df, ["site", "site_type"], source=str(path))
    for col in SITE_METADATA_COLUMNS:
        if col not in df.columns:
            df[col] = ""
    df = df[SITE_METADATA_COLUMNS].copy()
    df["site"] = df["site"].str.strip()
    if df["site"].duplicated().any():
        dups = df.loc[df["site"].duplicated(), "site"].tolist()
        raise ValueError(f"Duplicate site codes in {path}: {dups}")
    return df


def read_breach_intervals(path: str | Path) -> pd.DataFrame:
    """Ordered (start, end, breach_status) intervals; both ends inclusive."""
    df = normalize_columns(pd.read_csv(_existing(path), dtype=str))
    if "status" in df.columns and "breach_status" not in df.columns:
        df = df.rename(columns={"status": "breach_status"})
    require_columns(df, BREACH_COLUMNS, source=str(path))
    df = df[BREACH_COLUMNS].copy()
    df["start"] = pd.to_datetime(df["start"])
    df["end"] = pd.to_datetime(df["end"])
    bad = df["end"] < df["start"]
    if bad.any():
        raise ValueError(f"Breach intervals ending before they start in {path}: rows {df.index[bad].tolist()}")
    return df.reset_index(drop=True)


def read_water_quality(path: str | Path, skiprows: int = 0, sheet: str | None = None) -> pd.DataFrame:
    return read_raw(path, skiprows=skiprows, sheet=sheet)


def read_edna_export(path: str | Path, skiprows: int = 0, sheet: str | None = None) -> pd.DataFrame:
    """Vendor eDNA export; the vendor prepends report rows before the header."""
    return read_raw(path, skiprows=skiprows, sheet=sheet)
