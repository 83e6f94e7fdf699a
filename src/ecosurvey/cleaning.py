from __future__ import annotations
from typing import TYPE_CHECKING, Iterable, Optional
import logging

import numpy as np
import pandas as pd

from .exceptions import RawSchemaError

if TYPE_CHECKING:
    from .config import SampleTypeRules

logger = logging.getLogger(__name__)


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Normalize column names by stripping whitespace, replacing spaces with underscores,
    and removing special characters.

    Args:
        df: Input DataFrame

    Returns:
        DataFrame with normalized column names
    """
    df = df.copy()
    df.columns = normalize_labels(df.columns)
    return df


def normalize_labels(labels: Iterable) -> pd.Index:
    """Apply the column-name normalization to arbitrary labels (e.g. rename map keys)."""
    return (
        pd.Index(list(labels))
        .astype(str)
        .str.strip()
        .str.replace(r"\s+", "_", regex=True)
        .str.replace(r"[^0-9A-Za-z_]", "", regex=True)
    )


def require_columns(df: pd.DataFrame, columns: Iterable[str], source: str = "<frame>") -> None:
    """
    Check that every column in `columns` is present.

    Raises:
        RawSchemaError: naming the source file and the missing columns
    """
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise RawSchemaError(source, missing, available=list(df.columns))


def coerce_numeric(df: pd.DataFrame, cols: Iterable[str], fill: Optional[float] = 0.0) -> pd.DataFrame:
    """
    Coerce columns to float. Cells that fail to parse become NaN, then `fill`
    (pass fill=None to keep them missing, e.g. for water-quality readings).
    """
    df = df.copy()
    for col in cols:
        values = pd.to_numeric(df[col], errors="coerce").astype(float)
        if fill is not None:
            values = values.fillna(fill)
        df[col] = values
    return df


def parse_dates(df: pd.DataFrame, formats: dict[str, Optional[str]]) -> pd.DataFrame:
    """
    Parse date columns to datetime64. Unparseable cells become NaT.

    Args:
        df: Input DataFrame
        formats: Column name -> strftime format (None lets pandas infer it)

    Returns:
        DataFrame with the listed columns parsed
    """
    df = df.copy()
    for col, fmt in formats.items():
        if col in df.columns:
            df[col] = pd.to_datetime(df[col], errors="coerce", format=fmt)
    return df


def harmonize_ids(df: pd.DataFrame, id_col: str = "site", upper: bool = False) -> pd.DataFrame:
    """
    Standardize ID column values by stripping whitespace (and optionally upper-casing).
    Missing IDs stay missing instead of becoming the string "nan".

    Args:
        df: Input DataFrame
        id_col: Name of the ID column to harmonize (default: "site")
        upper: Upper-case the codes as well

    Returns:
        DataFrame with standardized ID column
    """
    df = df.copy()
    if id_col in df.columns:
        s = df[id_col]
        text = s.astype(str).str.strip()
        if upper:
            text = text.str.upper()
        df[id_col] = text.where(s.notna(), np.nan).astype(object)
    return df


def fill_absent_taxa(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    """
    Zero-fill taxon columns: a taxon a survey year did not record counts as absent.

    Args:
        df: Input DataFrame
        cols: Taxon columns to fill

    Returns:
        DataFrame with no missing values in `cols`
    """
    df = df.copy()
    cols = list(cols)
    df[cols] = df[cols].fillna(0.0)
    return df


def ensure_nonnegative(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    """
    Validate that numeric columns contain only non-negative values.

    Raises:
        ValueError: If negative values are found in specified columns
    """
    cols = list(cols)
    negative = [c for c in cols if (df[c] < 0).any()]
    if negative:
        raise ValueError(f"Negative values found in columns: {negative}")
    return df


# -------------------------------
# Categorical canonicalization
# -------------------------------

def canonicalize_site(codes: pd.Series, corrections: dict[str, str]) -> pd.Series:
    """Replace known misspelled site codes; unknown codes pass through verbatim."""
    return codes.map(lambda c: corrections.get(c, c) if isinstance(c, str) else c)


def canonical_sample_type(code, rules: "SampleTypeRules"):
    """Exact-match table first, then the first substring rule that matches (case-insensitive)."""
    if not isinstance(code, str):
        return code
    if code in rules.exact:
        return rules.exact[code]
    upper = code.upper()
    for pattern, canonical in rules.contains:
        if pattern.upper() in upper:
            return canonical
    return code


def canonicalize_sample_type(codes: pd.Series, rules: "SampleTypeRules") -> pd.Series:
    return codes.map(lambda c: canonical_sample_type(c, rules))


def unmapped_codes(codes: pd.Series, mapping: dict[str, str], canonical: Iterable[str]) -> list[str]:
    """
    Codes that are neither a known variant nor a known canonical form.

    These pass through canonicalization untouched; the list is for manual review.
    """
    known = set(mapping) | set(mapping.values()) | set(canonical)
    present = codes.dropna().astype(str).unique()
    return sorted(c for c in present if c not in known)
