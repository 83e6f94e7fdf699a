from __future__ import annotations
from typing import Iterable
import numpy as np
import pandas as pd
import pandera as pa
from pandera import Column, DataFrameSchema, Check
from pandera.errors import SchemaErrors

from .config import SEASONS
from .exceptions import TableValidationError

RATE_FIELDS = ["organisms_L", "organisms_L_season", "organisms_L_year", "organisms_L_site"]
LONG_VALUE_FIELDS = RATE_FIELDS + [f"{f}_log" for f in RATE_FIELDS]
TEXT_KEYS = ("sample_id", "site", "taxon")

schema_keys = DataFrameSchema({
    "site": Column(str, nullable=False),
    "date": Column(pa.DateTime, nullable=False),
})

finite = Check(lambda s: np.isfinite(s), name="finite", error="count must be finite")


def _count_column() -> Column:
    return Column(float, [Check.ge(0), finite], nullable=False)


def normalized_schema(taxa: Iterable[str]) -> DataFrameSchema:
    """One per-year table after normalization: keys present, every taxon zero-filled."""
    return schema_keys.add_columns({
        "sample_id": Column(str, nullable=False, unique=True),
        "survey_year": Column(int),
        "sample_type": Column(nullable=True),
        **{t: _count_column() for t in taxa},
    })


def unified_schema(taxa: Iterable[str]) -> DataFrameSchema:
    return normalized_schema(taxa).add_columns({
        "year": Column(int),
        "month": Column(int, Check.in_range(1, 12)),
        "season": Column(checks=Check.isin(SEASONS), nullable=False),
        "site_type": Column(nullable=True),
        "breach_status": Column(nullable=True),
    })


long_schema = DataFrameSchema({
    "sample_id": Column(str, nullable=False),
    "taxon": Column(str, nullable=False),
    **{f: _count_column() for f in LONG_VALUE_FIELDS},
})


def _validate(schema: DataFrameSchema, df: pd.DataFrame, source: str) -> pd.DataFrame:
    """Lazy validation; every failure is reported at once as a TableValidationError naming `source`."""
    if df.empty:
        # an empty column carries no values, so give text keys the string dtype outright
        df = df.astype({c: str for c in TEXT_KEYS if c in df.columns})
    try:
        return schema.validate(df, lazy=True)
    except SchemaErrors as err:
        cases = err.failure_cases
        failures = sorted({f"{col}: {check}" for col, check in zip(cases["column"].astype(str), cases["check"].astype(str))})
        raise TableValidationError(source, failures) from err


def validate_normalized(df, taxa, source="normalized table"):
    return _validate(normalized_schema(taxa), df, source)


def validate_unified(df, taxa, source="unified table"):
    return _validate(unified_schema(taxa), df, source)


def validate_long(df, source="long table"):
    return _validate(long_schema, df, source)
