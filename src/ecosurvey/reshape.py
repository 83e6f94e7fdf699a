from __future__ import annotations
from typing import Iterable, Optional
import logging

import numpy as np
import pandas as pd

from .aggregate import GROUPINGS
from .transform import add_rate_variants
from .validators import LONG_VALUE_FIELDS, validate_long

logger = logging.getLogger(__name__)


def to_long(wide: pd.DataFrame, taxa: Iterable[str]) -> pd.DataFrame:
    """
    Wide (sample x taxon) -> long (one row per sample and populated taxon).

    The wide table must already carry the normalization factors
    (see aggregate.add_normalization_factors). Rows whose count was never
    populated (null, as opposed to zero) are dropped. Rows are ordered by
    sample, then by canonical taxon order.
    """
    taxa = list(taxa)
    missing = [c for c in GROUPINGS if c not in wide.columns]
    if missing:
        raise KeyError(f"Normalization factors missing from wide table: {missing}")
    id_vars = [c for c in wide.columns if c not in taxa]

    framed = wide.assign(_row=np.arange(len(wide)))
    long = framed.melt(id_vars=id_vars + ["_row"], value_vars=taxa,
                       var_name="taxon", value_name="organisms_L")
    long = long.dropna(subset=["organisms_L"])
    long["_taxon"] = long["taxon"].map({t: i for i, t in enumerate(taxa)})
    long = (
        long.sort_values(["_row", "_taxon"], kind="mergesort")
        .drop(columns=["_row", "_taxon"])
        .reset_index(drop=True)
    )
    long["organisms_L"] = long["organisms_L"].astype(float)
    long = add_rate_variants(long)
    long = long[id_vars + ["taxon"] + LONG_VALUE_FIELDS]
    logger.info("Reshaped %d samples x %d taxa into %d long rows", len(wide), len(taxa), len(long))
    return validate_long(long)


def to_wide(long: pd.DataFrame, taxa: Optional[Iterable[str]] = None, value: str = "organisms_L") -> pd.DataFrame:
    """
    Re-pivot a long table to one row per sample_id and one column per taxon.
    Samples keep their first-seen order; absent (sample, taxon) pairs are NaN.
    """
    order = pd.unique(long["sample_id"])
    wide = long.pivot(index="sample_id", columns="taxon", values=value)
    wide = wide.reindex(index=pd.Index(order, name="sample_id"))
    if taxa is not None:
        wide = wide.reindex(columns=list(taxa))
    wide.columns.name = None
    return wide.reset_index()
