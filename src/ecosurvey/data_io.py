from __future__ import annotations
from pathlib import Path
from typing import Optional
import logging

import pandas as pd

from .config import INTERIM, PROC

logger = logging.getLogger(__name__)

OUTPUT_NAMES = {
    "wide": "invertebrates_wide.csv",
    "wide_log": "invertebrates_wide_log.csv",
    "long": "invertebrates_long.csv",
    "edna": "edna_detections.csv",
    "unmapped": "unmapped_codes.csv",
}


def save_interim(df: pd.DataFrame, name: str, interim_dir: Optional[Path] = None) -> Path:
    """
    Save a DataFrame to the interim data directory as a Parquet file.

    Args:
        df: The DataFrame to save
        name: The filename (without path) for the saved file
        interim_dir: Override for the interim directory

    Returns:
        Path: The full path to the saved file
    """
    folder = Path(interim_dir or INTERIM)
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / name
    df.to_parquet(path, index=False)
    return path


def load_interim(name: str, interim_dir: Optional[Path] = None) -> pd.DataFrame:
    """
    Load a DataFrame from the interim data directory.

    Args:
        name: The filename (without path) to load
        interim_dir: Override for the interim directory

    Returns:
        pd.DataFrame: The loaded DataFrame
    """
    return pd.read_parquet(Path(interim_dir or INTERIM) / name)


def write_table(df: pd.DataFrame, path: Path) -> Path:
    """Overwrite `path` with `df` as CSV. Same frame, same bytes."""
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False, date_format="%Y-%m-%d", lineterminator="\n")
    return path


def write_outputs(tables: dict[str, pd.DataFrame], out_dir: Optional[Path] = None) -> dict[str, Path]:
    """
    Write each named table to its fixed file name under `out_dir`.

    Known names are listed in OUTPUT_NAMES; None entries are skipped.
    """
    folder = Path(out_dir or PROC)
    unknown = sorted(set(tables) - set(OUTPUT_NAMES))
    if unknown:
        raise KeyError(f"No output file name for tables: {unknown}")
    written = {}
    for key, df in tables.items():
        if df is None:
            continue
        written[key] = write_table(df, folder / OUTPUT_NAMES[key])
        logger.info("Wrote %s (%d rows) to %s", key, len(df), written[key])
    return written
