from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import logging

import pandas as pd

from .config import RAW, INTERIM, PROC, SurveyConfig, load_survey_config
from .ingest import read_raw, read_site_metadata, read_breach_intervals, read_water_quality, read_edna_export
from .normalize import normalize_year
from .unify import unify, unmapped_code_report
from .dataframe_ops import summarize_water_quality, merge_water_quality, taxon_coverage, assert_unique
from .aggregate import add_normalization_factors, normalization_tables
from .reshape import to_long
from .transform import log1p_taxa
from .edna import normalize_edna
from .data_io import save_interim, write_outputs

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    wide: pd.DataFrame
    wide_log: pd.DataFrame
    long: pd.DataFrame
    group_sizes: dict[str, pd.DataFrame]
    unmapped: pd.DataFrame
    coverage: pd.DataFrame
    edna: Optional[pd.DataFrame] = None
    written: dict[str, Path] = field(default_factory=dict)


def load_years(config: SurveyConfig, raw_dir: Path, interim_dir: Optional[Path] = None) -> list[pd.DataFrame]:
    """Read and normalize every configured year. A schema error in any year aborts the run."""
    tables = []
    for cfg in config.years:
        path = raw_dir / cfg.file
        raw = read_raw(path, skiprows=cfg.skiprows, sheet=cfg.sheet)
        table = normalize_year(raw, cfg, config.taxa, source=str(path))
        if interim_dir is not None:
            save_interim(table, f"inverts_{cfg.key}.parquet", interim_dir)
        tables.append(table)
    return tables


def run_pipeline(
    config_path: str | Path | None = None,
    raw_dir: str | Path | None = None,
    out_dir: str | Path | None = None,
    interim_dir: str | Path | None = None,
    write: bool = True,
) -> PipelineResult:
    """
    Run load -> normalize -> unify -> aggregate -> reshape -> write.

    Args:
        config_path: Survey config YAML (default: the packaged one)
        raw_dir: Folder with the raw yearly files (default: data/raw)
        out_dir: Folder for the output CSVs (default: data/processed)
        interim_dir: Folder for per-year Parquet tables (default: data/interim when writing)
        write: Write interim and output files

    Returns:
        PipelineResult with every produced table
    """
    config = load_survey_config(config_path)
    raw_dir = Path(raw_dir or RAW)
    interim = Path(interim_dir or INTERIM) if write else None

    site_metadata = read_site_metadata(config.site_metadata)
    breach_intervals = read_breach_intervals(config.breach_intervals)
    coverage = taxon_coverage(config)

    # ---- Invertebrates ----
    tables = load_years(config, raw_dir, interim)
    wide = unify(tables, config, site_metadata, breach_intervals)
    assert_unique(wide, ["sample_id"], name="unified table")
    unmapped = unmapped_code_report(wide, config, site_metadata)

    # ---- Water quality ----
    if config.water_quality is not None:
        wq_cfg = config.water_quality
        wq_path = raw_dir / wq_cfg.file
        wq_raw = read_water_quality(wq_path, skiprows=wq_cfg.skiprows, sheet=wq_cfg.sheet)
        wq = summarize_water_quality(wq_raw, wq_cfg, config.site_corrections, source=str(wq_path))
        wide = merge_water_quality(wide, wq)

    group_tables = normalization_tables(wide)
    wide = add_normalization_factors(wide)
    wide_log = log1p_taxa(wide, config.taxa)
    long = to_long(wide, config.taxa)

    # ---- eDNA ----
    edna = None
    if config.edna is not None:
        e_cfg = config.edna
        e_path = raw_dir / e_cfg.file
        e_raw = read_edna_export(e_path, skiprows=e_cfg.skiprows, sheet=e_cfg.sheet)
        edna = normalize_edna(e_raw, e_cfg, config.site_corrections, source=str(e_path))

    result = PipelineResult(
        wide=wide,
        wide_log=wide_log,
        long=long,
        group_sizes=group_tables,
        unmapped=unmapped,
        coverage=coverage,
        edna=edna,
    )
    if write:
        result.written = write_outputs(
            {"wide": wide, "wide_log": wide_log, "long": long, "edna": edna, "unmapped": unmapped},
            Path(out_dir or PROC),
        )
    return result
