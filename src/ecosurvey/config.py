from __future__ import annotations
import math
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .exceptions import ConfigError
from .cleaning import canonical_sample_type

ROOT = Path(__file__).resolve().parents[2]
DATA = ROOT / "data"
RAW = DATA / "raw"
INTERIM = DATA / "interim"
PROC = DATA / "processed"

# reference tables shipped with the package
LOOKUPS = Path(__file__).resolve().parent / "lookups"
DEFAULT_SURVEY_CONFIG = LOOKUPS / "survey.yaml"

LOG_LEVEL = os.environ.get("ECOSURVEY_LOG_LEVEL", "INFO")

# canonical non-taxon columns a year layout may provide
META_COLUMNS = ("date", "site", "sample_type")
SEASONS = ("winter", "spring", "summer", "fall")
WATER_QUALITY_COLUMNS = (
    "dissolved_oxygen", "conductivity", "salinity",
    "temperature", "barometric_pressure", "ph",
)
OVERRIDE_OPS = ("divide", "multiply", "set")


@dataclass(frozen=True)
class Override:
    """A documented correction of one cell, addressed by raw row index."""
    row: int
    column: str
    op: str
    value: float
    note: str = ""


@dataclass(frozen=True)
class YearConfig:
    """How to read and normalize one survey year's raw file."""
    year: int
    file: str
    divisor: float
    columns: dict[str, str]
    skiprows: int = 0
    sheet: Optional[str] = None
    date_format: Optional[str] = None
    defaults: dict[str, Any] = field(default_factory=dict)
    drop_rows: tuple[int, ...] = ()
    overrides: tuple[Override, ...] = ()
    # distinguishes several instrument files of one survey year
    tag: Optional[str] = None

    @property
    def key(self) -> str:
        """Identifier used in sample ids and interim file names, e.g. '2019' or '2019-core'."""
        return f"{self.year}-{self.tag}" if self.tag else str(self.year)

    @property
    def taxon_columns(self) -> list[str]:
        """Canonical taxa this year's layout actually records, in first-seen order."""
        seen: list[str] = []
        for target in self.columns.values():
            if target not in META_COLUMNS and target not in seen:
                seen.append(target)
        return seen


@dataclass(frozen=True)
class SampleTypeRules:
    exact: dict[str, str] = field(default_factory=dict)
    # ordered (substring, canonical) pairs, checked after the exact map
    contains: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class SeasonConfig:
    months: dict[int, str]
    renames: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SourceConfig:
    """Water-quality or eDNA export: file, header skip and rename map."""
    file: str
    columns: dict[str, str]
    skiprows: int = 0
    sheet: Optional[str] = None
    date_format: Optional[str] = None


@dataclass(frozen=True)
class SurveyConfig:
    taxa: tuple[str, ...]
    years: tuple[YearConfig, ...]
    site_corrections: dict[str, str]
    sample_types: SampleTypeRules
    seasons: SeasonConfig
    site_metadata: Path
    breach_intervals: Path
    water_quality: Optional[SourceConfig] = None
    edna: Optional[SourceConfig] = None

    def year(self, year: int, tag: Optional[str] = None) -> YearConfig:
        for cfg in self.years:
            if cfg.year == year and cfg.tag == tag:
                return cfg
        label = f"{year} ({tag})" if tag else str(year)
        raise KeyError(f"No configuration for survey year {label}")


# -------------------------------
# Parsing
# -------------------------------

def _parse_override(raw: dict, year: int) -> Override:
    op = str(raw.get("op", "divide"))
    if op not in OVERRIDE_OPS:
        raise ConfigError(f"Unknown override op '{op}'", {"year": year, "allowed": OVERRIDE_OPS})
    value = float(raw["value"])
    if not math.isfinite(value) or (op == "divide" and value == 0):
        raise ConfigError("Override value must be finite and a divisor non-zero", {"year": year, "op": op, "value": value})
    return Override(
        row=int(raw["row"]),
        column=str(raw["column"]),
        op=op,
        value=value,
        note=str(raw.get("note", "")),
    )


def _parse_year(raw: dict, taxa: tuple[str, ...]) -> YearConfig:
    year = int(raw["year"])
    tag = str(raw["tag"]) if raw.get("tag") else None
    if tag is not None and not re.fullmatch(r"[A-Za-z0-9_]+", tag):
        raise ConfigError("Year tag must be letters, digits or underscores", {"year": year, "tag": tag})
    divisor = float(raw["divisor"])
    if divisor <= 0:
        raise ConfigError("Sampling-volume divisor must be positive", {"year": year, "divisor": divisor})
    columns = {str(k): str(v) for k, v in (raw.get("columns") or {}).items()}
    unknown = [v for v in columns.values() if v not in META_COLUMNS and v not in taxa]
    if unknown:
        raise ConfigError("Rename targets are not canonical taxa", {"year": year, "targets": unknown})
    overrides = tuple(_parse_override(o, year) for o in raw.get("overrides") or [])
    bad = [o.column for o in overrides if o.column not in taxa]
    if bad:
        raise ConfigError("Overrides must target taxon columns", {"year": year, "columns": bad})
    return YearConfig(
        year=year,
        file=str(raw["file"]),
        divisor=divisor,
        columns=columns,
        skiprows=int(raw.get("skiprows", 0)),
        sheet=raw.get("sheet"),
        date_format=raw.get("date_format"),
        defaults=dict(raw.get("defaults") or {}),
        drop_rows=tuple(int(i) for i in raw.get("drop_rows") or []),
        overrides=overrides,
        tag=tag,
    )


def _parse_source(raw: Optional[dict]) -> Optional[SourceConfig]:
    if not raw:
        return None
    return SourceConfig(
        file=str(raw["file"]),
        columns={str(k): str(v) for k, v in (raw.get("columns") or {}).items()},
        skiprows=int(raw.get("skiprows", 0)),
        sheet=raw.get("sheet"),
        date_format=raw.get("date_format"),
    )


def _check_idempotent(name: str, mapping: dict[str, str]) -> None:
    """A canonical output must never be rewritten again."""
    loops = sorted({v for v in mapping.values() if v in mapping and mapping[v] != v})
    if loops:
        raise ConfigError(f"{name} maps canonical codes again", {"codes": loops})


def _check_sample_types(rules: SampleTypeRules) -> None:
    _check_idempotent("sample_types.exact", rules.exact)
    outputs = set(rules.exact.values()) | {c for _, c in rules.contains}
    unstable = sorted(o for o in outputs if canonical_sample_type(o, rules) != o)
    if unstable:
        raise ConfigError("Sample-type rules rewrite their own canonical codes", {"codes": unstable})


def _check_seasons(seasons: SeasonConfig) -> None:
    missing = sorted(set(range(1, 13)) - set(seasons.months))
    if missing:
        raise ConfigError("Season month map is not total", {"missing_months": missing})
    renames = {k.lower(): v for k, v in seasons.renames.items()}
    labels = {renames.get(v.strip().lower(), v.strip().lower()) for v in seasons.months.values()}
    extra = sorted(labels - set(SEASONS))
    if extra:
        raise ConfigError("Unknown season labels after renaming", {"labels": extra})


def parse_survey_config(raw: dict, base_dir: Path = LOOKUPS) -> SurveyConfig:
    """Build a validated SurveyConfig from an already-loaded mapping."""
    taxa = tuple(str(t) for t in raw["taxa"])
    if len(set(taxa)) != len(taxa):
        raise ConfigError("Duplicate canonical taxa", {"taxa": taxa})
    years = tuple(_parse_year(y, taxa) for y in raw.get("years") or [])
    seen = [y.key for y in years]
    if len(set(seen)) != len(seen):
        raise ConfigError("Survey year configured twice; tag each instrument file of a year", {"years": seen})

    site_corrections = {str(k): str(v) for k, v in (raw.get("site_corrections") or {}).items()}
    _check_idempotent("site_corrections", site_corrections)

    st_raw = raw.get("sample_types") or {}
    sample_types = SampleTypeRules(
        exact={str(k): str(v) for k, v in (st_raw.get("exact") or {}).items()},
        contains=tuple((str(r["pattern"]), str(r["canonical"])) for r in st_raw.get("contains") or []),
    )
    _check_sample_types(sample_types)

    s_raw = raw.get("seasons") or {}
    seasons = SeasonConfig(
        months={int(k): str(v) for k, v in (s_raw.get("months") or {}).items()},
        renames={str(k): str(v) for k, v in (s_raw.get("renames") or {}).items()},
    )
    _check_seasons(seasons)

    lookups = raw.get("lookups") or {}
    return SurveyConfig(
        taxa=taxa,
        years=years,
        site_corrections=site_corrections,
        sample_types=sample_types,
        seasons=seasons,
        site_metadata=base_dir / lookups.get("site_metadata", "site_metadata.csv"),
        breach_intervals=base_dir / lookups.get("breach_intervals", "breach_intervals.csv"),
        water_quality=_parse_source(raw.get("water_quality")),
        edna=_parse_source(raw.get("edna")),
    )


def load_survey_config(path: str | Path | None = None) -> SurveyConfig:
    """
    Load the survey configuration YAML.

    Lookup table paths inside the file are resolved relative to the YAML file.
    """
    path = Path(path or DEFAULT_SURVEY_CONFIG)
    with open(path, "r") as f:
        raw = yaml.safe_load(f)
    if not isinstance(raw, dict):
        raise ConfigError("Survey config must be a mapping", {"file": str(path)})
    return parse_survey_config(raw, base_dir=path.parent)
