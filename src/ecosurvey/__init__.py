from .config import load_survey_config, SurveyConfig, YearConfig, Override
from .normalize import normalize_year, apply_overrides
from .unify import unify, derive_season, derive_breach_status, unmapped_code_report
from .aggregate import add_normalization_factors, group_sizes
from .reshape import to_long, to_wide
from .transform import log1p_taxa
from .pipeline import run_pipeline, PipelineResult
from .exceptions import SurveyDataError, RawSchemaError, RawInputError, TableValidationError, ConfigError

__all__ = [
    "load_survey_config",
    "SurveyConfig",
    "YearConfig",
    "Override",
    "normalize_year",
    "apply_overrides",
    "unify",
    "derive_season",
    "derive_breach_status",
    "unmapped_code_report",
    "add_normalization_factors",
    "group_sizes",
    "to_long",
    "to_wide",
    "log1p_taxa",
    "run_pipeline",
    "PipelineResult",
    "SurveyDataError",
    "RawSchemaError",
    "RawInputError",
    "TableValidationError",
    "ConfigError",
]

__version__ = "0.1.0"
