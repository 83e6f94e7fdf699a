"""
Exceptions raised by the survey pipeline.

Hierarchy:
    SurveyDataError (base)
    ├── RawSchemaError        raw file lacks required columns (fatal for the run)
    ├── RawInputError         raw file is absent or unreadable
    ├── TableValidationError  a table failed its schema checks
    └── ConfigError           survey config or lookup table is invalid
"""
from __future__ import annotations
from typing import Any, Optional


class SurveyDataError(Exception):
    """
    Base exception for pipeline errors.

    Attributes:
        message: Human-readable error message
        context: Extra information (file, year, columns, ...)
    """

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        base = f"{self.__class__.__name__}: {self.message}"
        if self.context:
            base += " | " + ", ".join(f"{k}={v}" for k, v in self.context.items())
        return base


class RawSchemaError(SurveyDataError, KeyError):
    """A raw survey file is missing columns its year config refers to."""

    def __init__(self, source: str, missing: list[str], available: Optional[list[str]] = None):
        self.source = source
        self.missing = list(missing)
        context: dict[str, Any] = {"file": source, "missing": self.missing}
        if available is not None:
            context["available"] = list(available)[:20]
        super().__init__(f"{source} is missing required column(s): {', '.join(self.missing)}", context)


class ConfigError(SurveyDataError, ValueError):
    """The survey configuration is inconsistent."""
    pass


class RawInputError(SurveyDataError):
    """A raw input file is absent or in a format the readers cannot open."""

    def __init__(self, source: str, reason: str):
        self.source = source
        super().__init__(f"Cannot read {source}: {reason}", {"file": source})


class TableValidationError(SurveyDataError, ValueError):
    """A table failed its schema checks (null keys, negative or non-finite counts, ...)."""

    def __init__(self, source: str, failures: list[str]):
        self.source = source
        self.failures = list(failures)
        super().__init__(f"{source} failed validation: {'; '.join(self.failures)}", {"file": source})
