"""
Logging configuration
"""
from __future__ import annotations
import logging
import sys
from typing import Optional

from .config import LOG_LEVEL


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging for a pipeline run (stdout, one line per record)."""
    name = (level or LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger(__name__).debug("Logging configured at %s level", name)
