"""Run the survey pipeline: python -m ecosurvey [survey.yaml]"""
from __future__ import annotations
import argparse
import logging

from .log import setup_logging
from .pipeline import run_pipeline
from .exceptions import SurveyDataError


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="ecosurvey", description=__doc__)
    parser.add_argument("config", nargs="?", default=None, help="survey config YAML (default: packaged)")
    args = parser.parse_args(argv)

    setup_logging()
    try:
        result = run_pipeline(args.config)
    except SurveyDataError as e:
        logging.getLogger("ecosurvey").error("%s", e)
        return 1
    for key, path in result.written.items():
        print(f"{key}: {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
