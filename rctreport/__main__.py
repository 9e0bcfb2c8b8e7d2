"""
Command-line entry point::

    python -m rctreport data/welfare.csv --output-dir results
"""
from __future__ import annotations

import argparse
import logging
import sys

from ._exceptions import DataSourceError, EstimationError, SchemaError
from .config import AnalysisConfig
from .pipeline import run_config
from .variables import DEFAULT_SPEC


def _names(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rctreport",
        description="Balance checks and treatment effect estimates for a randomized trial.",
    )
    parser.add_argument("source", help="URL or path of a CSV file with a header row")
    parser.add_argument("--output-dir", default="results", help="directory for report artifacts")
    parser.add_argument("--timeout", type=float, default=30.0, help="remote fetch timeout in seconds")
    parser.add_argument("--precision", type=int, default=3, help="decimals in output tables")
    parser.add_argument("--treatment", default=DEFAULT_SPEC.treatment)
    parser.add_argument("--outcome", default=DEFAULT_SPEC.outcome)
    parser.add_argument(
        "--covariates", type=_names, default=list(DEFAULT_SPEC.covariates),
        help="comma-separated covariate names",
    )
    parser.add_argument(
        "--categorical", type=_names, default=None,
        help="comma-separated covariates to summarise by level",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    categorical = args.categorical
    if categorical is None:
        categorical = [c for c in DEFAULT_SPEC.categorical if c in args.covariates]

    try:
        config = AnalysisConfig.from_dict({
            "source": args.source,
            "output_dir": args.output_dir,
            "timeout": args.timeout,
            "precision": args.precision,
            "variables": {
                "treatment": args.treatment,
                "outcome": args.outcome,
                "covariates": args.covariates,
                "categorical": categorical,
            },
        })
        result = run_config(config)
    except (DataSourceError, SchemaError, EstimationError, ValueError) as exc:
        print(f"rctreport: error: {exc}", file=sys.stderr)
        return 1

    print(result.summary())
    print(result.executive_summary())
    return 0


if __name__ == "__main__":
    sys.exit(main())
