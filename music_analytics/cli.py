"""
Command line interface.

Usage:
    # List the available reports
    music-analytics list

    # Run one report against the configured database
    music-analytics run top_invoice_totals --param n=5

    # Run a report against CSV exports and save it
    music-analytics --csv-dir data/exports run top_genre_per_country \
        --output reports/top_genre.csv

    # Run every report concurrently, one file per report
    music-analytics run-all --output-dir reports/ --format parquet

    # Report invoices whose total disagrees with their lines
    music-analytics check
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import polars as pl
import structlog
from sqlalchemy.exc import SQLAlchemyError

from music_analytics.config.logging import configure_logging
from music_analytics.database import close_database
from music_analytics.ingestion import load_snapshot
from music_analytics.reporting import REPORTS, ReportingEngine, ReportingError, get_report
from music_analytics.reporting.consistency import check_invoice_totals, invoice_total_mismatches

logger = structlog.get_logger(__name__)

OUTPUT_FORMATS = ("csv", "json", "parquet")
TRUE_VALUES = {"1", "true", "yes", "y", "on"}
FALSE_VALUES = {"0", "false", "no", "n", "off"}


def parse_bool(value: str) -> bool:
    """Parse a command line boolean."""
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise argparse.ArgumentTypeError(f"Invalid boolean: {value}")


def parse_params(report: str, raw: List[str]) -> Dict[str, Any]:
    """
    Turn ``key=value`` pairs into typed report parameters.

    Raises:
        argparse.ArgumentTypeError: On malformed pairs, unknown keys or bad values
    """
    definition = get_report(report)
    params: Dict[str, Any] = {}
    for item in raw:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected key=value, got '{item}'")
        if key not in definition.params:
            accepted = ", ".join(definition.params) or "none"
            raise argparse.ArgumentTypeError(
                f"Report '{report}' does not accept '{key}' (accepted: {accepted})"
            )
        converter = definition.params[key]
        try:
            params[key] = parse_bool(value) if converter is bool else converter(value)
        except ValueError:
            raise argparse.ArgumentTypeError(
                f"Invalid value for {key}: {value}"
            ) from None
    return params


def write_frame(frame: pl.DataFrame, path: Path) -> None:
    """Write a report to CSV, JSON or Parquet, chosen by file suffix."""
    path.parent.mkdir(parents=True, exist_ok=True)
    suffix = path.suffix.lower().lstrip(".")
    if suffix == "csv":
        frame.write_csv(path)
    elif suffix == "json":
        frame.write_json(path)
    elif suffix == "parquet":
        frame.write_parquet(path)
    else:
        raise ValueError(f"Unsupported output format: {path.suffix or '(none)'}")
    logger.info("Report written", file=str(path), rows=frame.height)


def print_frame(name: str, frame: pl.DataFrame) -> None:
    with pl.Config(tbl_rows=-1, tbl_cols=-1, fmt_str_lengths=80):
        print(f"== {name}")
        print(frame)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="music-analytics",
        description="Business reports over a music store snapshot",
    )
    parser.add_argument("--csv-dir", type=Path, help="Read the snapshot from CSV exports")
    parser.add_argument("--database-url", help="SQLAlchemy URL of the source database")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--log-format", choices=["json", "console"], help="Log renderer")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List available reports")

    run = subparsers.add_parser("run", help="Run one report")
    run.add_argument("report", choices=sorted(REPORTS))
    run.add_argument(
        "--param", "-p",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Report parameter, repeatable",
    )
    run.add_argument("--output", "-o", type=Path, help="Write to .csv, .json or .parquet")

    run_all = subparsers.add_parser("run-all", help="Run every report concurrently")
    run_all.add_argument("--output-dir", type=Path, help="Write one file per report")
    run_all.add_argument("--format", choices=OUTPUT_FORMATS, default="csv")
    run_all.add_argument("--max-workers", type=int, help="Concurrent reports")

    check = subparsers.add_parser("check", help="Check invoice totals against their lines")
    check.add_argument("--tolerance", type=float, help="Allowed difference per invoice")

    return parser


def list_reports() -> None:
    for name, definition in sorted(REPORTS.items()):
        params = ", ".join(f"{k}:{t.__name__}" for k, t in definition.params.items())
        suffix = f" [{params}]" if params else ""
        print(f"{name}{suffix}\n    {definition.description}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.log_format)

    if args.command == "list":
        list_reports()
        return 0

    try:
        params: Dict[str, Any] = {}
        if args.command == "run":
            params = parse_params(args.report, args.param)

        snapshot = load_snapshot(csv_dir=args.csv_dir, database_url=args.database_url)

        if args.command == "run":
            result = ReportingEngine(snapshot).run(args.report, **params)
            if args.output:
                write_frame(result.frame, args.output)
            else:
                print_frame(result.name, result.frame)

        elif args.command == "run-all":
            engine = ReportingEngine(snapshot, max_workers=args.max_workers)
            results = engine.run_all()
            for name, result in results.items():
                if args.output_dir:
                    write_frame(result.frame, args.output_dir / f"{name}.{args.format}")
                else:
                    print_frame(name, result.frame)

        elif args.command == "check":
            check = check_invoice_totals(snapshot, args.tolerance)
            logger.info(
                "Invoice totals checked",
                passed=check.passed,
                failed_rows=check.failed_rows,
                total_rows=check.total_rows,
            )
            if check.passed:
                print(check.message)
                return 0
            print_frame("invoice_total_mismatches", invoice_total_mismatches(snapshot, args.tolerance))
            return 2

    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    except (ReportingError, SQLAlchemyError, FileNotFoundError, ValueError) as e:
        logger.error("Reporting failed", error=str(e), error_type=type(e).__name__)
        return 1
    finally:
        close_database()

    return 0


if __name__ == "__main__":
    sys.exit(main())
