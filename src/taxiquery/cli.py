"""Count taxi trips per pickup borough with Polars and DuckDB and render a Markdown report."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from taxiquery._version import VERSION
from taxiquery.config import get_runtime_defaults
from taxiquery.errors import TaxiQueryError
from taxiquery.util.json import json_dumps

SUCCESS_EXIT_CODE = 0
FAIL_EXIT_CODE = 1
LOG = logging.getLogger("taxiquery.cli")


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {text!r}") from exc
    if value <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {text!r}")
    return value


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s", stream=sys.stderr)


def _run_mode(args: argparse.Namespace) -> int:
    from taxiquery.report import render_markdown, write_report
    from taxiquery.runner import run_analysis

    report_defaults = get_runtime_defaults().report_defaults
    result = run_analysis(
        args.dataset,
        args.zones,
        pickup_column=args.pickup_column,
        database=args.database,
        threads=args.threads,
        repetitions=args.repetitions,
        strict=args.strict,
    )
    text = render_markdown(
        result,
        title=args.title or report_defaults.title,
        precision=report_defaults.seconds_precision,
    )
    if args.output:
        write_report(text, args.output)
        print(f"report written to {args.output}", flush=True)
    else:
        sys.stdout.write(text)
    if args.json:
        path = Path(args.json)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json_dumps(result.summary_dict(), indent=True) + "\n", encoding="utf-8")
    return SUCCESS_EXIT_CODE


def _inspect_mode(args: argparse.Namespace) -> int:
    from taxiquery.dataset import open_trip_dataset

    dataset = open_trip_dataset(args.dataset)
    print(f"path: {dataset.path}")
    print(f"files: {len(dataset.files)}")
    print(f"rows: {dataset.row_count:,}")
    print(f"columns: {dataset.column_count}")
    for name, dtype in dataset.schema.items():
        print(f"  {name}: {dtype}")
    return SUCCESS_EXIT_CODE


def _sample_mode(args: argparse.Namespace) -> int:
    from taxiquery.dataset.sample import write_sample_dataset

    written = write_sample_dataset(args.output, rows_per_month=args.rows, seed=args.seed)
    print(f"trips: {written['trips']}")
    print(f"zones: {written['zones']}")
    return SUCCESS_EXIT_CODE


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taxiquery", description=__doc__)
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG logs.")
    subparsers = parser.add_subparsers(dest="mode", required=True)

    run_parser = subparsers.add_parser("run", help="Count trips per borough with both engines and render a report.")
    run_parser.add_argument("--dataset", required=True, help="Directory of Parquet partitions (or one Parquet file).")
    run_parser.add_argument("--zones", required=True, help="Zone lookup CSV.")
    run_parser.add_argument("--output", default=None, help="Markdown report path; stdout when omitted.")
    run_parser.add_argument("--json", default=None, help="Optional JSON run summary path.")
    run_parser.add_argument("--database", default=None, help="DuckDB database file; in-memory by default.")
    run_parser.add_argument("--threads", type=_positive_int, default=None, help="DuckDB thread count.")
    run_parser.add_argument("--repetitions", type=_positive_int, default=None, help="Runs per pipeline.")
    run_parser.add_argument("--pickup-column", default=None, help="Pickup location column in the trip data.")
    run_parser.add_argument("--title", default=None, help="Report title.")
    run_parser.add_argument(
        "--strict",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Fail when the two engines disagree (default from config).",
    )

    inspect_parser = subparsers.add_parser("inspect", help="Print row/column counts and schema of a dataset.")
    inspect_parser.add_argument("--dataset", required=True)

    sample_parser = subparsers.add_parser("sample", help="Write a small synthetic dataset and zone lookup.")
    sample_parser.add_argument("--output", required=True, help="Target directory.")
    sample_parser.add_argument("--rows", type=_positive_int, default=10_000, help="Trips per monthly partition.")
    sample_parser.add_argument("--seed", type=int, default=42)
    return parser


_MODES = {
    "run": _run_mode,
    "inspect": _inspect_mode,
    "sample": _sample_mode,
}


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    try:
        return _MODES[args.mode](args)
    except TaxiQueryError as exc:
        LOG.error("%s failed: %s", args.mode, exc)
        print(f"error: {exc}", file=sys.stderr)
        return FAIL_EXIT_CODE


if __name__ == "__main__":
    raise SystemExit(main())
