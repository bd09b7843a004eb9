from __future__ import annotations

from pathlib import Path
from typing import Any

from taxiquery.compare import DUCKDB_COUNT, POLARS_COUNT
from taxiquery.dataset.zones import BOROUGH

UNMATCHED_BOROUGH_LABEL = "(no matching zone)"


def _to_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def format_seconds(value: Any, *, precision: int = 3) -> str:
    num = _to_float(value)
    if num is None:
        return "n/a"
    return f"{num:.{int(precision)}f} sec"


def _fmt_count(value: Any) -> str:
    num = _to_float(value)
    if num is None:
        return "n/a"
    return f"{int(num):,}"


def _fmt_borough(value: Any) -> str:
    if value is None:
        return UNMATCHED_BOROUGH_LABEL
    return str(value).replace("|", "\\|")


def render_comparison_table(comparison) -> list[str]:
    lines = [
        "| Borough | Trips (Polars) | Trips (DuckDB SQL) |",
        "| :--- | ---: | ---: |",
    ]
    for row in comparison.iter_rows(named=True):
        lines.append(
            f"| {_fmt_borough(row[BOROUGH])} | {_fmt_count(row[POLARS_COUNT])} | {_fmt_count(row[DUCKDB_COUNT])} |"
        )
    return lines


def _timing_suffix(timing, precision: int) -> str:
    summary = timing.summary()
    if len(timing.runs) <= 1:
        return ""
    return (
        f" Over {len(timing.runs)} runs the mean was {format_seconds(summary.get('mean'), precision=precision)}"
        f" and the fastest {format_seconds(summary.get('min'), precision=precision)}."
    )


def _parity_sentence(parity) -> str:
    if parity.equivalent and parity.totals_match:
        return (
            f"Both engines report the same count for every borough, and the counts add up to "
            f"{_fmt_count(parity.total_polars)} trips, the full row count of the dataset."
        )
    return (
        f"**The engines disagree** on {len(parity.mismatches)} borough(s): Polars counted "
        f"{_fmt_count(parity.total_polars)} trips and DuckDB {_fmt_count(parity.total_duckdb)}, "
        f"against {_fmt_count(parity.expected_total)} rows in the dataset."
    )


def render_markdown(result, *, title: str, precision: int = 3) -> str:
    polars_time = format_seconds(result.polars_timing.seconds, precision=precision)
    duckdb_time = format_seconds(result.duckdb_timing.seconds, precision=precision)
    lines = [
        f"# {title}",
        "",
        "## The data",
        "",
        (
            f"The trip dataset at `{result.dataset_path}` is spread over {result.file_count} Parquet "
            f"file(s) and holds {_fmt_count(result.row_count)} rows in {result.column_count} columns. "
            "Opening it reads only file metadata; no trip rows are loaded until a query is collected."
        ),
        "",
        (
            f"The zone lookup `{result.zones_path}` has {_fmt_count(result.zone_rows)} rows. Its schema is "
            "declared up front (`LocationID` as a 64-bit integer, the rest as text) so the join key "
            f"matches `{result.pickup_column}` in the trip data."
        ),
        "",
        "## Counting with a Polars query pipeline",
        "",
        (
            f"Selecting `{result.pickup_column}`, left-joining the zones, grouping by borough, counting "
            f"and sorting took {polars_time}.{_timing_suffix(result.polars_timing, precision)}"
        ),
        "",
        "## Counting with DuckDB SQL",
        "",
        "The same two tables, registered in DuckDB, answer this query:",
        "",
        "```sql",
        result.sql,
        "```",
        "",
        f"It ran in {duckdb_time}.{_timing_suffix(result.duckdb_timing, precision)}",
        "",
        "## Comparing the results",
        "",
    ]
    lines.extend(render_comparison_table(result.comparison))
    lines.extend(["", _parity_sentence(result.parity)])
    if not result.repeatable:
        lines.extend(["", "Repeated runs of at least one pipeline did not return identical results."])
    return "\n".join(lines) + "\n"


def write_report(text: str, path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path
