"""End-to-end borough count sample.

Demonstrates:
- Writing a small hive-partitioned trip dataset and zone lookup
- Counting trips per pickup borough with a Polars lazy pipeline
- Counting the same thing with DuckDB SQL
- Rendering the timed comparison as Markdown

Point TAXIQUERY_SAMPLE_DATASET / TAXIQUERY_SAMPLE_ZONES at real data to skip
the synthetic step.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from taxiquery import run_analysis
from taxiquery.dataset.sample import write_sample_dataset
from taxiquery.report import render_markdown, write_report

OUTPUT_BASE = Path("samples/output/borough_counts")


def _env_int(name: str, default: int, *, minimum: int = 1) -> int:
    text = os.getenv(name, "").strip()
    if not text:
        return default
    try:
        value = int(text)
    except ValueError:
        return default
    return max(minimum, value)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    dataset = os.getenv("TAXIQUERY_SAMPLE_DATASET", "").strip()
    zones = os.getenv("TAXIQUERY_SAMPLE_ZONES", "").strip()
    if not dataset or not zones:
        written = write_sample_dataset(
            OUTPUT_BASE / "data",
            rows_per_month=_env_int("TAXIQUERY_SAMPLE_ROWS", 100_000),
        )
        dataset, zones = str(written["trips"]), str(written["zones"])

    result = run_analysis(dataset, zones, repetitions=_env_int("TAXIQUERY_SAMPLE_REPETITIONS", 3))
    print(result.comparison)

    report = write_report(render_markdown(result, title="NYC taxi pickups by borough"), OUTPUT_BASE / "report.md")
    print("Report:", report)


if __name__ == "__main__":
    main()
