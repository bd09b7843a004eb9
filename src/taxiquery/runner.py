"""Linear analysis run: open, load, count twice, compare."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from time import perf_counter
from typing import Any, Callable

from taxiquery.compare import ParityReport, align_results, check_parity, enforce_parity, ensure_repeatable
from taxiquery.config import get_runtime_defaults, runtime_defaults_load_telemetry
from taxiquery.dataset import check_join_key_type, load_zone_lookup, open_trip_dataset
from taxiquery.pipelines import borough_count_sql, count_trips_by_borough_duckdb, count_trips_by_borough_polars
from taxiquery.util.logging import log_structured_event, new_job_id
from taxiquery.util.stats import stat_summary

LOG = logging.getLogger(__name__)
POLARS_PIPELINE = "polars"
DUCKDB_PIPELINE = "duckdb"


@dataclass(frozen=True)
class TimingMeasurement:
    pipeline: str
    runs: tuple[float, ...]

    @property
    def seconds(self) -> float:
        return self.runs[0]

    def summary(self) -> dict[str, float]:
        return stat_summary(list(self.runs))


@dataclass(frozen=True)
class AnalysisResult:
    job_id: str
    dataset_path: Path
    file_count: int
    row_count: int
    column_count: int
    zones_path: Path
    zone_rows: int
    pickup_column: str
    sql: str
    polars_result: Any
    duckdb_result: Any
    comparison: Any
    parity: ParityReport
    polars_timing: TimingMeasurement
    duckdb_timing: TimingMeasurement
    repeatable: bool = True

    def summary_dict(self) -> dict[str, object]:
        return {
            "job_id": self.job_id,
            "dataset": {
                "path": str(self.dataset_path),
                "files": self.file_count,
                "rows": self.row_count,
                "columns": self.column_count,
                "pickup_column": self.pickup_column,
            },
            "zones": {"path": str(self.zones_path), "rows": self.zone_rows},
            "timings_seconds": {
                POLARS_PIPELINE: {"first": self.polars_timing.seconds, **self.polars_timing.summary()},
                DUCKDB_PIPELINE: {"first": self.duckdb_timing.seconds, **self.duckdb_timing.summary()},
            },
            "comparison": self.comparison.to_dicts(),
            "parity": self.parity.to_dict(),
            "repeatable": self.repeatable,
            "sql": self.sql,
            "config": runtime_defaults_load_telemetry(),
        }


def _run_repeated(pipeline: str, repetitions: int, job_id: str, func: Callable[[], Any]):
    results = []
    runs: list[float] = []
    for rep in range(1, repetitions + 1):
        started = perf_counter()
        results.append(func())
        seconds = perf_counter() - started
        runs.append(seconds)
        log_structured_event(
            LOG,
            logging.INFO,
            "pipeline_run",
            job_id=job_id,
            pipeline=pipeline,
            repetition=rep,
            seconds=round(seconds, 6),
            groups=results[-1].height,
        )
    return results, TimingMeasurement(pipeline=pipeline, runs=tuple(runs))


def run_analysis(
    dataset_path,
    zones_path,
    *,
    pickup_column: str | None = None,
    database: str | None = None,
    threads: int | None = None,
    repetitions: int | None = None,
    strict: bool | None = None,
    trips_table: str | None = None,
    zones_table: str | None = None,
) -> AnalysisResult:
    """
    Count trips per pickup borough with Polars and with DuckDB SQL.

    Unset keyword arguments come from the runtime defaults. Any failure to
    read inputs or run a query propagates; in strict mode a disagreement
    between the two engines raises ResultMismatchError.
    """
    defaults = get_runtime_defaults()
    pickup_column = pickup_column or defaults.dataset_defaults.pickup_column
    database = database or defaults.engine_defaults.duckdb_database
    threads = threads if threads is not None else defaults.engine_defaults.duckdb_threads
    repetitions = max(1, int(repetitions or defaults.report_defaults.repetitions))
    strict = defaults.report_defaults.strict_parity if strict is None else bool(strict)
    trips_table = trips_table or defaults.dataset_defaults.trips_table
    zones_table = zones_table or defaults.dataset_defaults.zones_table
    job_id = new_job_id("boroughs")

    log_structured_event(
        LOG,
        logging.INFO,
        "analysis_start",
        job_id=job_id,
        dataset=str(dataset_path),
        zones=str(zones_path),
        database=database,
        repetitions=repetitions,
        strict=strict,
    )
    trips = open_trip_dataset(dataset_path)
    zones = load_zone_lookup(zones_path)
    check_join_key_type(trips, zones, pickup_column)

    polars_results, polars_timing = _run_repeated(
        POLARS_PIPELINE,
        repetitions,
        job_id,
        lambda: count_trips_by_borough_polars(trips, zones, pickup_column=pickup_column),
    )
    duckdb_results, duckdb_timing = _run_repeated(
        DUCKDB_PIPELINE,
        repetitions,
        job_id,
        lambda: count_trips_by_borough_duckdb(
            trips,
            zones,
            pickup_column=pickup_column,
            trips_table=trips_table,
            zones_table=zones_table,
            database=database,
            threads=threads,
        ),
    )
    repeatable = ensure_repeatable(polars_results, pipeline=POLARS_PIPELINE, strict=strict)
    repeatable = ensure_repeatable(duckdb_results, pipeline=DUCKDB_PIPELINE, strict=strict) and repeatable

    comparison = align_results(polars_results[0], duckdb_results[0])
    parity = check_parity(comparison, expected_total=trips.row_count)
    enforce_parity(parity, strict=strict)

    log_structured_event(
        LOG,
        logging.INFO,
        "analysis_done",
        job_id=job_id,
        boroughs=comparison.height,
        equivalent=parity.equivalent,
        totals_match=parity.totals_match,
        polars_seconds=round(polars_timing.seconds, 6),
        duckdb_seconds=round(duckdb_timing.seconds, 6),
    )
    return AnalysisResult(
        job_id=job_id,
        dataset_path=trips.path,
        file_count=len(trips.files),
        row_count=trips.row_count,
        column_count=trips.column_count,
        zones_path=Path(zones_path),
        zone_rows=zones.height,
        pickup_column=pickup_column,
        sql=borough_count_sql(trips_table=trips_table, zones_table=zones_table, pickup_column=pickup_column),
        polars_result=polars_results[0],
        duckdb_result=duckdb_results[0],
        comparison=comparison,
        parity=parity,
        polars_timing=polars_timing,
        duckdb_timing=duckdb_timing,
        repeatable=repeatable,
    )
