from __future__ import annotations

from dataclasses import asdict, dataclass, field
import logging

from taxiquery.dataset.zones import BOROUGH
from taxiquery.errors import ResultMismatchError
from taxiquery.pipelines.polars_pipeline import COUNT_COLUMN
from taxiquery.util.logging import log_structured_event

LOG = logging.getLogger(__name__)
POLARS_COUNT = "n_polars"
DUCKDB_COUNT = "n_duckdb"


@dataclass(frozen=True)
class ParityReport:
    equivalent: bool
    total_polars: int
    total_duckdb: int
    expected_total: int | None = None
    mismatches: list[dict[str, object]] = field(default_factory=list)

    @property
    def totals_match(self) -> bool:
        if self.total_polars != self.total_duckdb:
            return False
        return self.expected_total is None or self.total_polars == self.expected_total

    def to_dict(self) -> dict[str, object]:
        payload = asdict(self)
        payload["totals_match"] = self.totals_match
        return payload


def align_results(polars_result, duckdb_result):
    """Full outer join of both aggregates on borough; the null borough matches itself."""
    left = polars_result.rename({COUNT_COLUMN: POLARS_COUNT})
    right = duckdb_result.rename({COUNT_COLUMN: DUCKDB_COUNT})
    return left.join(
        right,
        on=BOROUGH,
        how="full",
        coalesce=True,
        nulls_equal=True,
    ).sort(BOROUGH, nulls_last=True)


def check_parity(comparison, *, expected_total: int | None = None) -> ParityReport:
    mismatches = [
        row
        for row in comparison.iter_rows(named=True)
        if row[POLARS_COUNT] is None or row[DUCKDB_COUNT] is None or row[POLARS_COUNT] != row[DUCKDB_COUNT]
    ]
    total_polars = int(comparison.get_column(POLARS_COUNT).fill_null(0).sum())
    total_duckdb = int(comparison.get_column(DUCKDB_COUNT).fill_null(0).sum())
    return ParityReport(
        equivalent=not mismatches,
        total_polars=total_polars,
        total_duckdb=total_duckdb,
        expected_total=None if expected_total is None else int(expected_total),
        mismatches=mismatches,
    )


def enforce_parity(report: ParityReport, *, strict: bool) -> None:
    if report.equivalent and report.totals_match:
        return
    log_structured_event(
        LOG,
        logging.WARNING,
        "result_mismatch",
        mismatches=len(report.mismatches),
        total_polars=report.total_polars,
        total_duckdb=report.total_duckdb,
        expected_total=report.expected_total,
        strict=strict,
    )
    if strict:
        raise ResultMismatchError(
            f"Polars and DuckDB borough counts disagree "
            f"({len(report.mismatches)} borough(s); totals {report.total_polars} vs {report.total_duckdb}, "
            f"dataset rows {report.expected_total})",
            mismatches=report.mismatches,
        )


def ensure_repeatable(results: list, *, pipeline: str, strict: bool = True) -> bool:
    """Every repetition of a pipeline must produce the identical frame."""
    first = results[0]
    for index, other in enumerate(results[1:], start=2):
        if first.equals(other):
            continue
        log_structured_event(
            LOG,
            logging.WARNING,
            "repetition_mismatch",
            pipeline=pipeline,
            repetition=index,
            strict=strict,
        )
        if strict:
            raise ResultMismatchError(f"{pipeline} result of repetition {index} differs from repetition 1")
        return False
    return True
