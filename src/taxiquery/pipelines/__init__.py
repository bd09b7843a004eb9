from taxiquery.pipelines.duckdb_pipeline import (
    BOROUGH_COUNT_SQL,
    borough_count_sql,
    count_trips_by_borough_duckdb,
    duckdb_session,
    register_tables,
)
from taxiquery.pipelines.polars_pipeline import (
    COUNT_COLUMN,
    borough_count_plan,
    count_trips_by_borough_polars,
)

__all__ = [
    "BOROUGH_COUNT_SQL",
    "COUNT_COLUMN",
    "borough_count_plan",
    "borough_count_sql",
    "count_trips_by_borough_duckdb",
    "count_trips_by_borough_polars",
    "duckdb_session",
    "register_tables",
]
