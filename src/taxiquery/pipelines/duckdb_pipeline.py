from __future__ import annotations

from contextlib import contextmanager
import logging
from pathlib import Path

from taxiquery.dataset.zones import BOROUGH, LOCATION_ID, ZONE_COLUMNS
from taxiquery.errors import EngineError
from taxiquery.pipelines.polars_pipeline import COUNT_COLUMN
from taxiquery.util.deps import quote_sql_identifier, quote_sql_string, require_duckdb, require_polars
from taxiquery.util.logging import log_structured_event

LOG = logging.getLogger(__name__)
IN_MEMORY_DATABASE = ":memory:"

BOROUGH_COUNT_SQL = """
SELECT
    zones.{borough} AS {borough},
    count(*) AS {count_column}
FROM {trips_table} AS trips
LEFT JOIN {zones_table} AS zones
    ON trips.{pickup_column} = zones.{location_id}
GROUP BY zones.{borough}
ORDER BY zones.{borough} ASC NULLS LAST
""".strip()


def borough_count_sql(*, trips_table: str, zones_table: str, pickup_column: str) -> str:
    return BOROUGH_COUNT_SQL.format(
        borough=quote_sql_identifier(BOROUGH),
        count_column=quote_sql_identifier(COUNT_COLUMN),
        trips_table=quote_sql_identifier(trips_table),
        zones_table=quote_sql_identifier(zones_table),
        pickup_column=quote_sql_identifier(pickup_column),
        location_id=quote_sql_identifier(LOCATION_ID),
    )


@contextmanager
def duckdb_session(database: str = IN_MEMORY_DATABASE, *, threads: int | None = None):
    """
    Yield a DuckDB connection that is closed on every exit path.

    A file-backed ``database`` is created on first use and reused afterwards.
    """
    duckdb = require_duckdb("duckdb_session")
    database = str(database)
    if database != IN_MEMORY_DATABASE:
        Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)
    try:
        con = duckdb.connect(database=database)
    except duckdb.Error as exc:
        raise EngineError(f"Cannot open DuckDB database {database}", exc) from exc
    log_structured_event(LOG, logging.DEBUG, "duckdb_connected", database=database, threads=threads)
    try:
        if threads is not None:
            con.execute(f"SET threads = {int(threads)}")
        yield con
    finally:
        con.close()
        log_structured_event(LOG, logging.DEBUG, "duckdb_closed", database=database)


def register_tables(con, trips, zones, *, trips_table: str, zones_table: str) -> None:
    """Expose the trip dataset as a view and copy the parsed zone lookup into a typed table."""
    for name in (trips_table, zones_table):
        if not str(name).isidentifier():
            raise ValueError(f"table name must be a valid SQL identifier: {name!r}")

    hive = "true" if trips.hive_partitioning else "false"
    con.execute(
        f"CREATE OR REPLACE VIEW {quote_sql_identifier(trips_table)} AS "
        f"SELECT * FROM read_parquet({quote_sql_string(trips.source)}, hive_partitioning = {hive})"
    )

    # Same rows the Polars pipeline joins against; the CSV is not parsed a second time.
    column_defs = ", ".join(f"{quote_sql_identifier(renamed)} {sql_type}" for _, renamed, sql_type in ZONE_COLUMNS)
    table = quote_sql_identifier(zones_table)
    con.execute(f"CREATE OR REPLACE TABLE {table} ({column_defs})")
    columns = [renamed for _, renamed, _ in ZONE_COLUMNS]
    rows = zones.select(columns).rows()
    if rows:
        placeholders = ", ".join("?" for _ in columns)
        con.executemany(f"INSERT INTO {table} VALUES ({placeholders})", rows)


def count_trips_by_borough_duckdb(
    trips,
    zones,
    *,
    pickup_column: str,
    trips_table: str = "nyc_taxi",
    zones_table: str = "zone_map",
    database: str = IN_MEMORY_DATABASE,
    threads: int | None = None,
):
    duckdb = require_duckdb("count_trips_by_borough_duckdb")
    pl = require_polars("count_trips_by_borough_duckdb")
    sql = borough_count_sql(trips_table=trips_table, zones_table=zones_table, pickup_column=pickup_column)
    with duckdb_session(database, threads=threads) as con:
        try:
            register_tables(con, trips, zones, trips_table=trips_table, zones_table=zones_table)
            rows = con.execute(sql).fetchall()
        except duckdb.Error as exc:
            raise EngineError("DuckDB borough count query failed", exc) from exc
    return pl.DataFrame(
        rows,
        schema={BOROUGH: pl.String, COUNT_COLUMN: pl.Int64},
        orient="row",
    )
