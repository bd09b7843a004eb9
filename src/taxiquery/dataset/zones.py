"""Zone lookup ingestion with a declared schema.

The lookup CSV is parsed against ZONE_SCHEMA instead of inferred types: an
inferred key type that differs from the trip dataset's key would make the
join silently match nothing.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from taxiquery.errors import DatasetSchemaError, LookupNotFoundError
from taxiquery.util.deps import require_polars
from taxiquery.util.logging import log_structured_event

LOG = logging.getLogger(__name__)

LOCATION_ID = "location_id"
BOROUGH = "borough"

# CSV header -> (output column, DuckDB type); polars dtypes are resolved lazily.
ZONE_COLUMNS: tuple[tuple[str, str, str], ...] = (
    ("LocationID", LOCATION_ID, "BIGINT"),
    ("Borough", BOROUGH, "VARCHAR"),
    ("Zone", "zone", "VARCHAR"),
    ("service_zone", "service_zone", "VARCHAR"),
)
ZONE_RENAMES = {raw: renamed for raw, renamed, _ in ZONE_COLUMNS}


def zone_schema() -> dict:
    pl = require_polars("zone_schema")
    sql_to_polars = {"BIGINT": pl.Int64, "VARCHAR": pl.String}
    return {raw: sql_to_polars[sql_type] for raw, _, sql_type in ZONE_COLUMNS}


def _read_header(path: Path) -> list[str]:
    with path.open("r", encoding="utf-8-sig", newline="") as fh:
        first = next(csv.reader(fh), [])
    return [token.strip() for token in first]


def load_zone_lookup(path):
    pl = require_polars("load_zone_lookup")
    path = Path(path).expanduser()
    if not path.is_file():
        raise LookupNotFoundError(f"Zone lookup file does not exist: {path}", path)

    header = _read_header(path)
    expected = [raw for raw, _, _ in ZONE_COLUMNS]
    if header != expected:
        raise DatasetSchemaError(
            f"Zone lookup {path} has columns {header}; expected {expected}"
        )

    try:
        zones = pl.read_csv(path, schema=zone_schema())
    except pl.exceptions.PolarsError as exc:
        raise DatasetSchemaError(f"Zone lookup {path} does not match the declared schema", exc) from exc
    zones = zones.rename(ZONE_RENAMES)
    log_structured_event(LOG, logging.INFO, "zone_lookup_loaded", path=str(path), rows=zones.height)
    return zones


def check_join_key_type(trips, zones, key: str) -> None:
    """Fail loudly when the trip key cannot join against the integer lookup key."""
    pl = require_polars("check_join_key_type")
    trips.require_columns(key)
    trip_dtype = trips.schema[key]
    zone_dtype = zones.schema[LOCATION_ID]
    # UInt64 has values outside Int64, so the cast in the join plan is not lossless.
    if not trip_dtype.is_integer() or trip_dtype == pl.UInt64:
        raise DatasetSchemaError(
            f"Trip column {key!r} has type {trip_dtype}; the zone key {LOCATION_ID!r} is {zone_dtype}"
        )
