from __future__ import annotations

from taxiquery.dataset.zones import BOROUGH, LOCATION_ID
from taxiquery.errors import EngineError
from taxiquery.util.deps import require_polars

COUNT_COLUMN = "n"


def borough_count_plan(trips, zones, *, pickup_column: str):
    """Build the lazy select -> left join -> group -> count -> sort plan."""
    pl = require_polars("borough_count_plan")
    return (
        trips.lazy()
        .select(pl.col(pickup_column).cast(pl.Int64))
        .join(zones.lazy(), left_on=pickup_column, right_on=LOCATION_ID, how="left")
        .group_by(BOROUGH)
        .agg(pl.len().cast(pl.Int64).alias(COUNT_COLUMN))
        .sort(BOROUGH, nulls_last=True)
    )


def count_trips_by_borough_polars(trips, zones, *, pickup_column: str):
    pl = require_polars("count_trips_by_borough_polars")
    try:
        return borough_count_plan(trips, zones, pickup_column=pickup_column).collect()
    except pl.exceptions.PolarsError as exc:
        raise EngineError("Polars borough count query failed", exc) from exc
