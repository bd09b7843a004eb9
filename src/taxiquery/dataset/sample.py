from __future__ import annotations

from datetime import datetime, timedelta
import logging
from pathlib import Path
import random

from taxiquery.dataset.zones import zone_schema
from taxiquery.util.deps import require_polars
from taxiquery.util.logging import log_structured_event

LOG = logging.getLogger(__name__)

SAMPLE_YEAR = 2022
SAMPLE_MONTHS = (1, 2, 3)
UNMATCHED_LOCATION_ID = 999
ZONES_FILE_NAME = "taxi_zone_lookup.csv"
TRIPS_DIR_NAME = "nyc-taxi"

SAMPLE_ZONES: tuple[tuple[int, str, str, str], ...] = (
    (1, "EWR", "Newark Airport", "EWR"),
    (4, "Manhattan", "Alphabet City", "Yellow Zone"),
    (5, "Staten Island", "Arden Heights", "Boro Zone"),
    (7, "Queens", "Astoria", "Boro Zone"),
    (20, "Bronx", "Belmont", "Boro Zone"),
    (61, "Brooklyn", "Crown Heights North", "Boro Zone"),
    (132, "Queens", "JFK Airport", "Airports"),
    (138, "Queens", "LaGuardia Airport", "Airports"),
    (161, "Manhattan", "Midtown Center", "Yellow Zone"),
    (237, "Manhattan", "Upper East Side South", "Yellow Zone"),
    (264, "Unknown", "NV", "N/A"),
)

# Manhattan-heavy, roughly like the real pickup distribution.
_PICKUP_WEIGHTS = {
    1: 1,
    4: 20,
    5: 1,
    7: 6,
    20: 3,
    61: 8,
    132: 12,
    138: 10,
    161: 40,
    237: 35,
    264: 2,
    UNMATCHED_LOCATION_ID: 1,
}


def write_zone_lookup(path: Path, zones=SAMPLE_ZONES) -> Path:
    pl = require_polars("write_zone_lookup")
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = pl.DataFrame(
        [list(row) for row in zones],
        schema=zone_schema(),
        orient="row",
    )
    frame.write_csv(path)
    return path


def _month_trips(rng: random.Random, rows: int, month: int) -> dict[str, list]:
    location_ids = list(_PICKUP_WEIGHTS)
    weights = [_PICKUP_WEIGHTS[key] for key in location_ids]
    start = datetime(SAMPLE_YEAR, month, 1)
    pickups = rng.choices(location_ids, weights=weights, k=rows)
    dropoffs = rng.choices(location_ids, weights=weights, k=rows)
    return {
        "pickup_datetime": [start + timedelta(seconds=rng.randrange(0, 27 * 24 * 3600)) for _ in range(rows)],
        "pickup_location_id": pickups,
        "dropoff_location_id": dropoffs,
        "passenger_count": [rng.randint(1, 4) for _ in range(rows)],
        "fare_amount": [round(rng.uniform(3.0, 70.0), 2) for _ in range(rows)],
    }


def write_sample_dataset(output_dir, *, rows_per_month: int = 10_000, seed: int = 42) -> dict[str, Path]:
    """
    Write a small hive-partitioned trip dataset and its zone lookup.

    Layout: ``<output_dir>/nyc-taxi/year=YYYY/month=M/part-0.parquet`` plus
    ``<output_dir>/taxi_zone_lookup.csv``. Pickups include location 999,
    which has no lookup row.
    """
    if rows_per_month <= 0:
        raise ValueError("rows_per_month must be a positive integer")
    pl = require_polars("write_sample_dataset")
    output_dir = Path(output_dir)
    trips_dir = output_dir / TRIPS_DIR_NAME
    rng = random.Random(seed)

    for month in SAMPLE_MONTHS:
        partition = trips_dir / f"year={SAMPLE_YEAR}" / f"month={month}"
        partition.mkdir(parents=True, exist_ok=True)
        frame = pl.DataFrame(
            _month_trips(rng, rows_per_month, month),
            schema={
                "pickup_datetime": pl.Datetime("us"),
                "pickup_location_id": pl.Int64,
                "dropoff_location_id": pl.Int64,
                "passenger_count": pl.Int64,
                "fare_amount": pl.Float64,
            },
        )
        frame.write_parquet(partition / "part-0.parquet")

    zones_path = write_zone_lookup(output_dir / ZONES_FILE_NAME)
    log_structured_event(
        LOG,
        logging.INFO,
        "sample_dataset_written",
        trips_dir=str(trips_dir),
        zones_path=str(zones_path),
        rows=rows_per_month * len(SAMPLE_MONTHS),
        seed=seed,
    )
    return {"trips": trips_dir, "zones": zones_path}
