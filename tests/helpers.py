from __future__ import annotations

from pathlib import Path

import polars as pl

ZONE_HEADER = "LocationID,Borough,Zone,service_zone"


def write_zones(path: Path, rows) -> Path:
    lines = [ZONE_HEADER]
    for location_id, borough, zone, service_zone in rows:
        lines.append(f'{location_id},"{borough}","{zone}","{service_zone}"')
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def write_trips(root: Path, partitions: dict[tuple[int, int], list[int]], *, column: str = "pickup_location_id") -> Path:
    """Write ``{(year, month): [pickup ids]}`` as hive partitions under ``root``."""
    for (year, month), pickups in partitions.items():
        partition = root / f"year={year}" / f"month={month}"
        partition.mkdir(parents=True, exist_ok=True)
        pl.DataFrame(
            {
                column: pickups,
                "fare_amount": [10.0] * len(pickups),
            },
            schema={column: pl.Int64, "fare_amount": pl.Float64},
        ).write_parquet(partition / "part-0.parquet")
    return root


MANHATTAN_BROOKLYN_ZONES = (
    (1, "Manhattan", "Alphabet City", "Yellow Zone"),
    (2, "Brooklyn", "Bay Ridge", "Boro Zone"),
)
