from taxiquery.dataset.trips import TripDataset, open_trip_dataset
from taxiquery.dataset.zones import (
    BOROUGH,
    LOCATION_ID,
    ZONE_COLUMNS,
    ZONE_RENAMES,
    check_join_key_type,
    load_zone_lookup,
    zone_schema,
)

__all__ = [
    "BOROUGH",
    "LOCATION_ID",
    "TripDataset",
    "ZONE_COLUMNS",
    "ZONE_RENAMES",
    "check_join_key_type",
    "load_zone_lookup",
    "open_trip_dataset",
    "zone_schema",
]
