import tempfile
import unittest
from pathlib import Path

import polars as pl

from taxiquery.dataset import check_join_key_type, load_zone_lookup, open_trip_dataset
from taxiquery.errors import DatasetSchemaError, LookupNotFoundError
from tests.helpers import MANHATTAN_BROOKLYN_ZONES, write_trips, write_zones


class TestZoneLookup(unittest.TestCase):
    def test_declared_schema_and_snake_case_columns(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = write_zones(Path(tmp) / "zones.csv", MANHATTAN_BROOKLYN_ZONES)
            zones = load_zone_lookup(path)

            self.assertEqual(zones.columns, ["location_id", "borough", "zone", "service_zone"])
            self.assertEqual(zones.schema["location_id"], pl.Int64)
            self.assertEqual(zones.schema["borough"], pl.String)
            self.assertEqual(zones.height, 2)

    def test_numeric_looking_text_stays_text(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = write_zones(Path(tmp) / "zones.csv", [(7, "Queens", "123", "456")])
            zones = load_zone_lookup(path)
            self.assertEqual(zones.schema["zone"], pl.String)
            self.assertEqual(zones.get_column("zone").to_list(), ["123"])

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(LookupNotFoundError):
                load_zone_lookup(Path(tmp) / "missing.csv")

    def test_unexpected_header(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "zones.csv"
            path.write_text("id,borough\n1,Manhattan\n", encoding="utf-8")
            with self.assertRaises(DatasetSchemaError):
                load_zone_lookup(path)

    def test_non_integer_identifier_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "zones.csv"
            path.write_text("LocationID,Borough,Zone,service_zone\nabc,Manhattan,x,y\n", encoding="utf-8")
            with self.assertRaises(DatasetSchemaError):
                load_zone_lookup(path)

    def test_check_join_key_type(self):
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            zones = load_zone_lookup(write_zones(tmp_path / "zones.csv", MANHATTAN_BROOKLYN_ZONES))
            trips = open_trip_dataset(write_trips(tmp_path / "trips", {(2022, 1): [1, 2]}))
            check_join_key_type(trips, zones, "pickup_location_id")

            text_path = tmp_path / "text_keys.parquet"
            pl.DataFrame({"pickup_location_id": ["1", "2"]}).write_parquet(text_path)
            with self.assertRaises(DatasetSchemaError):
                check_join_key_type(open_trip_dataset(text_path), zones, "pickup_location_id")

    def test_unsigned_64_bit_key_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            zones = load_zone_lookup(write_zones(tmp_path / "zones.csv", MANHATTAN_BROOKLYN_ZONES))
            path = tmp_path / "u64_keys.parquet"
            pl.DataFrame({"pickup_location_id": pl.Series([1, 2**63 + 5], dtype=pl.UInt64)}).write_parquet(path)
            with self.assertRaises(DatasetSchemaError):
                check_join_key_type(open_trip_dataset(path), zones, "pickup_location_id")

    def test_narrow_unsigned_key_is_accepted(self):
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            zones = load_zone_lookup(write_zones(tmp_path / "zones.csv", MANHATTAN_BROOKLYN_ZONES))
            path = tmp_path / "u16_keys.parquet"
            pl.DataFrame({"pickup_location_id": pl.Series([1, 2], dtype=pl.UInt16)}).write_parquet(path)
            check_join_key_type(open_trip_dataset(path), zones, "pickup_location_id")

    def test_byte_order_mark_and_quoted_header(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "zones.csv"
            path.write_text(
                '\ufeff"LocationID","Borough","Zone","service_zone"\n1,"Manhattan","Alphabet City","Yellow Zone"\n',
                encoding="utf-8",
            )
            zones = load_zone_lookup(path)
            self.assertEqual(zones.get_column("location_id").to_list(), [1])
            self.assertEqual(zones.get_column("borough").to_list(), ["Manhattan"])
