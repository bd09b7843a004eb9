import logging
import unittest

import polars as pl

from taxiquery.compare import align_results, check_parity, enforce_parity, ensure_repeatable
from taxiquery.errors import ResultMismatchError

SCHEMA = {"borough": pl.String, "n": pl.Int64}


def _frame(rows):
    return pl.DataFrame(rows, schema=SCHEMA, orient="row")


class TestCompare(unittest.TestCase):
    def test_align_is_full_outer_on_borough(self):
        comparison = align_results(
            _frame([("Bronx", 2), ("Queens", 5), (None, 1)]),
            _frame([("Brooklyn", 4), ("Queens", 5), (None, 1)]),
        )
        self.assertEqual(comparison.columns, ["borough", "n_polars", "n_duckdb"])
        self.assertEqual(
            comparison.rows(),
            [("Bronx", 2, None), ("Brooklyn", None, 4), ("Queens", 5, 5), (None, 1, 1)],
        )

    def test_parity_flags_missing_and_differing_counts(self):
        comparison = align_results(
            _frame([("Bronx", 2), ("Queens", 5)]),
            _frame([("Queens", 6)]),
        )
        parity = check_parity(comparison, expected_total=7)
        self.assertFalse(parity.equivalent)
        self.assertEqual([row["borough"] for row in parity.mismatches], ["Bronx", "Queens"])
        self.assertEqual(parity.total_polars, 7)
        self.assertEqual(parity.total_duckdb, 6)
        self.assertFalse(parity.totals_match)
        self.assertFalse(parity.to_dict()["totals_match"])

    def test_totals_checked_against_dataset_rows(self):
        frame = _frame([("Queens", 5)])
        parity = check_parity(align_results(frame, frame), expected_total=6)
        self.assertTrue(parity.equivalent)
        self.assertFalse(parity.totals_match)

    def test_enforce_parity_strict_raises(self):
        parity = check_parity(align_results(_frame([("Queens", 5)]), _frame([("Queens", 4)])))
        with self.assertRaises(ResultMismatchError) as ctx:
            enforce_parity(parity, strict=True)
        self.assertEqual(len(ctx.exception.mismatches), 1)

    def test_enforce_parity_lenient_logs(self):
        parity = check_parity(align_results(_frame([("Queens", 5)]), _frame([("Queens", 4)])))
        with self.assertLogs("taxiquery.compare", level=logging.WARNING) as captured:
            enforce_parity(parity, strict=False)
        self.assertIn("result_mismatch", captured.output[0])

    def test_ensure_repeatable(self):
        first = _frame([("Queens", 5), (None, 2)])
        self.assertTrue(ensure_repeatable([first, first.clone()], pipeline="polars"))
        changed = _frame([("Queens", 4), (None, 2)])
        with self.assertRaises(ResultMismatchError):
            ensure_repeatable([first, changed], pipeline="polars")
        with self.assertLogs("taxiquery.compare", level=logging.WARNING):
            self.assertFalse(ensure_repeatable([first, changed], pipeline="polars", strict=False))
