from __future__ import annotations

import logging
import os
import sys
from glob import glob
from os.path import basename, join as pjoin, splitext
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest import TestLoader, TextTestRunner

from setuptools import Command, setup

ROOT = Path(__file__).resolve().parent
PYPROJECT = ROOT / "pyproject.toml"
MIN_PYTHON = (3, 11)


def _warn_if_below_min_python() -> None:
    if sys.version_info < MIN_PYTHON:
        logging.warning(
            "taxiquery targets Python %d.%d+ (running %d.%d); "
            "tomllib-based configuration will not load.",
            MIN_PYTHON[0],
            MIN_PYTHON[1],
            sys.version_info.major,
            sys.version_info.minor,
        )


def _project_version() -> str:
    try:
        import tomllib

        with PYPROJECT.open("rb") as fh:
            data = tomllib.load(fh)
        return data["project"]["version"]
    except Exception:
        # Fallback for unusual local states where pyproject parsing fails.
        sys.path.insert(0, str(ROOT / "src"))
        from taxiquery import VERSION

        return VERSION


_warn_if_below_min_python()


class TestCommand(Command):
    description = "Run unit tests"
    user_options = [("verbose", "v", "produce verbose output"), ("testmodule=", "t", "test module name")]
    boolean_options = ["verbose"]

    def initialize_options(self):
        self._dir = os.getcwd()
        self.test_prefix = "test_"
        self.verbose = 0
        self.testmodule = None

    def finalize_options(self):
        pass

    def run(self):
        """
        Finds all the tests modules in tests/, and runs them,
         exiting after they are all done
        """
        if self.verbose >= 2:
            logging.basicConfig(level=logging.DEBUG)

        testfiles = []
        if self.testmodule is None:
            for t in glob(pjoin(self._dir, "tests", self.test_prefix + "*.py")):
                if not t.endswith("__init__.py"):
                    testfiles.append(".".join(["tests", splitext(basename(t))[0]]))
        else:
            testfiles.append(self.testmodule)

        self.announce("Test files:" + str(testfiles), level=2)
        tests = TestLoader().loadTestsFromNames(testfiles)
        t = TextTestRunner(verbosity=self.verbose)
        result = t.run(tests)
        failed, errored = map(len, (result.failures, result.errors))
        raise SystemExit(failed + errored)


class PrintVersion(Command):
    user_options = []

    def initialize_options(self):
        self.version = None

    def finalize_options(self):
        self.version = _project_version()

    def run(self):
        print(self.version)


class AnalyticsCheckCommand(Command):
    description = "Run Polars/Parquet/DuckDB compatibility smoke check"
    user_options = []

    def initialize_options(self):
        pass

    def finalize_options(self):
        pass

    def run(self):
        try:
            import duckdb
            import polars as pl
        except Exception as exc:
            raise SystemExit(
                "analyticscheck requires polars and duckdb. "
                "Install with: pip install -e ."
            ) from exc

        with TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            parquet_file = tmp_path / "smoke.parquet"
            pl.DataFrame({"pickup_location_id": [1, 1, 2]}).write_parquet(parquet_file)

            polars_rows = pl.scan_parquet(str(parquet_file)).select(pl.len()).collect().item()
            con = duckdb.connect(database=":memory:")
            try:
                duckdb_rows = con.execute("select count(*) from read_parquet(?)", [str(parquet_file)]).fetchone()[0]
            finally:
                con.close()
            if polars_rows != 3 or duckdb_rows != 3:
                raise SystemExit(f"Unexpected Parquet row counts: polars={polars_rows} duckdb={duckdb_rows}")

        print("analyticscheck: ok")


class CleanCommand(Command):
    """
    Remove all build files and all compiled files
    =============================================

    Remove everything from build, including that
    directory, and all .pyc files
    """

    user_options = [("verbose", "v", "produce verbose output")]

    def initialize_options(self):
        self._files_to_delete = []
        self._dirs_to_delete = []

        for root, dirs, files in os.walk("."):
            for f in files:
                if f.endswith(".pyc"):
                    self._files_to_delete.append(pjoin(root, f))
        for target in ("build", "dist", pjoin("src", "taxiquery.egg-info")):
            for root, dirs, files in os.walk(pjoin(target)):
                for f in files:
                    self._files_to_delete.append(pjoin(root, f))
                for d in dirs:
                    self._dirs_to_delete.append(pjoin(root, d))
            self._dirs_to_delete.append(target)
        # reverse dir list to remove children before parents
        self._dirs_to_delete = list(reversed(self._dirs_to_delete))

        self.verbose = 0

    def finalize_options(self):
        pass

    def run(self):
        for clean_me in self._files_to_delete:
            if self.dry_run:
                logging.info("Would have unlinked %s", clean_me)
            else:
                try:
                    self.announce("Deleting " + clean_me, level=2)
                    os.unlink(clean_me)
                except OSError:
                    logging.warning("Failed to delete file %s", clean_me)
        for clean_me in self._dirs_to_delete:
            if self.dry_run:
                logging.info("Would have rmdir'ed %s", clean_me)
            else:
                if os.path.exists(clean_me):
                    try:
                        self.announce("Going to remove " + clean_me, level=2)
                        os.rmdir(clean_me)
                    except OSError:
                        logging.warning("Failed to delete dir %s", clean_me)
                elif clean_me != "build":
                    logging.warning("%s does not exist", clean_me)


setup(
    cmdclass={
        "clean": CleanCommand,
        "test": TestCommand,
        "version": PrintVersion,
        "analyticscheck": AnalyticsCheckCommand,
    },
)
