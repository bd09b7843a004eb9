"""Lazy access to the partitioned trip dataset.

Nothing here reads row data: the handle only scans Parquet footers for the
schema, and the row count is an aggregate pushed down to Parquet metadata.
"""

from __future__ import annotations

from functools import cached_property
import logging
from pathlib import Path

from taxiquery.config import get_runtime_defaults
from taxiquery.errors import DatasetNotFoundError, DatasetSchemaError, EngineError
from taxiquery.util.deps import require_polars
from taxiquery.util.logging import log_structured_event

LOG = logging.getLogger(__name__)
PARQUET_SUFFIX = ".parquet"


class TripDataset:
    def __init__(self, path: Path, files: tuple[Path, ...], *, source: str, hive_partitioning: bool):
        self.path = path
        self.files = files
        self.source = source
        self.hive_partitioning = hive_partitioning

    def __repr__(self):
        return f"<TripDataset path={str(self.path)!r} files={len(self.files)}>"

    def lazy(self):
        """Return a fresh LazyFrame over every partition file."""
        pl = require_polars("TripDataset.lazy")
        return pl.scan_parquet(self.source, hive_partitioning=self.hive_partitioning)

    @cached_property
    def schema(self) -> dict:
        pl = require_polars("TripDataset.schema")
        try:
            return dict(self.lazy().collect_schema())
        except (pl.exceptions.PolarsError, OSError) as exc:
            raise DatasetSchemaError(f"Cannot read Parquet schema under {self.path}", exc) from exc

    @property
    def columns(self) -> list[str]:
        return list(self.schema)

    @property
    def column_count(self) -> int:
        return len(self.schema)

    @cached_property
    def row_count(self) -> int:
        pl = require_polars("TripDataset.row_count")
        try:
            return int(self.lazy().select(pl.len()).collect().item())
        except (pl.exceptions.PolarsError, OSError) as exc:
            raise EngineError(f"Cannot count rows under {self.path}", exc) from exc

    def require_columns(self, *names: str) -> None:
        missing = [name for name in names if name not in self.schema]
        if missing:
            raise DatasetSchemaError(
                f"Dataset at {self.path} is missing column(s) {', '.join(missing)}; "
                f"available: {', '.join(self.columns)}"
            )


def _discover_files(path: Path, file_glob: str) -> tuple[Path, ...]:
    if path.is_file():
        return (path,) if path.suffix == PARQUET_SUFFIX else ()
    return tuple(sorted(candidate for candidate in path.glob(file_glob) if candidate.is_file()))


def open_trip_dataset(
    path,
    *,
    hive_partitioning: bool | None = None,
    file_glob: str | None = None,
) -> TripDataset:
    """
    Open a directory of Parquet partitions (or a single Parquet file).

    Raises DatasetNotFoundError when the path is missing or holds no
    Parquet files.
    """
    dataset_defaults = get_runtime_defaults().dataset_defaults
    if hive_partitioning is None:
        hive_partitioning = dataset_defaults.hive_partitioning
    if file_glob is None:
        file_glob = dataset_defaults.file_glob

    path = Path(path).expanduser()
    if not path.exists():
        raise DatasetNotFoundError(f"Trip dataset path does not exist: {path}", path)
    files = _discover_files(path, file_glob)
    if not files:
        raise DatasetNotFoundError(f"No Parquet files found under {path} (glob {file_glob!r})", path)

    if path.is_file():
        source = str(path)
        # A lone file has no key=value directories to parse.
        hive_partitioning = False
    else:
        source = str(path / file_glob)

    dataset = TripDataset(path, files, source=source, hive_partitioning=bool(hive_partitioning))
    log_structured_event(
        LOG,
        logging.INFO,
        "trip_dataset_opened",
        path=str(path),
        files=len(files),
        hive_partitioning=dataset.hive_partitioning,
    )
    return dataset
