from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import logging
from typing import Any, Mapping

from taxiquery.config.loader import (
    load_packaged_runtime_defaults_detailed,
    load_runtime_defaults_override_detailed,
)
from taxiquery.util.logging import log_structured_event

_MAX_CONFIG_STRING_LENGTH = 256
_MAX_CONFIG_INT = 10_000
RUNTIME_DEFAULTS_SCHEMA_VERSION = 1
_RUNTIME_DEFAULTS_LOG = logging.getLogger("taxiquery.config.runtime_defaults")
_RUNTIME_DEFAULTS_LOAD_TELEMETRY = {
    "source": "unknown",
    "fallback_activations": 0,
    "error_kind": None,
    "schema_status": "unknown",
}


@dataclass(frozen=True)
class DatasetDefaults:
    pickup_column: str = "pickup_location_id"
    hive_partitioning: bool = True
    file_glob: str = "**/*.parquet"
    trips_table: str = "nyc_taxi"
    zones_table: str = "zone_map"


@dataclass(frozen=True)
class EngineDefaults:
    duckdb_database: str = ":memory:"
    duckdb_threads: int | None = None


@dataclass(frozen=True)
class ReportDefaults:
    title: str = "Trips by pickup borough: Polars and DuckDB"
    strict_parity: bool = True
    repetitions: int = 1
    seconds_precision: int = 3


@dataclass(frozen=True)
class RuntimeDefaults:
    dataset_defaults: DatasetDefaults
    engine_defaults: EngineDefaults
    report_defaults: ReportDefaults


_BUILTIN_RUNTIME_DEFAULTS = RuntimeDefaults(
    dataset_defaults=DatasetDefaults(),
    engine_defaults=EngineDefaults(),
    report_defaults=ReportDefaults(),
)


def _set_runtime_defaults_telemetry(
    *,
    source: str,
    error_kind: str | None,
    schema_status: str,
    used_fallback: bool,
) -> None:
    if used_fallback:
        _RUNTIME_DEFAULTS_LOAD_TELEMETRY["fallback_activations"] = int(
            _RUNTIME_DEFAULTS_LOAD_TELEMETRY["fallback_activations"]
        ) + 1
    _RUNTIME_DEFAULTS_LOAD_TELEMETRY["source"] = source
    _RUNTIME_DEFAULTS_LOAD_TELEMETRY["error_kind"] = error_kind
    _RUNTIME_DEFAULTS_LOAD_TELEMETRY["schema_status"] = schema_status


def runtime_defaults_load_telemetry() -> dict[str, object]:
    return dict(_RUNTIME_DEFAULTS_LOAD_TELEMETRY)


def reset_runtime_defaults_load_telemetry() -> None:
    _RUNTIME_DEFAULTS_LOAD_TELEMETRY["source"] = "unknown"
    _RUNTIME_DEFAULTS_LOAD_TELEMETRY["fallback_activations"] = 0
    _RUNTIME_DEFAULTS_LOAD_TELEMETRY["error_kind"] = None
    _RUNTIME_DEFAULTS_LOAD_TELEMETRY["schema_status"] = "unknown"


def _record_source(source: str, *, error_kind: str | None, schema_status: str, used_fallback: bool) -> None:
    _set_runtime_defaults_telemetry(
        source=source,
        error_kind=error_kind,
        schema_status=schema_status,
        used_fallback=used_fallback,
    )
    level = logging.WARNING if used_fallback else logging.DEBUG
    log_structured_event(
        _RUNTIME_DEFAULTS_LOG,
        level,
        "runtime_defaults_source",
        source=source,
        schema_status=schema_status,
        error_kind=error_kind,
        used_fallback=bool(used_fallback),
        fallback_activations=int(_RUNTIME_DEFAULTS_LOAD_TELEMETRY["fallback_activations"]),
    )


def _to_mapping(value: Any) -> Mapping[str, Any]:
    if isinstance(value, Mapping):
        return value
    return {}


def _schema_version(payload: Mapping[str, Any]) -> int | None:
    raw = _to_mapping(payload.get("meta")).get("schema_version")
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _schema_status(payload: Mapping[str, Any], *, require_schema: bool) -> tuple[bool, str]:
    version = _schema_version(payload)
    if version is None:
        if require_schema:
            return False, "missing"
        return True, "absent"
    if version != int(RUNTIME_DEFAULTS_SCHEMA_VERSION):
        return False, "mismatch"
    return True, "ok"


def _parse_positive_int(raw: Any, default: int) -> int:
    if isinstance(raw, bool):
        return int(default)
    try:
        parsed = int(raw)
    except (TypeError, ValueError):
        return int(default)
    if parsed <= 0:
        return int(default)
    return min(parsed, _MAX_CONFIG_INT)


def _parse_non_negative_int(raw: Any, default: int) -> int:
    if isinstance(raw, bool):
        return int(default)
    try:
        parsed = int(raw)
    except (TypeError, ValueError):
        return int(default)
    if parsed < 0:
        return int(default)
    return min(parsed, _MAX_CONFIG_INT)


def _parse_optional_positive_int(raw: Any, default: int | None) -> int | None:
    if raw is None:
        return default
    value = str(raw).strip().lower()
    if len(value) > _MAX_CONFIG_STRING_LENGTH:
        return default
    if value in {"", "none", "null", "auto"}:
        return None
    try:
        parsed = int(value)
    except ValueError:
        return default
    if parsed <= 0:
        return default
    return min(parsed, _MAX_CONFIG_INT)


def _parse_bool(raw: Any, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        value = raw.strip().lower()
        if value in {"1", "true", "yes", "on"}:
            return True
        if value in {"0", "false", "no", "off"}:
            return False
    return bool(default)


def _parse_small_string(raw: Any, default: str) -> str:
    if raw is None:
        return str(default)
    value = str(raw).strip()
    if not value:
        return str(default)
    if len(value) > _MAX_CONFIG_STRING_LENGTH:
        return str(default)
    return value


def _parse_identifier(raw: Any, default: str) -> str:
    value = _parse_small_string(raw, default)
    return value if value.isidentifier() else str(default)


def parse_runtime_defaults(payload: Mapping[str, Any] | None, *, base: RuntimeDefaults | None = None) -> RuntimeDefaults:
    root = _to_mapping(payload)
    runtime_base = _BUILTIN_RUNTIME_DEFAULTS if base is None else base

    dataset_raw = _to_mapping(root.get("dataset_defaults"))
    dataset_builtin = runtime_base.dataset_defaults
    dataset_defaults = DatasetDefaults(
        pickup_column=_parse_small_string(
            dataset_raw.get("pickup_column"),
            dataset_builtin.pickup_column,
        ),
        hive_partitioning=_parse_bool(
            dataset_raw.get("hive_partitioning"),
            dataset_builtin.hive_partitioning,
        ),
        file_glob=_parse_small_string(
            dataset_raw.get("file_glob"),
            dataset_builtin.file_glob,
        ),
        trips_table=_parse_identifier(
            dataset_raw.get("trips_table"),
            dataset_builtin.trips_table,
        ),
        zones_table=_parse_identifier(
            dataset_raw.get("zones_table"),
            dataset_builtin.zones_table,
        ),
    )

    engine_raw = _to_mapping(root.get("engine_defaults"))
    engine_builtin = runtime_base.engine_defaults
    engine_defaults = EngineDefaults(
        duckdb_database=_parse_small_string(
            engine_raw.get("duckdb_database"),
            engine_builtin.duckdb_database,
        ),
        duckdb_threads=_parse_optional_positive_int(
            engine_raw.get("duckdb_threads"),
            engine_builtin.duckdb_threads,
        ),
    )

    report_raw = _to_mapping(root.get("report_defaults"))
    report_builtin = runtime_base.report_defaults
    report_defaults = ReportDefaults(
        title=_parse_small_string(
            report_raw.get("title"),
            report_builtin.title,
        ),
        strict_parity=_parse_bool(
            report_raw.get("strict_parity"),
            report_builtin.strict_parity,
        ),
        repetitions=_parse_positive_int(
            report_raw.get("repetitions"),
            report_builtin.repetitions,
        ),
        seconds_precision=_parse_non_negative_int(
            report_raw.get("seconds_precision"),
            report_builtin.seconds_precision,
        ),
    )

    return RuntimeDefaults(
        dataset_defaults=dataset_defaults,
        engine_defaults=engine_defaults,
        report_defaults=report_defaults,
    )


@lru_cache(maxsize=1)
def get_runtime_defaults() -> RuntimeDefaults:
    packaged = load_packaged_runtime_defaults_detailed()
    packaged_payload = packaged.get("payload")
    packaged_error = packaged.get("error_kind")
    if not packaged.get("ok", True) or not isinstance(packaged_payload, Mapping):
        fallback_reason = f"packaged_{packaged_error}" if isinstance(packaged_error, str) else "packaged_load_error"
        _record_source("builtin_fallback", error_kind=fallback_reason, schema_status="missing", used_fallback=True)
        return _BUILTIN_RUNTIME_DEFAULTS

    schema_ok, schema_state = _schema_status(packaged_payload, require_schema=True)
    if not schema_ok:
        fallback_reason = "missing_packaged_schema" if schema_state == "missing" else "packaged_schema_mismatch"
        _record_source("builtin_fallback", error_kind=fallback_reason, schema_status=schema_state, used_fallback=True)
        return _BUILTIN_RUNTIME_DEFAULTS

    parsed = parse_runtime_defaults(packaged_payload)
    source = "packaged_toml"
    error_kind = None

    override = load_runtime_defaults_override_detailed()
    if override is not None:
        override_payload = override.get("payload")
        override_error = override.get("error_kind")
        if override.get("ok", True) and isinstance(override_payload, Mapping):
            override_schema_ok, override_schema_state = _schema_status(override_payload, require_schema=False)
            schema_state = override_schema_state
            if override_schema_ok:
                parsed = parse_runtime_defaults(override_payload, base=parsed)
                source = "override_toml"
            else:
                error_kind = "override_schema_mismatch"
        else:
            error_kind = f"override_{override_error}" if isinstance(override_error, str) else "override_invalid_shape"
    _record_source(source, error_kind=error_kind, schema_status=schema_state, used_fallback=False)
    return parsed


def clear_runtime_defaults_cache() -> None:
    get_runtime_defaults.cache_clear()
