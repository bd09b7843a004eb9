from taxiquery.config.loader import RUNTIME_DEFAULTS_ENV_VAR
from taxiquery.config.runtime_defaults import (
    DatasetDefaults,
    EngineDefaults,
    RUNTIME_DEFAULTS_SCHEMA_VERSION,
    ReportDefaults,
    RuntimeDefaults,
    clear_runtime_defaults_cache,
    get_runtime_defaults,
    parse_runtime_defaults,
    reset_runtime_defaults_load_telemetry,
    runtime_defaults_load_telemetry,
)

__all__ = [
    "RUNTIME_DEFAULTS_ENV_VAR",
    "DatasetDefaults",
    "EngineDefaults",
    "RUNTIME_DEFAULTS_SCHEMA_VERSION",
    "ReportDefaults",
    "RuntimeDefaults",
    "parse_runtime_defaults",
    "get_runtime_defaults",
    "clear_runtime_defaults_cache",
    "runtime_defaults_load_telemetry",
    "reset_runtime_defaults_load_telemetry",
]
