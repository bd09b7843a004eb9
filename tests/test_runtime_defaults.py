from taxiquery.config import loader as loader_mod
from taxiquery.config import runtime_defaults as runtime_defaults_mod

SCHEMA_META = {"schema_version": runtime_defaults_mod.RUNTIME_DEFAULTS_SCHEMA_VERSION}


def _clear_defaults_state():
    runtime_defaults_mod.clear_runtime_defaults_cache()
    runtime_defaults_mod.reset_runtime_defaults_load_telemetry()


def test_packaged_defaults_file_is_valid():
    result = loader_mod.load_packaged_runtime_defaults_detailed()
    assert result["ok"] is True
    assert result["payload"]["meta"]["schema_version"] == runtime_defaults_mod.RUNTIME_DEFAULTS_SCHEMA_VERSION

    parsed = runtime_defaults_mod.parse_runtime_defaults(result["payload"])
    assert parsed.dataset_defaults.trips_table == "nyc_taxi"
    assert parsed.dataset_defaults.zones_table == "zone_map"
    assert parsed.engine_defaults.duckdb_database == ":memory:"
    assert parsed.engine_defaults.duckdb_threads is None
    assert parsed.report_defaults.strict_parity is True


def test_parse_runtime_defaults_rejects_bad_values():
    parsed = runtime_defaults_mod.parse_runtime_defaults(
        {
            "dataset_defaults": {"trips_table": "drop table;", "hive_partitioning": "off"},
            "engine_defaults": {"duckdb_threads": -3},
            "report_defaults": {"repetitions": 0, "strict_parity": "no", "seconds_precision": "x"},
        }
    )
    assert parsed.dataset_defaults.trips_table == "nyc_taxi"
    assert parsed.dataset_defaults.hive_partitioning is False
    assert parsed.engine_defaults.duckdb_threads is None
    assert parsed.report_defaults.repetitions == 1
    assert parsed.report_defaults.strict_parity is False
    assert parsed.report_defaults.seconds_precision == 3


def test_override_file_layers_over_packaged(monkeypatch, tmp_path):
    _clear_defaults_state()
    override = tmp_path / "override.toml"
    override.write_text(
        "[engine_defaults]\nduckdb_threads = 2\n\n[report_defaults]\nrepetitions = 3\n",
        encoding="utf-8",
    )
    monkeypatch.setenv(loader_mod.RUNTIME_DEFAULTS_ENV_VAR, str(override))

    defaults = runtime_defaults_mod.get_runtime_defaults()
    telemetry = runtime_defaults_mod.runtime_defaults_load_telemetry()
    _clear_defaults_state()

    assert defaults.engine_defaults.duckdb_threads == 2
    assert defaults.report_defaults.repetitions == 3
    assert defaults.dataset_defaults.pickup_column == "pickup_location_id"
    assert telemetry["source"] == "override_toml"
    assert telemetry["schema_status"] == "absent"


def test_invalid_override_falls_back_to_packaged(monkeypatch, tmp_path):
    _clear_defaults_state()
    override = tmp_path / "broken.toml"
    override.write_text("[report_defaults\n", encoding="utf-8")
    monkeypatch.setenv(loader_mod.RUNTIME_DEFAULTS_ENV_VAR, str(override))

    defaults = runtime_defaults_mod.get_runtime_defaults()
    telemetry = runtime_defaults_mod.runtime_defaults_load_telemetry()
    _clear_defaults_state()

    assert defaults.report_defaults.repetitions == 1
    assert telemetry["source"] == "packaged_toml"
    assert telemetry["error_kind"] == "override_invalid_toml"
    assert telemetry["fallback_activations"] == 0


def test_missing_packaged_schema_uses_builtin_fallback(monkeypatch):
    _clear_defaults_state()
    monkeypatch.setattr(
        runtime_defaults_mod,
        "load_packaged_runtime_defaults_detailed",
        lambda: {
            "source": "packaged_toml",
            "payload": {"report_defaults": {"repetitions": 9}},
            "error_kind": None,
        },
    )
    monkeypatch.setattr(runtime_defaults_mod, "load_runtime_defaults_override_detailed", lambda: None)

    defaults = runtime_defaults_mod.get_runtime_defaults()
    telemetry = runtime_defaults_mod.runtime_defaults_load_telemetry()
    _clear_defaults_state()

    assert defaults.report_defaults.repetitions == 1
    assert telemetry["source"] == "builtin_fallback"
    assert telemetry["error_kind"] == "missing_packaged_schema"
    assert telemetry["fallback_activations"] == 1


def test_packaged_payload_is_canonical(monkeypatch):
    _clear_defaults_state()
    monkeypatch.setattr(
        runtime_defaults_mod,
        "load_packaged_runtime_defaults_detailed",
        lambda: {
            "source": "packaged_toml",
            "payload": {"meta": SCHEMA_META, "dataset_defaults": {"pickup_column": "PULocationID"}},
            "error_kind": None,
        },
    )
    monkeypatch.setattr(runtime_defaults_mod, "load_runtime_defaults_override_detailed", lambda: None)

    defaults = runtime_defaults_mod.get_runtime_defaults()
    telemetry = runtime_defaults_mod.runtime_defaults_load_telemetry()
    _clear_defaults_state()

    assert defaults.dataset_defaults.pickup_column == "PULocationID"
    assert telemetry["source"] == "packaged_toml"
    assert telemetry["schema_status"] == "ok"


def test_load_toml_detailed_reports_missing(tmp_path):
    result = loader_mod.load_toml_detailed(tmp_path / "absent.toml")
    assert result["ok"] is False
    assert result["error_kind"] == "missing"
    assert result["payload"] == {}


def test_load_toml_detailed_rejects_oversized_file(monkeypatch, tmp_path):
    path = tmp_path / "big.toml"
    path.write_text("[report_defaults]\nrepetitions = 2\n", encoding="utf-8")
    monkeypatch.setattr(loader_mod, "_MAX_CONFIG_FILE_BYTES", 8)

    result = loader_mod.load_toml_detailed(path)
    assert result["ok"] is False
    assert result["error_kind"] == "oversized"


def test_load_toml_detailed_sees_edits(tmp_path):
    path = tmp_path / "edited.toml"
    path.write_text("[report_defaults]\nrepetitions = 2\n", encoding="utf-8")
    first = loader_mod.load_toml_detailed(path, source="override_toml")
    path.write_text("[report_defaults]\nrepetitions = 30\n", encoding="utf-8")
    second = loader_mod.load_toml_detailed(path, source="override_toml")

    assert first["source"] == "override_toml"
    assert first["payload"]["report_defaults"]["repetitions"] == 2
    assert second["payload"]["report_defaults"]["repetitions"] == 30
