"""Locate and read the runtime defaults TOML (packaged file plus optional override)."""

from __future__ import annotations

from functools import lru_cache
from importlib import resources as importlib_resources
import os
from pathlib import Path
import tomllib

RUNTIME_DEFAULTS_ENV_VAR = "TAXIQUERY_RUNTIME_DEFAULTS_PATH"
_RESOURCE_PACKAGE = "taxiquery.config"
_RUNTIME_DEFAULTS_FILE = "defaults.toml"
_MAX_CONFIG_FILE_BYTES = 1_048_576


def _load_result(path, *, source: str, payload=None, error_kind: str | None = None, **extra) -> dict:
    return {
        "ok": error_kind is None,
        "payload": {} if payload is None else payload,
        "path": str(path),
        "source": source,
        "error_kind": error_kind,
        **extra,
    }


@lru_cache(maxsize=16)
def _parse_toml(path_str: str, mtime_ns: int, size_bytes: int) -> dict:
    # mtime and size are part of the cache key so an edited file is re-read.
    with open(path_str, "rb") as handle:
        return tomllib.load(handle)


def load_toml_detailed(path: Path, *, source: str = "toml") -> dict:
    """
    Read one TOML file without raising.

    The result's ``error_kind`` is one of ``missing``, ``unreadable``,
    ``oversized``, ``invalid_toml`` or ``invalid_shape``; ``None`` on success.
    """
    try:
        resolved = Path(path).expanduser().resolve()
        stat = resolved.stat()
    except FileNotFoundError:
        return _load_result(path, source=source, error_kind="missing")
    except OSError:
        return _load_result(path, source=source, error_kind="unreadable")
    if stat.st_size > _MAX_CONFIG_FILE_BYTES:
        return _load_result(resolved, source=source, error_kind="oversized", size_bytes=int(stat.st_size))
    try:
        loaded = _parse_toml(str(resolved), int(stat.st_mtime_ns), int(stat.st_size))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError, OSError):
        return _load_result(resolved, source=source, error_kind="invalid_toml")
    if not isinstance(loaded, dict):
        return _load_result(resolved, source=source, error_kind="invalid_shape")
    return _load_result(resolved, source=source, payload=loaded, size_bytes=int(stat.st_size))


def load_packaged_runtime_defaults_detailed() -> dict:
    resource = importlib_resources.files(_RESOURCE_PACKAGE).joinpath(_RUNTIME_DEFAULTS_FILE)
    with importlib_resources.as_file(resource) as path:
        return load_toml_detailed(path, source="packaged_toml")


def load_runtime_defaults_override_detailed() -> dict | None:
    override = os.getenv(RUNTIME_DEFAULTS_ENV_VAR, "").strip()
    if not override:
        return None
    return load_toml_detailed(Path(override), source="override_toml")
