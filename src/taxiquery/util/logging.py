from __future__ import annotations

import logging
from uuid import uuid4

from taxiquery.util.json import json_dumps

# Field names containing any of these are masked, e.g. a MotherDuck token in a DuckDB DSN.
_SENSITIVE_FIELD_TOKENS = ("token", "secret", "password", "api_key")
_TRUNCATED_SUFFIX = "...<truncated>"
_MAX_LOG_STRING_CHARS = 2048
JOB_ID_LEN = 12


def _sanitize_log_value(key: str, value):
    lowered = str(key).strip().lower()
    if any(token in lowered for token in _SENSITIVE_FIELD_TOKENS):
        return "<redacted>"
    if isinstance(value, str) and len(value) > _MAX_LOG_STRING_CHARS:
        return value[:_MAX_LOG_STRING_CHARS] + _TRUNCATED_SUFFIX
    return value


def new_job_id(prefix: str | None = None) -> str:
    """Short run identifier shared by every event of one analysis."""
    token = uuid4().hex[:JOB_ID_LEN]
    cleaned = str(prefix or "").strip()
    return f"{cleaned}_{token}" if cleaned else token


def log_structured_event(logger: logging.Logger, level: int, event: str, **fields) -> dict[str, object]:
    """
    Log ``event`` and its fields as one JSON object and return the payload.

    ``None`` fields are dropped; the payload is built even when ``level`` is
    disabled so callers can reuse it.
    """
    payload: dict[str, object] = {"event": str(event)}
    payload.update({k: _sanitize_log_value(k, v) for k, v in fields.items() if v is not None})
    if logger.isEnabledFor(level):
        logger.log(level, json_dumps(payload))
    return payload
