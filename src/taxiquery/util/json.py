from __future__ import annotations

import orjson


def json_dumps(payload, *, indent: bool = False) -> str:
    """Serialize to text; non-JSON values such as paths and dtypes fall back to ``str``."""
    option = orjson.OPT_NON_STR_KEYS
    if indent:
        option |= orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS
    return orjson.dumps(payload, default=str, option=option).decode("utf-8")
