from taxiquery.util.deps import quote_sql_identifier, quote_sql_string, require_duckdb, require_polars
from taxiquery.util.logging import log_structured_event, new_job_id

__all__ = [
    "log_structured_event",
    "new_job_id",
    "quote_sql_identifier",
    "quote_sql_string",
    "require_duckdb",
    "require_polars",
]
