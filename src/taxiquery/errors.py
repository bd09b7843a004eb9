class ReadableException(Exception):
    def __init__(self, message, cause=None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self):
        if self.cause is None:
            return str(self.message)
        return f"{self.message}: {self.cause!r}"


class TaxiQueryError(ReadableException):
    pass


class DatasetNotFoundError(TaxiQueryError):
    def __init__(self, message, path, cause=None):
        self.path = path
        super().__init__(message, cause)


class LookupNotFoundError(DatasetNotFoundError):
    pass


class DatasetSchemaError(TaxiQueryError):
    pass


class EngineError(TaxiQueryError):
    pass


class ResultMismatchError(TaxiQueryError):
    """Raised when the Polars and DuckDB aggregates disagree."""

    def __init__(self, message, mismatches=None, cause=None):
        self.mismatches = list(mismatches or [])
        super().__init__(message, cause)
