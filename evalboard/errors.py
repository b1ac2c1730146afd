"""Exception types raised by the report cache, fetch coordinator and comparisons."""

from typing import Any


class EvalboardError(Exception):
    """Base class for evalboard errors."""


class InvalidFilter(EvalboardError, ValueError):
    """A filter key is missing its experiment tracker or subject."""


class FetchFailed(EvalboardError):
    """The report-fetch collaborator rejected or returned a non-success result."""

    def __init__(self, message: str, *, filter_key: Any = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.filter_key = filter_key
        self.status_code = status_code


class CacheCorrupt(EvalboardError):
    """Persisted cache data could not be decoded."""


class InvalidComparison(EvalboardError, ValueError):
    """A comparison was requested over an unsupported number of reports."""
