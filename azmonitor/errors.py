"""Error taxonomy for the query pipeline.

Compile-stage errors (validation, config, discovery) abort a whole run.
Execution-stage errors for a single compiled query are captured on that
query's result by the pipeline and classified with :func:`classify_error`.
"""

from __future__ import annotations

from typing import Any, Optional


class AzureMonitorError(Exception):
    """Base class for all pipeline errors."""

    error_type = "unknown_error"


class QueryValidationError(AzureMonitorError):
    """Raised when a query model cannot be parsed into the expected shape.

    Attributes
    ----------
    ref_id: Optional[str]
        Correlation id of the offending query, when known.
    field_name: Optional[str]
        Name of the field that failed validation, when known.
    """

    error_type = "validation_error"

    def __init__(
        self,
        message: str,
        *,
        ref_id: Optional[str] = None,
        field_name: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.ref_id = ref_id
        self.field_name = field_name


class ConfigError(AzureMonitorError):
    """Raised for unsupported or invalid time grain values."""

    error_type = "config_error"

    def __init__(self, message: str, value: Any = None) -> None:
        super().__init__(message)
        self.value = value


class TransportError(AzureMonitorError):
    """Raised when the API cannot be reached (DNS, connect, read failures)."""

    error_type = "transport_error"


class APIError(AzureMonitorError):
    """Raised on a non-2xx response. The message is the raw response body."""

    error_type = "api_error"

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(body or f"HTTP {status_code}")
        self.status_code = status_code
        self.body = body


class ParseError(AzureMonitorError):
    """Raised when a response body is not valid JSON or has the wrong shape."""

    error_type = "parse_error"


def classify_error(exc: BaseException) -> str:
    """Classify an exception into a short error type string."""
    if isinstance(exc, AzureMonitorError):
        return exc.error_type
    return "unknown_error"
