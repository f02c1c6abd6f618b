"""
Timestamp parsing and conversion utilities.

Provides parsing for the time range expressions dashboards send (epoch
milliseconds, ISO8601 strings, ``now`` and ``now-6h`` style relative
expressions) and the RFC3339 / epoch-millisecond conversions used when
building requests and emitting points.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

logger = logging.getLogger(__name__)

_RELATIVE_RE = re.compile(r"^now(?:\s*-\s*(\d+)\s*([smhdwMy]))?$")

# Months and years use calendar-agnostic approximations, like most dashboards
_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 7 * 86400,
    "M": 30 * 86400,
    "y": 365 * 86400,
}


def parse_timestamp(
    value: Optional[Union[str, int, float]], now: Optional[datetime] = None
) -> Optional[datetime]:
    """
    Parse a time range boundary from various formats.

    Supports:
    - Epoch milliseconds as a number or numeric string
    - ISO8601 strings (with or without 'Z' suffix)
    - ``now`` and ``now-<n><unit>`` with units s, m, h, d, w, M, y

    Parameters
    ----------
    value : str, int, float, or None
        The boundary to parse
    now : datetime, optional
        Reference time for relative expressions (defaults to current UTC time)

    Returns
    -------
    datetime or None
        Parsed datetime in UTC, or None if parsing fails

    Examples
    --------
    >>> parse_timestamp(1697385600000)
    datetime.datetime(2023, 10, 15, 16, 0, tzinfo=datetime.timezone.utc)
    >>> parse_timestamp("2025-10-15T12:00:00Z")
    datetime.datetime(2025, 10, 15, 12, 0, tzinfo=datetime.timezone.utc)
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        return _from_epoch_ms(value)

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    if text.lstrip("-").isdigit():
        return _from_epoch_ms(int(text))

    match = _RELATIVE_RE.match(text)
    if match:
        reference = now or datetime.now(timezone.utc)
        amount, unit = match.groups()
        if amount is None:
            return reference
        return reference - timedelta(seconds=int(amount) * _UNIT_SECONDS[unit])

    return _parse_iso8601(text)


def _from_epoch_ms(value: Union[int, float]) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        logger.warning(
            "timestamps.parse_epoch_failed",
            extra={"value": value, "error": "invalid timestamp"},
        )
        return None


def _parse_iso8601(value: str) -> Optional[datetime]:
    """
    Parse an ISO8601 timestamp string.

    Handles trailing 'Z' by converting to '+00:00'.
    """
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"

        dt = datetime.fromisoformat(value)

        # Ensure timezone awareness (default to UTC if naive)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)

        return dt.astimezone(timezone.utc)
    except (ValueError, TypeError):
        logger.warning(
            "timestamps.parse_iso8601_failed",
            extra={"value": value, "error": "invalid format"},
        )
        return None


def to_rfc3339(dt: datetime) -> str:
    """
    Format a datetime as RFC3339 in UTC with second precision and 'Z' suffix.

    Examples
    --------
    >>> to_rfc3339(datetime(2025, 10, 15, 12, 0, 0, 500, tzinfo=timezone.utc))
    '2025-10-15T12:00:00Z'
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def to_epoch_ms(dt: datetime) -> int:
    """Convert a datetime to whole epoch milliseconds (second resolution)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp()) * 1000
