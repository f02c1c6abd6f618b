"""
Time grain selection and ISO8601 duration conversion.

Azure Monitor only accepts a fixed set of aggregation intervals ("time
grains"), and some metrics support just a subset of them. When a query asks
for the ``auto`` grain, the dashboard's sampling interval is snapped to the
closest allowed grain and rendered as an ISO8601 duration (``PT5M``).
"""

import logging
import re
from typing import Sequence, Tuple

from ...errors import ConfigError

logger = logging.getLogger(__name__)

AUTO_TIME_GRAIN = "auto"

# 1m, 5m, 15m, 30m, 1h, 6h, 12h, 1d in milliseconds
DEFAULT_ALLOWED_INTERVALS_MS: Tuple[int, ...] = (
    60_000,
    300_000,
    900_000,
    1_800_000,
    3_600_000,
    21_600_000,
    43_200_000,
    86_400_000,
)

# Largest unit first so that 3600000 renders as PT1H rather than PT60M
_DURATION_UNITS = (
    (86_400_000, "D"),
    (3_600_000, "H"),
    (60_000, "M"),
    (1_000, "S"),
)

_ISO8601_RE = re.compile(
    r"^P(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


def find_closest_allowed_interval_ms(
    interval_ms: int,
    allowed: Sequence[int] = (),
    default: Sequence[int] = DEFAULT_ALLOWED_INTERVALS_MS,
) -> int:
    """
    Snap a sampling interval to an allowed time grain.

    Parameters
    ----------
    interval_ms : int
        Requested sampling interval in milliseconds
    allowed : Sequence[int]
        Metric-specific allowed grains in ascending order. When empty the
        ``default`` ladder is used instead.
    default : Sequence[int]
        Fallback ladder in ascending order

    Returns
    -------
    int
        The smallest allowed grain that is >= ``interval_ms``, or the largest
        grain when ``interval_ms`` exceeds all of them

    Examples
    --------
    >>> find_closest_allowed_interval_ms(100000, [60000, 300000, 900000])
    300000
    >>> find_closest_allowed_interval_ms(2000000, [60000, 300000, 900000])
    900000
    """
    ladder = list(allowed) if allowed else list(default)
    if not ladder:
        raise ConfigError("No allowed time grains to choose from")

    closest = ladder[0]
    for i, candidate in enumerate(ladder):
        if interval_ms > candidate:
            closest = ladder[i + 1] if i + 1 < len(ladder) else candidate
    return closest


def create_iso8601_duration(interval_ms: int) -> str:
    """
    Render a millisecond interval as an ISO8601 duration.

    Uses the largest unit that divides the interval exactly.

    Raises
    ------
    ConfigError
        If the interval is not a positive whole number of seconds

    Examples
    --------
    >>> create_iso8601_duration(60000)
    'PT1M'
    >>> create_iso8601_duration(86400000)
    'P1D'
    """
    if interval_ms <= 0:
        raise ConfigError(
            f"Time grain must be positive, got {interval_ms}ms", interval_ms
        )
    for unit_ms, designator in _DURATION_UNITS:
        if interval_ms % unit_ms == 0:
            amount = interval_ms // unit_ms
            if designator == "D":
                return f"P{amount}D"
            return f"PT{amount}{designator}"
    raise ConfigError(
        f"Time grain of {interval_ms}ms is not a whole number of seconds",
        interval_ms,
    )


def parse_iso8601_duration(value: str) -> int:
    """
    Convert an ISO8601 duration (``PT1M``, ``P1D``, ``PT1H30M``) to milliseconds.

    Raises
    ------
    ConfigError
        If the value is not a supported duration or is zero length
    """
    match = _ISO8601_RE.match(value.strip().upper()) if value else None
    if not match or not any(match.groupdict().values()):
        raise ConfigError(f"Invalid time grain: {value!r}", value)
    parts = {k: int(v) if v else 0 for k, v in match.groupdict().items()}
    total = (
        parts["days"] * 86_400_000
        + parts["hours"] * 3_600_000
        + parts["minutes"] * 60_000
        + parts["seconds"] * 1_000
    )
    if total <= 0:
        raise ConfigError(f"Invalid time grain: {value!r}", value)
    return total


def resolve_time_grain(interval_ms: int, allowed: Sequence[int] = ()) -> str:
    """Pick the ``auto`` time grain for a sampling interval."""
    closest = find_closest_allowed_interval_ms(interval_ms, allowed)
    grain = create_iso8601_duration(closest)
    logger.debug(
        "timegrain.auto",
        extra={"interval_ms": interval_ms, "closest_ms": closest, "grain": grain},
    )
    return grain
