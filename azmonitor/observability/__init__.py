"""Observability utilities: logging setup.

This module configures standard logging and integrates `structlog` so that
structured loggers share the same level filtering as the stdlib loggers.
"""

from __future__ import annotations

import logging

import structlog


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Parameters
    ----------
    level: str
        Logging level name (e.g., "DEBUG", "INFO"). Defaults to "INFO".

    Behavior
    --------
    - Initializes Python's logging with the requested level.
    - Configures structlog with a filtering bound logger.
    - Keeps HTTP client libraries at WARNING unless DEBUG is requested, so
      request URLs (which may carry subscription ids) stay out of INFO logs.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format=("%(asctime)s %(levelname)s %(name)s - %(message)s"),
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    transport_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for logger_name in ("httpx", "httpcore"):
        logging.getLogger(logger_name).setLevel(transport_level)

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
    )
