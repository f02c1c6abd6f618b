"""Correlation id utilities for structured logging.

Holds the refId of the query currently being executed in a ContextVar so
that adapter calls made on its behalf can include the same ``ref_id`` in
their log records without threading it through every signature.
"""

from __future__ import annotations

from contextvars import ContextVar

_ref_id_var: ContextVar[str] = ContextVar("ref_id", default="")


def set_ref_id(ref_id: str) -> None:
    """Set the current query correlation id in a context variable."""

    _ref_id_var.set(ref_id)


def get_ref_id() -> str:
    """Return the current query correlation id, or empty string."""

    return _ref_id_var.get()
