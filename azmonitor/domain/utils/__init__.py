"""
Shared utilities for query compilation and normalization.

Modules
-------
timestamps
    Time range parsing (epoch ms, ISO8601, ``now-6h``) and RFC3339 /
    epoch-millisecond conversion
timegrain
    Automatic time grain selection and ISO8601 duration conversion
"""

__all__ = []
