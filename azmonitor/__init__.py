"""
Azure Monitor query pipeline package.

This package compiles dashboard metric queries into Azure Monitor REST calls,
executes them, and normalizes the responses into named time series. See
README.md for usage.
"""

from .__version__ import __version__

__all__ = ["__version__"]
