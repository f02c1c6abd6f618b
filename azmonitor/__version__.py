"""
Version information for the Azure Monitor query pipeline.

The package version is read from pyproject.toml via importlib.metadata so
that there is a single source of truth for version management.
"""

try:
    from importlib.metadata import version

    __version__ = version("azure-monitor-query")
except Exception:
    # Fallback for development (package not installed)
    import tomllib
    from pathlib import Path

    try:
        pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            pyproject = tomllib.load(f)
            __version__ = pyproject["project"]["version"]
    except Exception:
        # Last resort fallback
        __version__ = "0.0.0-dev"

# Azure Monitor REST API version pinned for every request
API_VERSION = "2018-01-01"
