"""Config models and loader.

This module defines Pydantic models for file- and environment-based
configuration. Datasource definitions live in a JSON file decoded with
`orjson`; process-level settings come from the environment (prefix
``AZMONITOR_``) or a local ``.env`` file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

import orjson
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatasourceConfig(BaseModel):
    """Connection settings for one Azure Monitor datasource.

    Attributes
    ----------
    url: str
        Base URL of the authenticating management proxy.
    cloud_name: str
        Route prefix on the proxy; requests go to
        ``{url}/{cloud_name}/subscriptions/...``.
    subscription_id: str
        Default subscription for single-resource queries that name none.
    api_key: Optional[str]
        Optional bearer token attached to every request.
    timeout_seconds: int
        HTTP request timeout in seconds.
    """

    url: str = Field(..., description="Base URL of the management proxy")
    cloud_name: str = Field("azuremonitor", description="Proxy route prefix")
    subscription_id: str = Field("", description="Default subscription id")
    api_key: Optional[str] = Field(None, description="Authentication token")
    timeout_seconds: int = Field(30, ge=1)


class AppConfig(BaseModel):
    """Top-level application configuration.

    Attributes
    ----------
    datasources: Dict[str, DatasourceConfig]
        Mapping from logical datasource id to connection settings.
    """

    datasources: Dict[str, DatasourceConfig] = Field(default_factory=dict)

    @staticmethod
    def load(path: Path) -> "AppConfig":
        """Load application config from a JSON file."""
        data = orjson.loads(path.read_bytes())
        return AppConfig.model_validate(data)


class EnvSettings(BaseSettings):
    """Environment-driven settings and .env support.

    Attributes
    ----------
    log_level: str
        Logging level name (e.g., "DEBUG", "INFO"). Defaults to "INFO".
    config: Optional[str]
        Path to the JSON datasource configuration file.
    http_token: Optional[str]
        Bearer token required by the HTTP surface. Auth is disabled when unset.
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="AZMONITOR_")

    log_level: str = Field("INFO")
    config: Optional[str] = None
    http_token: Optional[str] = None
