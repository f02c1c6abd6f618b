"""Metrics client interfaces and registry."""

from __future__ import annotations

import logging
from typing import Dict, Protocol

from ..domain.models import CompiledQuery
from ..schemas.azure_monitor import MetricsResponse, ResourcesResponse


class MetricsClient(Protocol):
    """Protocol for Azure Monitor clients.

    Implementations send already-compiled requests to the API (or a proxy in
    front of it) and return validated responses. Authentication is the
    implementation's concern.
    """

    async def get_metrics(self, query: CompiledQuery) -> MetricsResponse:
        """Execute a compiled metrics query."""
        raise NotImplementedError

    async def list_resources(self, subscription_id: str) -> ResourcesResponse:
        """List every resource in a subscription."""
        raise NotImplementedError


_clients: Dict[str, MetricsClient] = {}


def register_client(datasource_id: str, client: MetricsClient) -> None:
    """Register a client instance under a logical `datasource_id`."""
    _clients[datasource_id] = client


def get_client(datasource_id: str) -> MetricsClient:
    """Retrieve a registered client by `datasource_id`."""
    return _clients[datasource_id]


def get_available_datasource_ids() -> list[str]:
    """Get list of registered datasource ids."""
    return list(_clients.keys())


def log_client_status() -> None:
    """Log which datasources have a configured client."""
    logger = logging.getLogger(__name__)

    if not _clients:
        logger.warning(
            "No Azure Monitor datasources configured. Set AZMONITOR_CONFIG to a "
            "JSON file with a 'datasources' mapping."
        )
        return

    logger.info(
        "Azure Monitor datasources configured: %s",
        ", ".join(f"'{ds_id}'" for ds_id in _clients),
    )


def reset_clients() -> None:
    """Test-only helper to clear registered clients."""
    _clients.clear()
