"""Pytest configuration for test suite.

Ensures the project root is on ``sys.path`` so ``import azmonitor`` resolves
to the working tree regardless of the working directory pytest chooses, and
provides shared fixtures for fake API clients and payloads.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest


def _ensure_project_root_on_syspath() -> None:
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)
    if project_root_str not in sys.path:
        # Prepend to prefer local sources over site-packages
        sys.path.insert(0, project_root_str)


_ensure_project_root_on_syspath()

from azmonitor.adapters import reset_clients  # noqa: E402
from azmonitor.errors import APIError  # noqa: E402
from azmonitor.schemas.azure_monitor import (  # noqa: E402
    MetricsResponse,
    ResourcesResponse,
)


@pytest.fixture(autouse=True)
def reset_client_registry():
    """Reset the client registry around each test to avoid cross-test leakage."""
    reset_clients()
    yield
    reset_clients()


def metrics_payload(
    metric_name: str = "Percentage CPU",
    resource_id: str = (
        "/subscriptions/sub-1/resourceGroups/rg1/providers/"
        "Microsoft.Compute/virtualMachines/vm1/providers/Microsoft.Insights/"
        "metrics/Percentage CPU"
    ),
    timeseries: Optional[List[Dict[str, Any]]] = None,
    unit: str = "Percent",
) -> Dict[str, Any]:
    """Build a metrics response body in the API's wire format."""
    if timeseries is None:
        timeseries = [
            {
                "metadatavalues": [],
                "data": [
                    {"timeStamp": "2019-02-08T10:13:00Z", "average": 2.0875},
                    {"timeStamp": "2019-02-08T10:14:00Z", "average": 2.1525},
                ],
            }
        ]
    return {
        "cost": 0,
        "timespan": "2019-02-08T10:13:50Z/2019-02-08T16:13:50Z",
        "interval": "PT1M",
        "namespace": "Microsoft.Compute/virtualMachines",
        "resourceregion": "westus",
        "value": [
            {
                "id": resource_id,
                "type": "Microsoft.Insights/metrics",
                "name": {"value": metric_name, "localizedValue": metric_name},
                "unit": unit,
                "timeseries": timeseries,
            }
        ],
    }


class FakeMetricsClient:
    """In-memory MetricsClient returning canned responses.

    ``resources`` maps subscription id to a resources list body; ``metrics``
    maps resource name to a metrics body, or to an exception to raise
    (including ``asyncio.CancelledError``).
    """

    def __init__(
        self,
        resources: Optional[Dict[str, Any]] = None,
        metrics: Optional[Dict[str, Any]] = None,
        default_subscription: str = "",
    ) -> None:
        self.resources = resources or {}
        self.metrics = metrics or {}
        self.default_subscription = default_subscription
        self.resource_calls: List[str] = []
        self.metric_calls: List[Any] = []

    async def list_resources(self, subscription_id: str) -> ResourcesResponse:
        self.resource_calls.append(subscription_id)
        body = self.resources.get(subscription_id, {"value": []})
        if isinstance(body, BaseException):
            raise body
        return ResourcesResponse.model_validate(body)

    async def get_metrics(self, query) -> MetricsResponse:
        self.metric_calls.append(query)
        body = self.metrics.get(query.resource_name)
        if body is None:
            raise APIError(404, '{"code":"ResourceNotFound"}')
        if isinstance(body, BaseException):
            raise body
        return MetricsResponse.model_validate(body)


@pytest.fixture
def fake_client_cls():
    """Expose the fake client class to tests."""
    return FakeMetricsClient


@pytest.fixture
def make_metrics_payload():
    """Expose the metrics body builder to tests."""
    return metrics_payload
