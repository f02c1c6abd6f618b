"""Dashboard query model parsing.

Dashboards send each query as loosely structured JSON::

    {
      "refId": "A",
      "intervalMs": 60000,
      "subscription": "...",          # single-resource mode
      "subscriptions": ["...", ...],  # cross-resource mode
      "azureMonitor": {
        "queryMode": "crossResource",
        "data": {"crossResource": {...}, "singleResource": {...}}
      }
    }

Older dashboards omit ``queryMode`` and keep the single-resource fields
directly on ``azureMonitor``. This module validates that shape at the
boundary and turns it into a typed :data:`QuerySpec`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import QueryValidationError
from .models import (
    CROSS_RESOURCE,
    SINGLE_RESOURCE,
    CrossResourceSpec,
    QuerySpec,
    SingleResourceSpec,
)
from .utils.timegrain import parse_iso8601_duration

logger = logging.getLogger(__name__)


def _stringify_ids(value: Any) -> Any:
    # Subscription ids may be sent as JSON numbers
    if isinstance(value, list):
        return [str(v) for v in value]
    return value


class AzureMonitorData(BaseModel):
    """Mode payload as sent by the dashboard (camelCase wire names)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    resource_group: str = Field("", alias="resourceGroup")
    metric_definition: str = Field("", alias="metricDefinition")
    resource_name: str = Field("", alias="resourceName")
    metric_name: str = Field("", alias="metricName")
    metric_namespace: str = Field("", alias="metricNamespace")
    aggregation: str = ""
    dimension: str = ""
    dimension_filter: str = Field("", alias="dimensionFilter")
    time_grain: str = Field("", alias="timeGrain")
    allowed_time_grains_ms: List[int] = Field(
        default_factory=list, alias="allowedTimeGrainsMs"
    )
    alias: str = ""
    resource_groups: List[str] = Field(default_factory=list, alias="resourceGroups")
    locations: List[str] = Field(default_factory=list)
    subscriptions: List[str] = Field(default_factory=list)

    @field_validator("subscriptions", mode="before")
    @classmethod
    def _stringify_subscriptions(cls, value: Any) -> Any:
        return _stringify_ids(value)

    @field_validator("allowed_time_grains_ms", mode="before")
    @classmethod
    def _coerce_grains(cls, value: Any) -> Any:
        # Grains may arrive as ISO durations ("PT5M") instead of milliseconds
        if value is None:
            return []
        if isinstance(value, list):
            return [
                parse_iso8601_duration(v)
                if isinstance(v, str) and v.upper().startswith("P")
                else v
                for v in value
            ]
        return value


class AzureMonitorTarget(AzureMonitorData):
    """The ``azureMonitor`` object: legacy flat payload plus per-mode data."""

    query_mode: str = Field("", alias="queryMode")
    data: Dict[str, AzureMonitorData] = Field(default_factory=dict)


class DashboardQuery(BaseModel):
    """One query from the dashboard request."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    ref_id: str = Field("", alias="refId")
    interval_ms: int = Field(0, alias="intervalMs")
    subscription: str = ""
    subscriptions: List[str] = Field(default_factory=list)
    azure_monitor: AzureMonitorTarget = Field(..., alias="azureMonitor")

    @field_validator("subscriptions", mode="before")
    @classmethod
    def _stringify_subscriptions(cls, value: Any) -> Any:
        return _stringify_ids(value)


def parse_query(
    raw: Dict[str, Any], default_subscription: str = ""
) -> Optional[QuerySpec]:
    """Parse one dashboard query into a typed spec.

    Parameters
    ----------
    raw: Dict[str, Any]
        Query JSON as sent by the dashboard.
    default_subscription: str
        Datasource default used when a single-resource query names none.

    Returns
    -------
    Optional[QuerySpec]
        The typed spec, or ``None`` when ``queryMode`` is an unrecognized
        non-empty string (such queries compile to nothing).

    Raises
    ------
    QueryValidationError
        If the query does not have the expected shape.
    """
    ref_id = str(raw.get("refId", "")) if isinstance(raw, dict) else ""
    try:
        query = DashboardQuery.model_validate(raw)
    except ValidationError as exc:
        raise QueryValidationError(
            f"Invalid query format: {exc.errors()[0]['msg']}", ref_id=ref_id
        ) from exc

    target = query.azure_monitor
    mode = target.query_mode or SINGLE_RESOURCE
    if not target.query_mode:
        payload: AzureMonitorData = target
    elif mode in (SINGLE_RESOURCE, CROSS_RESOURCE):
        payload = target.data.get(mode, AzureMonitorData())
    else:
        logger.info(
            "query_model.unknown_mode",
            extra={"ref_id": query.ref_id, "query_mode": mode},
        )
        return None

    shared = {
        "ref_id": query.ref_id,
        "interval_ms": query.interval_ms,
        "metric_name": payload.metric_name,
        "metric_namespace": payload.metric_namespace,
        "aggregation": payload.aggregation,
        "dimension": payload.dimension,
        "dimension_filter": payload.dimension_filter,
        "time_grain": payload.time_grain,
        "allowed_time_grains_ms": payload.allowed_time_grains_ms,
        "alias": payload.alias,
    }
    try:
        if mode == SINGLE_RESOURCE:
            return SingleResourceSpec(
                subscription=query.subscription or default_subscription,
                resource_group=payload.resource_group,
                metric_definition=payload.metric_definition,
                resource_name=payload.resource_name,
                **shared,
            )
        return CrossResourceSpec(
            subscriptions=query.subscriptions or payload.subscriptions,
            resource_groups=payload.resource_groups,
            locations=payload.locations,
            metric_definition=payload.metric_definition,
            **shared,
        )
    except ValidationError as exc:
        raise QueryValidationError(
            f"Invalid query format: {exc.errors()[0]['msg']}", ref_id=query.ref_id
        ) from exc


def parse_queries(
    raw_queries: Iterable[Union[Dict[str, Any], Any]], default_subscription: str = ""
) -> List[QuerySpec]:
    """Parse a batch of dashboard queries, skipping unknown query modes."""
    specs: List[QuerySpec] = []
    for raw in raw_queries:
        if not isinstance(raw, dict):
            raise QueryValidationError("Invalid query format: expected an object")
        spec = parse_query(raw, default_subscription)
        if spec is not None:
            specs.append(spec)
    return specs
