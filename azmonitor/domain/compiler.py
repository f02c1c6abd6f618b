"""Query compilation.

Turns typed query specs into fully parameterized metrics requests. A
single-resource spec compiles to exactly one request; a cross-resource spec
first discovers its target resources and compiles one request per resource,
all sharing the spec's correlation id.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterable, List

from ..__version__ import API_VERSION
from .discovery import discover_resources
from .models import (
    CompiledQuery,
    CrossResourceSpec,
    QuerySpec,
    ResourceFilter,
    SingleResourceSpec,
    TimeRange,
)
from .utils.timegrain import AUTO_TIME_GRAIN, resolve_time_grain
from .utils.timestamps import to_rfc3339

if TYPE_CHECKING:
    from ..adapters import MetricsClient

logger = logging.getLogger(__name__)

NO_DIMENSION = "None"


def build_metrics_url(
    subscription: str, resource_group: str, metric_definition: str, resource_name: str
) -> str:
    """Path of the metrics endpoint for one resource, relative to ``/subscriptions``."""
    return (
        f"{subscription}/resourceGroups/{resource_group}/providers/"
        f"{metric_definition}/{resource_name}/providers/microsoft.insights/metrics"
    )


def build_dimension_filter(dimension: str, dimension_filter: str) -> str:
    """Return the ``$filter`` expression, or ``""`` when it must be omitted."""
    dimension = dimension.strip()
    dimension_filter = dimension_filter.strip()
    if dimension and dimension_filter and dimension != NO_DIMENSION:
        return f"{dimension} eq '{dimension_filter}'"
    return ""


def build_params(spec: QuerySpec, time_range: TimeRange) -> Dict[str, str]:
    """Build the metrics query-string parameters for a spec.

    The ``interval`` is the spec's explicit time grain, passed through as
    given, or the automatically selected grain when the spec asks for
    ``auto``. A grain the API rejects comes back as that query's error.

    Raises
    ------
    ConfigError
        If an ``auto`` grain cannot be resolved.
    """
    time_grain = spec.time_grain
    if time_grain == AUTO_TIME_GRAIN:
        time_grain = resolve_time_grain(spec.interval_ms, spec.allowed_time_grains_ms)

    params: Dict[str, str] = {
        "api-version": API_VERSION,
        "timespan": f"{to_rfc3339(time_range.start)}/{to_rfc3339(time_range.end)}",
        "interval": time_grain,
        "aggregation": spec.aggregation,
        "metricnames": spec.metric_name,
    }
    if spec.metric_namespace:
        params["metricnamespace"] = spec.metric_namespace

    dimension_filter = build_dimension_filter(spec.dimension, spec.dimension_filter)
    if dimension_filter:
        params["$filter"] = dimension_filter
    return params


class QueryCompiler:
    """Compile query specs into :class:`CompiledQuery` objects.

    Parameters
    ----------
    client: MetricsClient
        Used for resource discovery in cross-resource mode.
    """

    def __init__(self, client: "MetricsClient") -> None:
        self._client = client

    def compile_single(
        self,
        spec: QuerySpec,
        time_range: TimeRange,
        *,
        subscription: str,
        resource_group: str,
        metric_definition: str,
        resource_name: str,
    ) -> CompiledQuery:
        """Compile a spec against one concrete resource."""
        url_components = {
            "subscription": subscription,
            "resourceGroup": resource_group,
            "metricDefinition": metric_definition,
            "resourceName": resource_name,
        }
        query = CompiledQuery(
            ref_id=spec.ref_id,
            url=build_metrics_url(
                subscription, resource_group, metric_definition, resource_name
            ),
            params=build_params(spec, time_range),
            alias=spec.alias,
            url_components=url_components,
        )
        logger.debug(
            "compiler.query",
            extra={"ref_id": spec.ref_id, "url": query.url, "params": query.params},
        )
        return query

    async def compile(self, spec: QuerySpec, time_range: TimeRange) -> List[CompiledQuery]:
        """Compile one spec into one or more requests.

        Raises
        ------
        ConfigError
            If the time grain cannot be resolved.
        TransportError, APIError, ParseError
            If resource discovery fails.
        """
        if isinstance(spec, SingleResourceSpec):
            return [
                self.compile_single(
                    spec,
                    time_range,
                    subscription=spec.subscription,
                    resource_group=spec.resource_group,
                    metric_definition=spec.metric_definition,
                    resource_name=spec.resource_name,
                )
            ]

        if isinstance(spec, CrossResourceSpec):
            resources = await discover_resources(
                self._client,
                spec.subscriptions,
                ResourceFilter(
                    resource_groups=spec.resource_groups,
                    locations=spec.locations,
                    resource_type=spec.metric_definition,
                ),
            )
            return [
                self.compile_single(
                    spec,
                    time_range,
                    subscription=resource.subscription_id,
                    resource_group=resource.resource_group,
                    metric_definition=resource.type,
                    resource_name=resource.name,
                )
                for resource in resources
            ]

        raise TypeError(f"Unsupported query spec: {type(spec).__name__}")

    async def compile_all(
        self, specs: Iterable[QuerySpec], time_range: TimeRange
    ) -> List[CompiledQuery]:
        """Compile every spec in order. The first failure aborts compilation."""
        compiled: List[CompiledQuery] = []
        for spec in specs:
            compiled.extend(await self.compile(spec, time_range))
        return compiled
