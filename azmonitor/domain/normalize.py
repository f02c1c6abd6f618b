"""Metrics response normalization.

Flattens the nested metrics payload (metric -> timeseries -> data points)
into named series, one per timeseries of the first metric entry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..schemas.azure_monitor import MetricsResponse, MetricValue
from .legend import format_legend_key
from .models import CompiledQuery, NamedSeries
from .utils.timestamps import to_epoch_ms

_AGGREGATION_FIELDS: Dict[str, Callable[[MetricValue], Optional[float]]] = {
    "Average": lambda point: point.average,
    "Total": lambda point: point.total,
    "Maximum": lambda point: point.maximum,
    "Minimum": lambda point: point.minimum,
    "Count": lambda point: point.count,
}


@dataclass
class NormalizedMetric:
    """Series extracted from one response plus the metric's unit."""

    series: List[NamedSeries] = field(default_factory=list)
    unit: Optional[str] = None


def select_value(point: MetricValue, aggregation: str) -> Optional[float]:
    """Pick the field of ``point`` matching ``aggregation``.

    Unknown or empty aggregations fall back to ``Count``.
    """
    getter = _AGGREGATION_FIELDS.get(aggregation, _AGGREGATION_FIELDS["Count"])
    return getter(point)


def normalize_response(
    response: MetricsResponse, query: CompiledQuery
) -> NormalizedMetric:
    """Convert a metrics response into named series.

    Only the first metric entry is used since each request names a single
    metric. An empty response yields no series.
    """
    if not response.value:
        return NormalizedMetric()

    metric = response.value[0]
    namespace = metric.namespace or response.namespace or ""
    aggregation = query.aggregation

    series: List[NamedSeries] = []
    for element in metric.timeseries:
        dimension_name = ""
        dimension_value = ""
        if element.metadatavalues:
            dimension_name = element.metadatavalues[0].name.localized_value
            dimension_value = element.metadatavalues[0].value

        name = format_legend_key(
            query.alias,
            query.resource_name,
            metric.name.localized_value,
            dimension_name,
            dimension_value,
            namespace,
            metric.id,
        )
        points = [
            [select_value(point, aggregation), float(to_epoch_ms(point.time_stamp))]
            for point in element.data
        ]
        series.append(
            NamedSeries(
                name=name,
                points=points,
                tags={dimension_name: dimension_value} if dimension_name else None,
            )
        )

    return NormalizedMetric(series=series, unit=metric.unit)
