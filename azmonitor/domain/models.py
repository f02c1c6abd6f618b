"""Canonical pipeline data model.

These Pydantic models describe the typed query specifications that enter the
pipeline, the transient compiled queries and discovered resources created
during a run, and the named series returned to the caller.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field

from ..errors import QueryValidationError
from .legend import parse_resource_group
from .utils.timestamps import parse_timestamp

SINGLE_RESOURCE = "singleResource"
CROSS_RESOURCE = "crossResource"


class TimeRange(BaseModel):
    """Absolute query time range in UTC.

    Attributes
    ----------
    start: datetime
        Inclusive range start.
    end: datetime
        Range end.
    """

    start: datetime
    end: datetime

    @classmethod
    def parse(
        cls,
        from_: Union[str, int, float],
        to: Union[str, int, float],
        now: Optional[datetime] = None,
    ) -> "TimeRange":
        """Build a range from dashboard expressions (``now-6h``, epoch ms, ISO)."""
        start = parse_timestamp(from_, now=now)
        if start is None:
            raise QueryValidationError(
                f"Invalid time range start: {from_!r}", field_name="from"
            )
        end = parse_timestamp(to, now=now)
        if end is None:
            raise QueryValidationError(
                f"Invalid time range end: {to!r}", field_name="to"
            )
        return cls(start=start, end=end)


class _QuerySpecBase(BaseModel):
    """Fields shared by both query modes."""

    model_config = ConfigDict(frozen=True)

    ref_id: str
    interval_ms: int = 0
    metric_name: str
    metric_namespace: str = ""
    aggregation: str = ""
    dimension: str = ""
    dimension_filter: str = ""
    time_grain: str = ""
    allowed_time_grains_ms: List[int] = Field(default_factory=list)
    alias: str = ""


class SingleResourceSpec(_QuerySpecBase):
    """Query against one explicitly named resource."""

    query_mode: Literal["singleResource"] = SINGLE_RESOURCE
    subscription: str
    resource_group: str
    metric_definition: str
    resource_name: str


class CrossResourceSpec(_QuerySpecBase):
    """Query against every discovered resource matching the filters."""

    query_mode: Literal["crossResource"] = CROSS_RESOURCE
    subscriptions: List[str] = Field(default_factory=list)
    resource_groups: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)
    metric_definition: str


QuerySpec = Annotated[
    Union[SingleResourceSpec, CrossResourceSpec],
    Field(discriminator="query_mode"),
]


class ResourceFilter(BaseModel):
    """Membership filters applied to listed resources during discovery."""

    resource_groups: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)
    resource_type: str


class Resource(BaseModel):
    """A resource discovered through the resources list API."""

    id: str
    name: str
    type: str
    location: str
    subscription_id: str

    @property
    def resource_group(self) -> str:
        return parse_resource_group(self.id)

    @property
    def key(self) -> str:
        """Identity used for de-duplication across subscriptions."""
        return self.id


class CompiledQuery(BaseModel):
    """A fully parameterized metrics request. Immutable once built.

    Attributes
    ----------
    ref_id: str
        Correlation id of the originating query.
    url: str
        Path relative to the ``/subscriptions`` root of the API.
    params: Dict[str, str]
        Query-string parameters in insertion order.
    alias: str
        Legend template for naming the resulting series.
    url_components: Dict[str, str]
        subscription, resourceGroup, metricDefinition and resourceName used
        to build ``url``; kept for legend formatting.
    """

    model_config = ConfigDict(frozen=True)

    ref_id: str
    url: str
    params: Dict[str, str]
    alias: str = ""
    url_components: Dict[str, str] = Field(default_factory=dict)

    @property
    def target(self) -> str:
        """Encoded query string sent with the request."""
        return urlencode(self.params)

    @property
    def aggregation(self) -> str:
        return self.params.get("aggregation", "")

    @property
    def resource_name(self) -> str:
        return self.url_components.get("resourceName", "")


class NamedSeries(BaseModel):
    """One output series.

    ``points`` follow the dashboard time-point convention of
    ``[value, timestamp_ms]`` pairs where the value may be null.
    """

    name: str
    points: List[List[Optional[float]]] = Field(default_factory=list)
    tags: Optional[Dict[str, str]] = None


class QueryResult(BaseModel):
    """Merged result for one correlation id."""

    ref_id: str
    series: List[NamedSeries] = Field(default_factory=list)
    meta: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    error_type: Optional[str] = None


class PipelineResponse(BaseModel):
    """Pipeline output keyed by correlation id."""

    results: Dict[str, QueryResult] = Field(default_factory=dict)
