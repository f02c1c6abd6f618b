"""
Azure Monitor REST API response schemas.

Pydantic models for the two payloads the pipeline consumes:

1. ``GET .../providers/microsoft.insights/metrics`` (metrics list)
2. ``GET /subscriptions/{id}/resources`` (resources list)

Field aliases follow the wire format exactly; unknown fields are ignored so
that newer API additions do not break decoding.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LocalizableString(BaseModel):
    """Name wrapper used throughout the metrics API"""

    model_config = ConfigDict(populate_by_name=True)

    value: str = ""
    localized_value: str = Field("", alias="localizedValue")


class MetadataValue(BaseModel):
    """Dimension name/value pair attached to a timeseries"""

    name: LocalizableString = Field(default_factory=LocalizableString)
    value: str = ""


class MetricValue(BaseModel):
    """One timestamped data point carrying every aggregation field.

    Only the field matching the requested aggregation is meaningful; the
    others are absent from the payload and stay ``None``.
    """

    model_config = ConfigDict(populate_by_name=True)

    time_stamp: datetime = Field(..., alias="timeStamp")
    average: Optional[float] = None
    total: Optional[float] = None
    maximum: Optional[float] = None
    minimum: Optional[float] = None
    count: Optional[float] = None


class TimeSeriesElement(BaseModel):
    """Timeseries for one dimension combination"""

    metadatavalues: List[MetadataValue] = Field(default_factory=list)
    data: List[MetricValue] = Field(default_factory=list)


class MetricEntry(BaseModel):
    """Per-metric entry of a metrics response"""

    id: str = ""
    type: str = ""
    name: LocalizableString = Field(default_factory=LocalizableString)
    unit: str = ""
    namespace: Optional[str] = None
    timeseries: List[TimeSeriesElement] = Field(default_factory=list)


class MetricsResponse(BaseModel):
    """Decoded metrics payload"""

    model_config = ConfigDict(populate_by_name=True)

    cost: Optional[int] = None
    timespan: Optional[str] = None
    interval: Optional[str] = None
    namespace: Optional[str] = None
    resource_region: Optional[str] = Field(None, alias="resourceregion")
    value: List[MetricEntry] = Field(default_factory=list)


class ResourceEntry(BaseModel):
    """One resource from the resources list"""

    id: str
    name: str = ""
    type: str = ""
    location: str = ""


class ResourcesResponse(BaseModel):
    """Decoded resources payload"""

    value: List[ResourceEntry] = Field(default_factory=list)
