"""Request/response models for the HTTP surface."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class QueryRequest(BaseModel):
    """Body of ``POST /api/tsdb/query``.

    ``from`` and ``to`` accept epoch milliseconds, ISO8601 timestamps or
    relative expressions such as ``now-6h``. ``queries`` are dashboard query
    models (see :mod:`azmonitor.domain.query_model`).
    """

    model_config = ConfigDict(populate_by_name=True)

    from_: str | int = Field("now-6h", alias="from")
    to: str | int = Field("now")
    datasource_id: str = Field(
        default="",
        alias="datasourceId",
        description=(
            "Logical datasource identifier. "
            "Optional - the first configured datasource is used if not provided."
        ),
    )
    queries: List[Dict[str, Any]] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Structured error payload."""

    detail: str
    error_type: str
    available_options: Optional[List[str]] = None


class HealthResponse(BaseModel):
    status: str
