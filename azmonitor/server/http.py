"""FastAPI surface for the query pipeline.

Exposes a single query endpoint that accepts a dashboard request (time range
plus query models) and returns normalized series per refId. The layer is
thin: it selects the datasource client, runs the pipeline and maps pipeline
errors to structured HTTP errors.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .. import __version__
from ..adapters import (
    get_available_datasource_ids,
    get_client,
    log_client_status,
    register_client,
    reset_clients,
)
from ..adapters.azure_monitor import AzureMonitorClient
from ..config.models import AppConfig, EnvSettings
from ..domain.models import PipelineResponse
from ..errors import (
    APIError,
    AzureMonitorError,
    ConfigError,
    ParseError,
    QueryValidationError,
    TransportError,
)
from ..observability import setup_logging
from ..pipeline import MetricsPipeline
from .models import ErrorResponse, HealthResponse, QueryRequest

logger = logging.getLogger(__name__)


def register_clients_from_config(config: AppConfig) -> None:
    """Create and register one client per configured datasource."""
    for datasource_id, ds in config.datasources.items():
        register_client(
            datasource_id,
            AzureMonitorClient(
                ds.url,
                ds.api_key,
                ds.timeout_seconds,
                cloud_name=ds.cloud_name,
                default_subscription=ds.subscription_id,
            ),
        )


def _error(status_code: int, detail: str, error_type: str, **kwargs: Any) -> HTTPException:
    payload = ErrorResponse(detail=detail, error_type=error_type, **kwargs)
    return HTTPException(status_code=status_code, detail=payload.model_dump())


def _status_for(exc: AzureMonitorError) -> int:
    if isinstance(exc, (QueryValidationError, ConfigError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, (TransportError, APIError, ParseError)):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _make_auth_dependency(expected: Optional[str]):
    """Return a dependency function that enforces optional bearer token."""

    def _auth_dependency(authorization: str | None = Header(default=None)) -> None:
        if expected is None:
            return
        if not authorization or not authorization.startswith("Bearer "):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
        token = authorization.split(" ", 1)[1]
        if token != expected:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)

    return _auth_dependency


def create_app(settings: Optional[EnvSettings] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    When ``AZMONITOR_CONFIG`` points at a config file, one client per
    datasource is registered at startup and closed at shutdown. Clients
    registered before startup (tests, embedding applications) are left alone.
    """
    settings = settings or EnvSettings()
    # Respect prior logging configuration from CLI; otherwise use env setting
    if not logging.getLogger().hasHandlers():
        setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info("http.startup")
        owns_clients = False
        if settings.config:
            register_clients_from_config(AppConfig.load(Path(settings.config)))
            owns_clients = True
        log_client_status()
        try:
            yield
        finally:
            logger.info("http.shutdown")
            if owns_clients:
                for datasource_id in get_available_datasource_ids():
                    client = get_client(datasource_id)
                    if isinstance(client, AzureMonitorClient):
                        await client.aclose()
                reset_clients()

    app = FastAPI(title="Azure Monitor Query", version=__version__, lifespan=lifespan)
    auth_dep = _make_auth_dependency(settings.http_token)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: Exception):
        err = ErrorResponse(detail=str(exc), error_type="validation_error")
        return JSONResponse(status_code=400, content={"detail": err.model_dump()})

    @app.get("/health", response_model=HealthResponse, summary="Liveness probe")
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post(
        "/api/tsdb/query",
        response_model=PipelineResponse,
        summary="Run Azure Monitor metric queries",
        dependencies=[Depends(auth_dep)],
    )
    async def query(req: QueryRequest) -> PipelineResponse:
        available = get_available_datasource_ids()
        datasource_id = req.datasource_id
        if not datasource_id:
            if not available:
                raise _error(
                    status.HTTP_400_BAD_REQUEST,
                    "No datasources configured. Set AZMONITOR_CONFIG.",
                    "missing_configuration",
                )
            datasource_id = available[0]
        try:
            client = get_client(datasource_id)
        except KeyError:
            raise _error(
                status.HTTP_404_NOT_FOUND,
                f"Unknown datasource: {datasource_id}",
                "unknown_datasource",
                available_options=available,
            )

        pipeline = MetricsPipeline(
            client, default_subscription=getattr(client, "default_subscription", "")
        )
        try:
            return await pipeline.run_raw(req.queries, req.from_, req.to)
        except AzureMonitorError as exc:
            logger.warning(
                "http.query.failed",
                extra={"datasource_id": datasource_id, "error": str(exc)},
            )
            raise _error(_status_for(exc), str(exc), exc.error_type)

    _ = (validation_exception_handler, health, query)
    return app
