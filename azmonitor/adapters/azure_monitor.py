"""Azure Monitor REST adapter.

This adapter sends compiled queries to the Azure Monitor management API
(normally through an authenticating proxy) and decodes the responses into
validated Pydantic models. It encapsulates transport concerns (base URL,
headers, timeouts) and classifies failures into the pipeline's error
taxonomy.

Notes
-----
- No retries are attempted. Every failure surfaces to the caller.
- Cancellation of the awaiting task propagates unchanged.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

import httpx
import orjson
from pydantic import BaseModel, ValidationError

from .. import __version__
from ..__version__ import API_VERSION
from ..domain.models import CompiledQuery
from ..errors import APIError, ParseError, TransportError
from ..schemas.azure_monitor import MetricsResponse, ResourcesResponse
from ..utils.correlation import get_ref_id

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_BODY_PREVIEW_CHARS = 500


class AzureMonitorClient:
    """Client for the Azure Monitor metrics and resources endpoints.

    Parameters
    ----------
    endpoint: str
        Base URL of the management API proxy (e.g., "http://localhost:3000").
    api_key: Optional[str]
        Optional bearer token for authenticating requests.
    timeout: int
        Request timeout in seconds for all HTTP operations.
    cloud_name: str
        Proxy route prefix; requests go to ``{endpoint}/{cloud_name}/subscriptions``.
    default_subscription: str
        Subscription used by single-resource queries that do not name one.

    Attributes
    ----------
    _client: httpx.AsyncClient
        Shared async client configured with base URL, timeout, and headers.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        timeout: int = 30,
        *,
        cloud_name: str = "azuremonitor",
        default_subscription: str = "",
    ) -> None:
        self.default_subscription = default_subscription
        self._base_url = f"{endpoint.rstrip('/')}/{cloud_name}/subscriptions/"
        self._client = httpx.AsyncClient(
            base_url=self._base_url, timeout=timeout, headers=self._headers(api_key)
        )
        logger.info(
            "azmonitor.client.init",
            extra={"endpoint": endpoint, "timeout_seconds": timeout},
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def inject_http_client_for_testing(self, client: Any) -> None:
        """Replace underlying HTTP client (testing only).

        Any object with an httpx-compatible async ``get()`` works, typically
        ``httpx.AsyncClient(transport=httpx.MockTransport(handler))``.
        """
        self._client = client

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AzureMonitorClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    @staticmethod
    def _headers(api_key: Optional[str]) -> dict:
        """Build default headers.

        Parameters
        ----------
        api_key: Optional[str]
            Bearer token to attach as an Authorization header.

        Returns
        -------
        dict
            A dictionary of HTTP headers suitable for JSON requests.
        """
        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"azure-monitor-query/{__version__}",
        }
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    async def _get_json(
        self, path: str, params: Mapping[str, str], model: Type[ModelT]
    ) -> ModelT:
        """GET an endpoint and decode the body into ``model``.

        Parameters
        ----------
        path: str
            URL path relative to the ``/subscriptions`` root.
        params: Mapping[str, str]
            Query-string parameters.
        model: Type[ModelT]
            Pydantic model describing the expected body.

        Raises
        ------
        TransportError
            On network failures reaching the API.
        APIError
            On a non-2xx response; carries the raw body.
        ParseError
            If the body is not JSON or does not match ``model``.
        """
        logger.debug(
            "azmonitor.http.get",
            extra={"ref_id": get_ref_id(), "path": path, "params": dict(params)},
        )
        try:
            resp = await self._client.get(path, params=dict(params))
        except httpx.TransportError as exc:
            logger.error(
                "azmonitor.http.transport_error",
                extra={"ref_id": get_ref_id(), "path": path, "error": str(exc)},
            )
            raise TransportError(f"Request to {path} failed: {exc}") from exc

        body = resp.text
        if resp.status_code // 100 != 2:
            preview = body
            if len(preview) > _BODY_PREVIEW_CHARS:
                preview = preview[:_BODY_PREVIEW_CHARS] + "..."
            logger.error(
                "azmonitor.http.status_error",
                extra={
                    "ref_id": get_ref_id(),
                    "path": path,
                    "status": resp.status_code,
                    "body_preview": preview,
                },
            )
            raise APIError(resp.status_code, body)

        try:
            data = orjson.loads(resp.content)
        except orjson.JSONDecodeError as exc:
            logger.error(
                "azmonitor.http.invalid_json",
                extra={"ref_id": get_ref_id(), "path": path, "error": str(exc)},
            )
            raise ParseError(f"Failed to decode response from {path}: {exc}") from exc

        try:
            result = model.model_validate(data)
        except ValidationError as exc:
            logger.error(
                "azmonitor.http.unexpected_shape",
                extra={"ref_id": get_ref_id(), "path": path, "error": str(exc)},
            )
            raise ParseError(
                f"Unexpected {model.__name__} shape from {path}: {exc}"
            ) from exc

        logger.debug(
            "azmonitor.http.response",
            extra={"ref_id": get_ref_id(), "path": path, "status_code": resp.status_code},
        )
        return result

    async def get_metrics(self, query: CompiledQuery) -> MetricsResponse:
        """Execute a compiled metrics query.

        Parameters
        ----------
        query: CompiledQuery
            Query whose ``url`` and ``params`` describe the request.

        Returns
        -------
        MetricsResponse
            The decoded metrics payload.
        """
        return await self._get_json(query.url, query.params, MetricsResponse)

    async def list_resources(self, subscription_id: str) -> ResourcesResponse:
        """List every resource in a subscription.

        GET ``{subscription_id}/resources?api-version=2018-01-01``
        """
        params: Dict[str, str] = {"api-version": API_VERSION}
        return await self._get_json(
            f"{subscription_id}/resources", params, ResourcesResponse
        )
