"""Query pipeline orchestration.

Drives compilation, execution and normalization for a batch of queries:

1. compile every spec (resource discovery and time grain selection included)
2. execute each compiled query against the Azure Monitor API, one at a time
3. normalize each response into named series and merge them per refId

Compilation failures abort the run. Failures while fetching or parsing one
compiled query are recorded on that query's result and the batch continues.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

from .domain.compiler import QueryCompiler
from .domain.models import (
    CompiledQuery,
    PipelineResponse,
    QueryResult,
    QuerySpec,
    TimeRange,
)
from .domain.normalize import NormalizedMetric, normalize_response
from .domain.query_model import parse_queries
from .errors import APIError, ParseError, TransportError, classify_error
from .utils.correlation import set_ref_id

if TYPE_CHECKING:
    from .adapters import MetricsClient

logger = logging.getLogger(__name__)

# Errors scoped to a single compiled query; anything else aborts the run
QUERY_ERRORS = (TransportError, APIError, ParseError)


class MetricsPipeline:
    """Run batches of metric queries against one datasource.

    Example:
        async with AzureMonitorClient(url, api_key) as client:
            pipeline = MetricsPipeline(client, default_subscription="sub-1")
            response = await pipeline.run_raw(queries, "now-6h", "now")
    """

    def __init__(self, client: "MetricsClient", default_subscription: str = ""):
        self.client = client
        self.default_subscription = default_subscription
        self.compiler = QueryCompiler(client)

    async def run_raw(
        self,
        raw_queries: Iterable[Dict[str, Any]],
        from_: Any,
        to: Any,
        now: Optional[datetime] = None,
    ) -> PipelineResponse:
        """Parse dashboard queries and a time range expression, then run them."""
        time_range = TimeRange.parse(from_, to, now=now)
        specs = parse_queries(raw_queries, self.default_subscription)
        return await self.run(specs, time_range)

    async def run(
        self, specs: Iterable[QuerySpec], time_range: TimeRange
    ) -> PipelineResponse:
        """Compile, execute and normalize every spec.

        Returns
        -------
        PipelineResponse
            One result per refId with its series sorted by name.

        Raises
        ------
        QueryValidationError, ConfigError
            If a spec cannot be compiled.
        TransportError, APIError, ParseError
            If resource discovery fails.
        """
        start = time.time()
        specs = list(specs)
        queries = await self.compiler.compile_all(specs, time_range)
        logger.info(
            "pipeline.compiled",
            extra={"specs": len(specs), "queries": len(queries)},
        )

        response = PipelineResponse()
        # Every spec gets an entry even when discovery matched nothing
        for spec in specs:
            response.results.setdefault(spec.ref_id, QueryResult(ref_id=spec.ref_id))

        for query in queries:
            partial = await self._execute(query)
            self._merge(response.results[query.ref_id], partial)

        for result in response.results.values():
            result.series.sort(key=lambda series: series.name)

        logger.info(
            "pipeline.complete",
            extra={
                "results": len(response.results),
                "failed": sum(1 for r in response.results.values() if r.error),
                "duration_ms": int((time.time() - start) * 1000),
            },
        )
        return response

    async def _execute(self, query: CompiledQuery) -> QueryResult:
        """Fetch and normalize one compiled query, capturing query-scoped errors."""
        set_ref_id(query.ref_id)
        result = QueryResult(
            ref_id=query.ref_id,
            meta={"rawQuery": query.target, "url": query.url},
        )
        try:
            metrics = await self.client.get_metrics(query)
            normalized: NormalizedMetric = normalize_response(metrics, query)
        except QUERY_ERRORS as exc:
            result.error = str(exc)
            result.error_type = classify_error(exc)
            logger.warning(
                "pipeline.query.failed",
                extra={
                    "ref_id": query.ref_id,
                    "url": query.url,
                    "error_type": result.error_type,
                    "error": result.error,
                },
            )
            return result
        finally:
            set_ref_id("")

        result.series = normalized.series
        if normalized.unit is not None:
            result.meta["unit"] = normalized.unit
        return result

    @staticmethod
    def _merge(target: QueryResult, partial: QueryResult) -> None:
        """Append ``partial`` into the accumulated result for its refId."""
        target.series.extend(partial.series)
        target.meta.update(partial.meta)
        if partial.error and not target.error:
            target.error = partial.error
            target.error_type = partial.error_type

