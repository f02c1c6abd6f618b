"""Command-line interface for the query pipeline.

Runs one batch of dashboard queries against a configured datasource and
prints the normalized result as JSON, or serves the HTTP API.

Usage
-----
    azmonitor-query --config config.json --queries queries.json --from now-1h
    azmonitor-query --http --port 8080
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import Any, List, Optional

import orjson

from ..adapters.azure_monitor import AzureMonitorClient
from ..config.models import AppConfig
from ..errors import AzureMonitorError
from ..observability import setup_logging
from ..pipeline import MetricsPipeline


def _load_queries(path: Path) -> List[Any]:
    """Read a JSON file holding a list of queries or ``{"queries": [...]}``."""
    data = orjson.loads(path.read_bytes())
    if isinstance(data, dict):
        data = data.get("queries", [])
    if not isinstance(data, list):
        raise SystemExit(f"{path}: expected a list of queries")
    return data


async def _run_once(
    config_path: Path,
    queries_path: Path,
    from_: str,
    to: str,
    datasource_id: Optional[str],
) -> bytes:
    """Run the pipeline once and return the JSON-encoded response."""
    cfg = AppConfig.load(config_path)
    if not cfg.datasources:
        raise SystemExit(f"{config_path}: no datasources configured")
    datasource_id = datasource_id or next(iter(cfg.datasources))
    try:
        ds = cfg.datasources[datasource_id]
    except KeyError:
        raise SystemExit(
            f"Unknown datasource {datasource_id!r}; "
            f"available: {', '.join(cfg.datasources)}"
        )

    async with AzureMonitorClient(
        ds.url,
        ds.api_key,
        ds.timeout_seconds,
        cloud_name=ds.cloud_name,
        default_subscription=ds.subscription_id,
    ) as client:
        pipeline = MetricsPipeline(client, default_subscription=ds.subscription_id)
        response = await pipeline.run_raw(_load_queries(queries_path), from_, to)
    return orjson.dumps(response.model_dump(mode="json"), option=orjson.OPT_INDENT_2)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint.

    Provides two modes:
    - one-shot query run (default) using --config and --queries
    - HTTP mode with FastAPI when --http is specified
    """
    parser = argparse.ArgumentParser(description="Azure Monitor query pipeline")
    parser.add_argument("--config", help="Path to JSON datasource config")
    parser.add_argument("--queries", help="Path to JSON file with dashboard queries")
    parser.add_argument("--from", dest="from_", default="now-6h", help="Range start")
    parser.add_argument("--to", default="now", help="Range end")
    parser.add_argument("--datasource", help="Datasource id (default: first)")
    parser.add_argument(
        "--log-level",
        dest="log_level",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging level (overrides environment)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (once sets DEBUG)",
    )
    parser.add_argument("--http", action="store_true", help="Run HTTP server")
    parser.add_argument(
        "--host", default="127.0.0.1", help="HTTP bind host (default 127.0.0.1)"
    )
    parser.add_argument("--port", type=int, default=8080, help="HTTP port")
    args = parser.parse_args(argv)

    env_level = os.environ.get("AZMONITOR_LOG_LEVEL", "INFO").upper()
    effective_level = args.log_level or ("DEBUG" if args.verbose > 0 else env_level)
    setup_logging(effective_level)

    if args.http:
        import uvicorn

        from .http import create_app

        uvicorn.run(
            create_app(),
            host=args.host,
            port=args.port,
            log_level=effective_level.lower(),
        )
        return 0

    if not args.config or not args.queries:
        parser.error("--config and --queries are required unless --http is used")

    try:
        output = asyncio.run(
            _run_once(
                Path(args.config),
                Path(args.queries),
                args.from_,
                args.to,
                args.datasource,
            )
        )
    except AzureMonitorError as exc:
        print(f"error ({exc.error_type}): {exc}", file=sys.stderr)
        return 1
    sys.stdout.write(output.decode("utf-8") + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
