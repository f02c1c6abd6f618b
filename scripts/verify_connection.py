#!/usr/bin/env python3
"""
Connection Verification Script

Verifies that every configured datasource can reach the Azure Monitor
management API through its proxy by listing the resources of the
datasource's default subscription.

Usage:
    python scripts/verify_connection.py [config.json]

Expected output:
    - Connection successful: number of resources visible and a sample
    - Connection failed: error class and details for troubleshooting
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from azmonitor.adapters.azure_monitor import AzureMonitorClient  # noqa: E402
from azmonitor.config.models import AppConfig, DatasourceConfig  # noqa: E402
from azmonitor.errors import AzureMonitorError  # noqa: E402

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def verify_single_datasource(datasource_id: str, ds: DatasourceConfig) -> bool:
    """Verify a single datasource connection."""
    logger.info("-" * 50)
    logger.info(f"Verifying datasource: {datasource_id}")

    if not ds.subscription_id:
        logger.warning("No subscription_id configured; skipping resource listing")
        return True

    async with AzureMonitorClient(
        ds.url, ds.api_key, ds.timeout_seconds, cloud_name=ds.cloud_name
    ) as client:
        logger.info(f"   Target: {client.base_url}")
        try:
            resources = await client.list_resources(ds.subscription_id)
        except AzureMonitorError as e:
            logger.error(f"Failed to reach datasource '{datasource_id}'")
            logger.error(f"   {e.error_type}: {e}")
            logger.info("   1. Verify the proxy URL and cloud_name in the config")
            logger.info("   2. Check the api_key and subscription_id")
            return False

    logger.info("CONNECTION SUCCESSFUL")
    logger.info(f"  Resources visible: {len(resources.value)}")
    if resources.value:
        sample = resources.value[0]
        logger.info(f"  Sample: {sample.name} ({sample.type}, {sample.location})")
    return True


async def verify_connection(config_path: Path) -> bool:
    """Verify connection to all configured datasources."""
    if not config_path.exists():
        logger.error(f"Configuration file not found: {config_path}")
        return False

    config = AppConfig.load(config_path)
    if not config.datasources:
        logger.warning("No datasources configured in %s", config_path)
        return True

    logger.info(f"Configuration loaded: {len(config.datasources)} datasource(s)")
    results = [
        await verify_single_datasource(datasource_id, ds)
        for datasource_id, ds in config.datasources.items()
    ]
    return all(results)


def main():
    """Main entry point."""
    config_path = Path(sys.argv[1] if len(sys.argv) > 1 else "config.json")
    success = asyncio.run(verify_connection(config_path))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
