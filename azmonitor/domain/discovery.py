"""Resource discovery for cross-resource queries.

Lists the resources of each candidate subscription and keeps the ones whose
resource group, location and type match the query's filters.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterable, List

from .models import Resource, ResourceFilter

if TYPE_CHECKING:
    from ..adapters import MetricsClient

logger = logging.getLogger(__name__)


def matches_filter(resource: Resource, filters: ResourceFilter) -> bool:
    """Return True when the resource passes every membership filter."""
    return (
        resource.resource_group in filters.resource_groups
        and resource.location in filters.locations
        and resource.type == filters.resource_type
    )


async def discover_resources(
    client: "MetricsClient",
    subscriptions: Iterable[str],
    filters: ResourceFilter,
) -> List[Resource]:
    """Find resources across subscriptions that match ``filters``.

    Parameters
    ----------
    client: MetricsClient
        Client used for the resources list calls.
    subscriptions: Iterable[str]
        Subscriptions to search, one list call each.
    filters: ResourceFilter
        Allowed resource groups and locations, and the required type.

    Returns
    -------
    List[Resource]
        Matching resources de-duplicated by id, first occurrence wins.

    Raises
    ------
    TransportError, APIError, ParseError
        From the first failing list call. Discovery is all-or-nothing.
    """
    subscription_ids = [str(s) for s in subscriptions]
    found: Dict[str, Resource] = {}
    for subscription_id in subscription_ids:
        response = await client.list_resources(subscription_id)
        for entry in response.value:
            resource = Resource(
                id=entry.id,
                name=entry.name,
                type=entry.type,
                location=entry.location,
                subscription_id=subscription_id,
            )
            if resource.key not in found and matches_filter(resource, filters):
                found[resource.key] = resource

    logger.info(
        "discovery.complete",
        extra={
            "subscriptions": len(subscription_ids),
            "resource_type": filters.resource_type,
            "matched": len(found),
        },
    )
    return list(found.values())
