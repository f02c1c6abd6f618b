"""Legend key formatting for output series.

A query alias is a small template: ``{{token}}`` placeholders are replaced
with values from the series being named. Tokens are case-insensitive and may
be padded with whitespace; unknown tokens are left untouched.

Supported tokens: ``resourcegroup``, ``namespace``, ``resourcename``,
``metric``, ``dimensionname`` and ``dimensionvalue``.
"""

from __future__ import annotations

import re

LEGEND_KEY_FORMAT = re.compile(r"\{\{\s*(.+?)\s*\}\}")

_RESOURCE_GROUP_ANCHOR = "/resourcegroups/"
_PROVIDERS_ANCHOR = "/providers"


def parse_resource_group(resource_id: str) -> str:
    """Extract the resource group from an Azure resource id.

    Returns the text between ``/resourceGroups/`` and the next ``/providers``.
    A missing anchor yields an empty string.

    >>> parse_resource_group("/subscriptions/s/resourceGroups/rg1/providers/x")
    'rg1'
    >>> parse_resource_group("/subscriptions/s")
    ''
    """
    # Resource list ids sometimes use lowercase "resourcegroups"
    start = resource_id.lower().find(_RESOURCE_GROUP_ANCHOR)
    if start < 0:
        return ""
    start += len(_RESOURCE_GROUP_ANCHOR)
    end = resource_id.find(_PROVIDERS_ANCHOR, start)
    if end < 0:
        return ""
    return resource_id[start:end]


def format_legend_key(
    alias: str,
    resource_name: str,
    metric_name: str,
    dimension_name: str,
    dimension_value: str,
    namespace: str,
    series_id: str,
) -> str:
    """Build the display name of a series.

    Without an alias the name is ``resource{dimension=value}.metric`` when a
    dimension is present, else ``resource.metric``.
    """
    if not alias:
        if dimension_name:
            return f"{resource_name}{{{dimension_name}={dimension_value}}}.{metric_name}"
        return f"{resource_name}.{metric_name}"

    values = {
        "resourcegroup": parse_resource_group(series_id),
        "namespace": namespace,
        "resourcename": resource_name,
        "metric": metric_name,
        "dimensionname": dimension_name,
        "dimensionvalue": dimension_value,
    }

    def _replace(match: re.Match) -> str:
        token = match.group(1).strip().lower()
        if token in values:
            return values[token]
        return match.group(0)

    return LEGEND_KEY_FORMAT.sub(_replace, alias)
