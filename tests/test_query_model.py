"""Tests for dashboard query model parsing."""

from __future__ import annotations

import pytest

from azmonitor.domain.models import CrossResourceSpec, SingleResourceSpec
from azmonitor.domain.query_model import parse_queries, parse_query
from azmonitor.errors import ConfigError, QueryValidationError


def _single_payload(**overrides):
    payload = {
        "resourceGroup": "grafanastaging",
        "metricDefinition": "Microsoft.Compute/virtualMachines",
        "resourceName": "grafana",
        "metricName": "Percentage CPU",
        "metricNamespace": "Microsoft.Compute-virtualMachines",
        "aggregation": "Average",
        "dimension": "",
        "dimensionFilter": "",
        "timeGrain": "PT1M",
        "alias": "{{resourcegroup}}",
    }
    payload.update(overrides)
    return payload


def test_legacy_flat_shape_is_single_resource() -> None:
    """Missing queryMode means single-resource with a flat payload."""
    spec = parse_query(
        {
            "refId": "A",
            "intervalMs": 60000,
            "subscription": "sub-1",
            "azureMonitor": _single_payload(),
        }
    )
    assert isinstance(spec, SingleResourceSpec)
    assert spec.ref_id == "A"
    assert spec.interval_ms == 60000
    assert spec.subscription == "sub-1"
    assert spec.resource_group == "grafanastaging"
    assert spec.metric_definition == "Microsoft.Compute/virtualMachines"
    assert spec.resource_name == "grafana"
    assert spec.metric_name == "Percentage CPU"
    assert spec.aggregation == "Average"
    assert spec.alias == "{{resourcegroup}}"


def test_single_resource_mode_reads_mode_payload() -> None:
    spec = parse_query(
        {
            "refId": "A",
            "subscription": "sub-1",
            "azureMonitor": {
                "queryMode": "singleResource",
                "data": {"singleResource": _single_payload(resourceName="vm7")},
            },
        }
    )
    assert isinstance(spec, SingleResourceSpec)
    assert spec.resource_name == "vm7"


def test_single_resource_falls_back_to_default_subscription() -> None:
    spec = parse_query(
        {"refId": "A", "azureMonitor": _single_payload()},
        default_subscription="default-sub",
    )
    assert spec.subscription == "default-sub"


def test_cross_resource_mode() -> None:
    spec = parse_query(
        {
            "refId": "B",
            "intervalMs": 300000,
            "subscriptions": ["sub-1", "sub-2"],
            "azureMonitor": {
                "queryMode": "crossResource",
                "data": {
                    "crossResource": {
                        "metricDefinition": "Microsoft.Compute/virtualMachines",
                        "resourceGroups": ["rg1", "rg2"],
                        "locations": ["westeurope"],
                        "metricName": "Percentage CPU",
                        "aggregation": "Maximum",
                        "timeGrain": "auto",
                        "allowedTimeGrainsMs": [60000, 300000],
                    }
                },
            },
        }
    )
    assert isinstance(spec, CrossResourceSpec)
    assert spec.subscriptions == ["sub-1", "sub-2"]
    assert spec.resource_groups == ["rg1", "rg2"]
    assert spec.locations == ["westeurope"]
    assert spec.time_grain == "auto"
    assert spec.allowed_time_grains_ms == [60000, 300000]


def test_cross_resource_without_subscriptions() -> None:
    spec = parse_query(
        {
            "refId": "B",
            "azureMonitor": {
                "queryMode": "crossResource",
                "data": {"crossResource": {"metricName": "CPU"}},
            },
        }
    )
    assert isinstance(spec, CrossResourceSpec)
    assert spec.subscriptions == []


def test_cross_resource_payload_subscriptions_are_stringified() -> None:
    spec = parse_query(
        {
            "refId": "B",
            "azureMonitor": {
                "queryMode": "crossResource",
                "data": {
                    "crossResource": {
                        "metricName": "CPU",
                        "subscriptions": [123, "sub-2"],
                    }
                },
            },
        }
    )
    assert spec.subscriptions == ["123", "sub-2"]


def test_allowed_time_grains_accept_iso_durations() -> None:
    spec = parse_query(
        {
            "refId": "A",
            "subscription": "s",
            "azureMonitor": _single_payload(allowedTimeGrainsMs=["PT1M", 300000]),
        }
    )
    assert spec.allowed_time_grains_ms == [60000, 300000]


def test_allowed_time_grains_reject_bad_durations() -> None:
    with pytest.raises(ConfigError):
        parse_query(
            {
                "refId": "A",
                "subscription": "s",
                "azureMonitor": _single_payload(allowedTimeGrainsMs=["PTxM"]),
            }
        )


def test_unknown_query_mode_is_a_no_op() -> None:
    raw = {
        "refId": "C",
        "azureMonitor": {"queryMode": "logAnalytics", "data": {}},
    }
    assert parse_query(raw) is None
    assert parse_queries([raw]) == []


@pytest.mark.parametrize(
    "raw",
    [
        {"refId": "A"},
        {"refId": "A", "azureMonitor": None},
        {"refId": "A", "azureMonitor": "not an object"},
        {"refId": "A", "intervalMs": "soon", "azureMonitor": {}},
    ],
)
def test_invalid_shapes_raise_validation_error(raw) -> None:
    with pytest.raises(QueryValidationError) as excinfo:
        parse_query(raw)
    assert "Invalid query format" in str(excinfo.value)
    assert excinfo.value.ref_id == "A"


def test_parse_queries_rejects_non_objects() -> None:
    with pytest.raises(QueryValidationError):
        parse_queries(["A"])


def test_parse_queries_keeps_order() -> None:
    specs = parse_queries(
        [
            {"refId": "A", "subscription": "s", "azureMonitor": _single_payload()},
            {"refId": "X", "azureMonitor": {"queryMode": "other"}},
            {"refId": "B", "subscription": "s", "azureMonitor": _single_payload()},
        ]
    )
    assert [s.ref_id for s in specs] == ["A", "B"]
