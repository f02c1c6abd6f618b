"""Tests for cross-resource discovery filtering and de-duplication."""

from __future__ import annotations

import pytest

from azmonitor.domain.discovery import discover_resources, matches_filter
from azmonitor.domain.models import Resource, ResourceFilter
from azmonitor.errors import TransportError

VM_TYPE = "Microsoft.Compute/virtualMachines"
FILTERS = ResourceFilter(
    resource_groups=["rg1"], locations=["westeurope"], resource_type=VM_TYPE
)


def _entry(resource_id: str, name: str = "vm1", location: str = "westeurope"):
    return {"id": resource_id, "name": name, "type": VM_TYPE, "location": location}


SHARED_ID = "/subscriptions/sub-1/resourceGroups/rg1/providers/" + VM_TYPE + "/vm1"


@pytest.mark.asyncio
async def test_duplicate_ids_across_subscriptions_are_merged(fake_client_cls) -> None:
    client = fake_client_cls(
        resources={
            "sub-1": {"value": [_entry(SHARED_ID)]},
            "sub-2": {"value": [_entry(SHARED_ID)]},
        }
    )
    resources = await discover_resources(client, ["sub-1", "sub-2"], FILTERS)
    assert len(resources) == 1
    # First occurrence wins
    assert resources[0].subscription_id == "sub-1"


@pytest.mark.asyncio
async def test_filters_require_group_location_and_type(fake_client_cls) -> None:
    client = fake_client_cls(
        resources={
            "sub-1": {
                "value": [
                    _entry(SHARED_ID),
                    _entry(SHARED_ID.replace("rg1", "rg9"), name="wrong-group"),
                    _entry(SHARED_ID + "b", name="wrong-location", location="eastus"),
                    {
                        "id": "/subscriptions/sub-1/resourceGroups/rg1/providers/x/y",
                        "name": "wrong-type",
                        "type": "Microsoft.Storage/storageAccounts",
                        "location": "westeurope",
                    },
                ]
            }
        }
    )
    resources = await discover_resources(client, ["sub-1"], FILTERS)
    assert [r.name for r in resources] == ["vm1"]
    assert resources[0].resource_group == "rg1"


@pytest.mark.asyncio
async def test_subscription_ids_are_stringified(fake_client_cls) -> None:
    client = fake_client_cls()
    await discover_resources(client, [123], FILTERS)
    assert client.resource_calls == ["123"]


@pytest.mark.asyncio
async def test_any_failing_subscription_aborts(fake_client_cls) -> None:
    client = fake_client_cls(
        resources={
            "sub-1": {"value": [_entry(SHARED_ID)]},
            "sub-2": TransportError("connection refused"),
        }
    )
    with pytest.raises(TransportError):
        await discover_resources(client, ["sub-1", "sub-2", "sub-3"], FILTERS)
    assert client.resource_calls == ["sub-1", "sub-2"]


def test_matches_filter_with_unparseable_id() -> None:
    resource = Resource(
        id="not-an-arm-id",
        name="x",
        type=VM_TYPE,
        location="westeurope",
        subscription_id="s",
    )
    assert resource.resource_group == ""
    assert not matches_filter(resource, FILTERS)
