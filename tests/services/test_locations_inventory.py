"""Locations and recycler inventory.

Tests cover:
    - saving a location without an address asks the geocoder; a given address wins
    - geocoder failures never fail the save, merge keeps other fields
    - inventory add/update/search/delete
"""

import pytest

from uemp.core import document_paths as paths
from uemp.core.errors import InvalidArgumentError, ResourceNotFoundError
from uemp.services.locations import LocationService


# ─── Locations ───────────────────────────────────────────────────

async def test_facility_location_is_geocoded(locations, geocoder, store):
    await store.set(paths.facility_path("R1"), {"capacity": 40})
    saved = await locations.save_facility_location("R1", 12.97, 77.59)
    assert saved["address"] == geocoder.address
    assert geocoder.calls == [(12.97, 77.59)]
    stored = await store.get(paths.facility_path("R1"))
    assert stored["location"] == {"lat": 12.97, "lng": 77.59}
    assert stored["capacity"] == 40


async def test_given_address_skips_geocoding(locations, geocoder, store):
    await locations.save_home_location("u1", 12.97, 77.59, "Home sweet home")
    assert geocoder.calls == []
    assert (await store.get(paths.home_location_path("u1")))["address"] == "Home sweet home"


async def test_geocoder_failure_leaves_address_unset(store):
    class BrokenGeocoder:
        async def reverse_geocode(self, lat, lng):
            raise RuntimeError("network down")

    service = LocationService(store, BrokenGeocoder())
    saved = await service.save_home_location("u1", 1.0, 2.0)
    assert saved["address"] is None
    assert "address" not in await store.get(paths.home_location_path("u1"))


async def test_invalid_coordinates_rejected(locations, store):
    with pytest.raises(InvalidArgumentError):
        await locations.save_facility_location("R1", 95.0, 0.0)
    assert await store.get(paths.facility_path("R1")) is None


# ─── Inventory ───────────────────────────────────────────────────

async def test_inventory_lifecycle(inventory):
    kettle = await inventory.add_inventory_item(
        "R1", "P1", {"productName": "Kettle", "category": "Kitchen", "price": 120, "points": 10},
    )
    await inventory.add_inventory_item("R1", "P2", {"productName": "Laptop", "category": "Computers"})

    updated = await inventory.update_inventory_item("R1", kettle.item_id, {"price": 150})
    assert updated.price == 150.0
    assert updated.product_name == "Kettle"

    assert [i.product_id for i in await inventory.search_inventory("R1", "kit")] == ["P1"]
    assert [i.product_id for i in await inventory.search_inventory("R1", "LAPTOP")] == ["P2"]
    assert len(await inventory.search_inventory("R1", "")) == 2

    await inventory.delete_inventory_item("R1", kettle.item_id)
    assert [i.product_id for i in await inventory.list_inventory("R1")] == ["P2"]


async def test_inventory_validation(inventory):
    with pytest.raises(InvalidArgumentError):
        await inventory.add_inventory_item("R1", "P1", {"price": 5})
    with pytest.raises(InvalidArgumentError):
        await inventory.add_inventory_item("R1", "P1", {"productName": "Kettle", "price": -1})


async def test_inventory_unknown_item(inventory):
    with pytest.raises(ResourceNotFoundError):
        await inventory.update_inventory_item("R1", "missing", {"price": 1})
    with pytest.raises(ResourceNotFoundError):
        await inventory.delete_inventory_item("R1", "missing")
