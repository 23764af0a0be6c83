"""Recycler matching — nearby facilities joined against active registrations.

Tests cover:
    - consumer with active {P1, P2}: R1 (inventory {P1}) matches, R2 ({P3}) is kept empty
    - facilities beyond the radius are excluded, results ordered by distance
    - recycling-in-progress products do not match
    - organization name falls back to a placeholder
    - a failing inventory read leaves that facility in the results unmatched
"""

import pytest

from uemp.core import document_paths as paths
from uemp.core.documents import GeoPoint
from uemp.core.errors import ResourceNotFoundError
from uemp.core.matching import UNKNOWN_ORGANIZATION

HOME = GeoPoint(lat=12.9716, lng=77.5946)


async def _facility(store, rid, lat, lng, products, organization=None):
    await store.set(paths.facility_path(rid), {"location": {"lat": lat, "lng": lng}})
    for i, pid in enumerate(products):
        await store.set(paths.inventory_item_path(rid, f"{rid}-item-{i}"), {
            "productId": pid, "productName": f"Item {pid}", "price": 10, "points": 5,
        })
    if organization:
        await store.set(paths.organization_profile_path(rid), {"organization": organization})


async def _scan(store, consumer, pid, status="uninitiated"):
    await store.set(paths.scan_record_path(consumer, pid), {
        "serialNumber": f"SN-{pid}", "manufacturerId": "mfgA", "recycleStatus": status,
    })


@pytest.fixture
async def scenario(store):
    await _scan(store, "u1", "P1")
    await _scan(store, "u1", "P2")
    await _facility(store, "R1", 12.98, 77.60, ["P1"], organization="GreenCycle")
    await _facility(store, "R2", 13.00, 77.62, ["P3"])


async def test_matched_and_unmatched_facilities(matching, scenario):
    matches = await matching.find_nearby_matches(HOME, "u1")
    assert [m.facility.recycler_id for m in matches] == ["R1", "R2"]

    r1, r2 = matches
    assert [item.product_id for item in r1.matched_products] == ["P1"]
    assert r1.organization_name == "GreenCycle"
    assert r2.matched_products == []
    assert r2.organization_name == UNKNOWN_ORGANIZATION
    assert r1.distance_km < r2.distance_km


async def test_unmatched_facilities_can_be_dropped(matching, scenario):
    matches = await matching.find_nearby_matches(HOME, "u1", include_unmatched=False)
    assert [m.facility.recycler_id for m in matches] == ["R1"]


async def test_radius_excludes_distant_facilities(matching, store, scenario):
    await _facility(store, "R-far", 28.61, 77.21, ["P1"])  # Delhi, ~1700 km away
    matches = await matching.find_nearby_matches(HOME, "u1", max_distance_km=500)
    assert "R-far" not in [m.facility.recycler_id for m in matches]


async def test_products_being_recycled_do_not_match(matching, store, scenario):
    await _scan(store, "u1", "P1", status="started")
    matches = await matching.find_nearby_matches(HOME, "u1")
    assert all(m.matched_products == [] for m in matches)


async def test_facility_without_location_is_ignored(matching, store, scenario):
    await store.set(paths.facility_path("R-nowhere"), {"address": "unknown"})
    matches = await matching.find_nearby_matches(HOME, "u1")
    assert "R-nowhere" not in [m.facility.recycler_id for m in matches]


async def test_failing_inventory_read_keeps_facility_unmatched(matching, scenario, monkeypatch):
    original = matching.load_inventory

    async def flaky(recycler_id):
        if recycler_id == "R2":
            raise RuntimeError("read failed")
        return await original(recycler_id)

    monkeypatch.setattr(matching, "load_inventory", flaky)
    matches = await matching.find_nearby_matches(HOME, "u1")
    assert [m.facility.recycler_id for m in matches] == ["R1", "R2"]
    assert matches[1].matched_products == []

    matched_only = await matching.find_nearby_matches(HOME, "u1", include_unmatched=False)
    assert [m.facility.recycler_id for m in matched_only] == ["R1"]


async def test_matches_from_home_location(matching, store, scenario):
    await store.set(paths.home_location_path("u1"), {"location": HOME.to_document()})
    matches = await matching.find_matches_from_home("u1")
    assert [m.facility.recycler_id for m in matches] == ["R1", "R2"]


async def test_matches_from_home_without_saved_location(matching, scenario):
    with pytest.raises(ResourceNotFoundError):
        await matching.find_matches_from_home("u1")
