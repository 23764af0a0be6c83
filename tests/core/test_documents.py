"""Typed documents — parsing stored maps into entities.

Tests cover:
    - ProductInstance enforces userCount == len(registeredUsers) and owner membership
    - private/public views never carry the secret
    - ConsumerScanRecord activity follows recycleStatus
    - bad shapes raise DataCorruptionError
"""

import pytest

from uemp.core.documents import (
    ConsumerScanRecord, GeoPoint, InventoryItem, ProductInstance, ProductModel,
    RecyclerFacility, RecyclingRequest,
)
from uemp.core.domain_types import RecycleStatus, RequestStatus
from uemp.core.errors import DataCorruptionError


def test_instance_parses_and_hides_secret():
    instance = ProductInstance.from_document(
        {"secretKey": "K3y", "registeredBy": "u1", "registeredUsers": ["u1"], "userCount": 1},
        "mfgA", "modelX", "SN001",
    )
    assert instance.registered_by == "u1"
    assert instance.recycle_status is RecycleStatus.UNINITIATED
    assert "secretKey" not in instance.to_private()


def test_instance_user_count_mismatch_is_corruption():
    with pytest.raises(DataCorruptionError):
        ProductInstance.from_document(
            {"secretKey": "K", "registeredUsers": ["u1"], "userCount": 2}, "m", "p", "s",
        )


def test_instance_owner_outside_users_is_corruption():
    with pytest.raises(DataCorruptionError):
        ProductInstance.from_document(
            {"secretKey": "K", "registeredBy": "u2", "registeredUsers": ["u1"], "userCount": 1},
            "m", "p", "s",
        )


def test_instance_unknown_recycle_status_is_corruption():
    with pytest.raises(DataCorruptionError):
        ProductInstance.from_document({"secretKey": "K", "recycleStatus": "melted"}, "m", "p", "s")


def test_model_defaults_instance_count():
    model = ProductModel.from_document({"name": "Kettle", "category": "Electronics"}, "m", "p")
    assert model.instance_count == 0


def test_scan_record_activity():
    active = ConsumerScanRecord.from_document(
        {"serialNumber": "SN1", "manufacturerId": "m"}, "u1", "p",
    )
    started = ConsumerScanRecord.from_document(
        {"serialNumber": "SN1", "manufacturerId": "m", "recycleStatus": "started"}, "u1", "p",
    )
    assert active.is_active
    assert not started.is_active


def test_scan_record_missing_serial_is_corruption():
    with pytest.raises(DataCorruptionError):
        ConsumerScanRecord.from_document({"manufacturerId": "m"}, "u1", "p")


def test_geo_point_requires_numbers():
    with pytest.raises(DataCorruptionError):
        GeoPoint.from_document({"lat": "12", "lng": 77})


def test_facility_without_location():
    assert RecyclerFacility.from_document({}, "r1").location is None


def test_inventory_item_round_trip_fields():
    item = InventoryItem.from_document(
        {"productId": "P1", "productName": "Kettle", "price": 12, "points": 5}, "r1", "i1",
    )
    assert item.price == 12.0
    assert item.to_public()["id"] == "i1"


def test_request_embedded_copy():
    request = RecyclingRequest(
        query_id="q1", recycler_id="r1", consumer_id="u1", product_id="P1",
        serial_number="SN1", product_name="Kettle", created_at="t0",
    )
    embedded = request.to_embedded()
    assert embedded["queryId"] == "q1"
    assert embedded["status"] == RequestStatus.PENDING.value
    assert embedded["recycleStatus"] == RecycleStatus.UNINITIATED.value
    parsed = RecyclingRequest.from_document(request.to_document(), "r1", "q1")
    assert parsed == request
