"""Registration rules — precondition order and bind/unbind field updates.

Tests cover:
    - identity checked before field presence
    - NotFound → ByCaller → ByOther → DataCorruption → PermissionDenied order
    - bind/unbind keep userCount aligned with registeredUsers
    - unbind only clears registeredBy for the consumer that holds it
"""

import pytest

from uemp.core.documents import ProductInstance
from uemp.core.errors import (
    AlreadyRegisteredByCallerError, AlreadyRegisteredByOtherError, DataCorruptionError,
    InvalidArgumentError, PermissionDeniedError, ResourceNotFoundError,
    UnauthenticatedError,
)
from uemp.core.field_ops import DELETE_FIELD, WriteOp, apply_write
from uemp.core.registration_rules import (
    bind_updates, check_registration, unbind_updates, validate_registration_input,
)

IDS = ("mfgA", "modelX", "SN001")


def _payload(**overrides) -> dict:
    payload = {
        "manufacturerId": "mfgA", "productId": "modelX", "serialNumber": "SN001",
        "modelNumber": "KX-1", "secretKey": "K3y",
    }
    payload.update(overrides)
    return payload


def _instance_doc(**overrides) -> dict:
    doc = {"secretKey": "K3y", "registered": False, "registeredUsers": [], "userCount": 0}
    doc.update(overrides)
    return doc


def _check(instance_doc, scan_doc=None, consumer="u1", secret="K3y"):
    return check_registration(instance_doc, scan_doc, consumer, secret, *IDS)


# ─── Input validation ────────────────────────────────────────────

def test_missing_identity_wins_over_missing_fields():
    with pytest.raises(UnauthenticatedError):
        validate_registration_input(None, {})


def test_missing_field_is_invalid_argument():
    with pytest.raises(InvalidArgumentError) as exc:
        validate_registration_input("u1", _payload(secretKey="  "))
    assert exc.value.field == "secretKey"


def test_complete_input_passes():
    validate_registration_input("u1", _payload())


# ─── Precondition order ──────────────────────────────────────────

def test_absent_instance_is_not_found():
    with pytest.raises(ResourceNotFoundError):
        _check(None, scan_doc={"serialNumber": "SN001"})


def test_existing_scan_record_is_already_registered_by_caller():
    with pytest.raises(AlreadyRegisteredByCallerError):
        _check(_instance_doc(registeredBy="u2", registeredUsers=["u2"], userCount=1),
               scan_doc={"serialNumber": "SN002"})


def test_owned_instance_is_already_registered_by_other():
    with pytest.raises(AlreadyRegisteredByOtherError) as exc:
        _check(_instance_doc(registeredBy="u2", registeredUsers=["u2"], userCount=1))
    assert exc.value.message == "This product is already registered."


def test_owned_corrupt_instance_still_reports_other_owner():
    with pytest.raises(AlreadyRegisteredByOtherError):
        _check({"registeredBy": "u2"})


def test_corrupt_instance_is_data_corruption():
    with pytest.raises(DataCorruptionError):
        _check({"registered": False})


def test_wrong_secret_is_permission_denied():
    with pytest.raises(PermissionDeniedError) as exc:
        _check(_instance_doc(), secret="k3y")
    assert exc.value.http_status == 403


def test_valid_registration_returns_instance():
    instance = _check(_instance_doc())
    assert instance.serial_number == "SN001"


# ─── bind / unbind ───────────────────────────────────────────────

def _apply(doc: dict, updates: dict) -> dict:
    return apply_write(doc, WriteOp("update", updates), "p", "now")


def test_bind_then_unbind_restores_counters():
    doc = _instance_doc()
    bound = _apply(doc, bind_updates("u1", ProductInstance.from_document(doc, *IDS)))
    assert bound["registeredBy"] == "u1"
    assert bound["registeredUsers"] == ["u1"]
    assert bound["userCount"] == 1

    released = _apply(bound, unbind_updates("u1", ProductInstance.from_document(bound, *IDS)))
    assert "registeredBy" not in released
    assert released["registered"] is False
    assert released["registeredUsers"] == []
    assert released["userCount"] == 0


def test_unbind_other_consumer_keeps_owner():
    doc = _instance_doc(registeredBy="u1", registeredUsers=["u1", "u2"], userCount=2)
    updates = unbind_updates("u2", ProductInstance.from_document(doc, *IDS))
    assert "registeredBy" not in updates
    released = _apply(doc, updates)
    assert released["registeredBy"] == "u1"
    assert released["userCount"] == 1


def test_unbind_unknown_consumer_is_noop():
    doc = _instance_doc(registeredBy="u1", registeredUsers=["u1"], userCount=1)
    assert unbind_updates("u9", ProductInstance.from_document(doc, *IDS)) is None


def test_unbind_owner_deletes_registered_by():
    doc = _instance_doc(registeredBy="u1", registeredUsers=["u1"], userCount=1)
    assert unbind_updates("u1", ProductInstance.from_document(doc, *IDS))["registeredBy"] is DELETE_FIELD
