"""Error hierarchy — codes, statuses, retryability and the response envelope."""

import pytest

from uemp.core.errors import (
    AlreadyRegisteredByCallerError, AlreadyRegisteredByOtherError, DatabaseError,
    DataCorruptionError, ErrorContext, ExternalServiceError, InvalidTransitionError,
    PermissionDeniedError, ResourceNotFoundError, TransactionConflictError,
    UnauthenticatedError,
)


@pytest.mark.parametrize("error,code,status", [
    (UnauthenticatedError(), "UNAUTHENTICATED", 401),
    (ResourceNotFoundError("Product", "SN1"), "NOT_FOUND", 404),
    (PermissionDeniedError(), "PERMISSION_DENIED", 403),
    (InvalidTransitionError("status", "accepted", "rejected"), "INVALID_TRANSITION", 409),
    (DataCorruptionError("ProductInstance", "bad"), "DATA_CORRUPTION", 500),
    (DatabaseError("boom", "get"), "DATABASE_ERROR", 503),
    (TransactionConflictError("busy"), "TRANSACTION_CONFLICT", 409),
    (ExternalServiceError("geocoding", "down"), "EXTERNAL_SERVICE_ERROR", 502),
])
def test_codes_and_statuses(error, code, status):
    assert error.code == code
    assert error.http_status == status


def test_only_infrastructure_errors_are_retryable():
    assert TransactionConflictError("x").retryable
    assert DatabaseError("x", "get").retryable
    assert not PermissionDeniedError().retryable
    assert not DataCorruptionError("d", "r").retryable


def test_registration_sub_cases_are_distinguishable():
    by_caller = AlreadyRegisteredByCallerError()
    by_other = AlreadyRegisteredByOtherError()
    assert by_caller.message == "Product already scanned by this user."
    assert by_other.message == "This product is already registered."
    assert by_caller.http_status == by_other.http_status == 409


def test_response_envelope():
    response = PermissionDeniedError(
        context=ErrorContext(serial_number="SN001"),
    ).to_response()
    assert response["success"] is False
    assert response["error"]["message"] == "Incorrect secret key."
    assert response["error"]["retryable"] is False
    assert response["error"]["context"]["serial_number"] == "SN001"
