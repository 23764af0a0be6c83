"""Recycling Request Service — opens requests and drives both state axes.

Invariants:
    - open_request requires the consumer's active scan record for the product and
      rejects a second request for the same (consumer, serial number) at one recycler
    - status and recycleStatus transitions are validated by core/request_state.py
      inside the same transaction that writes them
    - A recycleStatus change is written to the request, the consumer's scan record
      (local copy and embedded request) and the product instance atomically
    - The scan record is only touched while it still describes the request's unit;
      after a delete and re-register at the same product id it belongs to another serial
    - The rejection email is sent after the status commit; its failure is reported in
      the outcome and logged, never rolled back
    - delete_request_log has no server-side check that the rejection email went out

Design Decisions:
    - Duplicate detection uses a request-key document read inside the transaction,
      so two concurrent submissions cannot both pass the check
"""

import logging
import uuid
from dataclasses import dataclass

from uemp.core import document_paths as paths
from uemp.core.documents import ConsumerScanRecord, RecyclingRequest
from uemp.core.domain_types import RecycleStatus, RequestStatus
from uemp.core.errors import (
    AlreadyExistsError, DataCorruptionError, ErrorContext, InvalidArgumentError,
    InvalidTransitionError, ResourceNotFoundError, UnauthenticatedError,
)
from uemp.core.field_ops import SERVER_TIMESTAMP, utc_now_iso
from uemp.core.repository_protocols import (
    DocumentStore, DocumentTransaction, NotificationClient,
)
from uemp.core.request_state import check_recycle_transition, check_status_transition

logger = logging.getLogger(__name__)

REQUIRED_DETAILS: tuple[str, ...] = ("name", "phone", "address")


@dataclass
class RejectionOutcome:
    request: RecyclingRequest
    notification_sent: bool
    notification_error: str | None = None

    def to_response(self) -> dict:
        return {
            "success": True,
            "request": self.request.to_public(),
            "notificationSent": self.notification_sent,
            "notificationError": self.notification_error,
        }


def _require(value, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"Missing required field: {name}.", field=name)
    return value.strip()


class RecyclingRequestService:
    """Consumer-to-recycler take-back requests."""

    def __init__(
        self, store: DocumentStore, notifier: NotificationClient | None = None,
    ):
        self.store = store
        self.notifier = notifier

    # ─── Opening ─────────────────────────────────────────────────

    async def open_request(
        self,
        consumer_id: str | None,
        recycler_id: str,
        serial_number: str,
        product_id: str,
        details: dict | None,
        product_name: str,
    ) -> RecyclingRequest:
        if not consumer_id:
            raise UnauthenticatedError()
        recycler_id = _require(recycler_id, "recyclerId")
        serial_number = _require(serial_number, "serialNumber")
        product_id = _require(product_id, "productId")
        product_name = _require(product_name, "productName")
        details = details or {}
        for name in REQUIRED_DETAILS:
            _require(details.get(name), f"details.{name}")
        email = details.get("email")

        ctx = ErrorContext(
            consumer_id=consumer_id, recycler_id=recycler_id,
            product_id=product_id, serial_number=serial_number,
        )
        scan_path = paths.scan_record_path(consumer_id, product_id)
        facility_path = paths.facility_path(recycler_id)
        key_path = paths.request_key_path(recycler_id, consumer_id, serial_number)

        async def create(tx: DocumentTransaction) -> RecyclingRequest:
            scan_doc = await tx.get(scan_path)
            if scan_doc is None:
                raise ResourceNotFoundError("Registered product", product_id, ctx)
            record = ConsumerScanRecord.from_document(scan_doc, consumer_id, product_id)
            if record.serial_number != serial_number:
                raise InvalidArgumentError(
                    "Serial number does not match the registered product.",
                    field="serialNumber", context=ctx,
                )
            if not record.is_active:
                raise InvalidTransitionError(
                    "recycleStatus", record.recycle_status.value,
                    RecycleStatus.UNINITIATED.value, ctx,
                )
            if await tx.get(facility_path) is None:
                raise ResourceNotFoundError("Recycler", recycler_id, ctx)
            if await tx.get(key_path) is not None:
                raise AlreadyExistsError(
                    "You've already sent a request for this product.", ctx,
                )
            now = utc_now_iso()
            request = RecyclingRequest(
                query_id=str(uuid.uuid4()),
                recycler_id=recycler_id,
                consumer_id=consumer_id,
                product_id=product_id,
                serial_number=serial_number,
                product_name=product_name,
                manufacturer_id=record.manufacturer_id,
                consumer_name=details["name"].strip(),
                consumer_phone=details["phone"].strip(),
                consumer_address=details["address"].strip(),
                consumer_email=email.strip() if isinstance(email, str) and email.strip() else None,
                created_at=now,
                updated_at=now,
            )
            tx.set(paths.request_path(recycler_id, request.query_id), request.to_document())
            tx.set(key_path, {"queryId": request.query_id})
            tx.set(scan_path, {"recyclingRequest": request.to_embedded()}, merge=True)
            return request

        request = await self.store.run_transaction(create)
        logger.info(
            "Recycling request opened",
            extra={
                "consumer_id": consumer_id, "recycler_id": recycler_id,
                "query_id": request.query_id, "serial_number": serial_number,
            },
        )
        return request

    # ─── Reads ───────────────────────────────────────────────────

    async def get_request(self, recycler_id: str, query_id: str) -> RecyclingRequest:
        data = await self.store.get(paths.request_path(recycler_id, query_id))
        if data is None:
            raise ResourceNotFoundError("Recycling request", query_id)
        return RecyclingRequest.from_document(data, recycler_id, query_id)

    async def list_requests(
        self, recycler_id: str, status: RequestStatus | None = None,
    ) -> list[RecyclingRequest]:
        requests = []
        for path, data in await self.store.list_documents(
            paths.requests_collection(recycler_id),
        ):
            try:
                request = RecyclingRequest.from_document(
                    data, recycler_id, paths.document_id(path),
                )
            except DataCorruptionError as e:
                logger.warning(
                    f"Skipping malformed request {path}: {e.reason}",
                    extra={"recycler_id": recycler_id},
                )
                continue
            if status is None or request.status is status:
                requests.append(request)
        return requests

    # ─── Approval axis ───────────────────────────────────────────

    async def accept(self, recycler_id: str, query_id: str) -> RecyclingRequest:
        return await self._set_status(recycler_id, query_id, RequestStatus.ACCEPTED)

    async def reject(
        self, recycler_id: str, query_id: str, reason: str | None = None,
    ) -> RejectionOutcome:
        """Reject, then notify the consumer when a reason and an email are available."""
        request = await self._set_status(recycler_id, query_id, RequestStatus.REJECTED)
        if not reason or not reason.strip():
            return RejectionOutcome(request, notification_sent=False)
        return await self._notify(request, reason.strip())

    async def notify_rejection(
        self, recycler_id: str, query_id: str, reason: str,
    ) -> RejectionOutcome:
        """(Re)send the rejection email for an already rejected request."""
        reason = _require(reason, "reason")
        request = await self.get_request(recycler_id, query_id)
        if request.status is not RequestStatus.REJECTED:
            raise InvalidTransitionError(
                "status", request.status.value, RequestStatus.REJECTED.value,
            )
        return await self._notify(request, reason)

    async def _notify(self, request: RecyclingRequest, reason: str) -> RejectionOutcome:
        log_extra = {"recycler_id": request.recycler_id, "query_id": request.query_id}
        if not request.consumer_email:
            logger.info("No consumer email on request; rejection email skipped", extra=log_extra)
            return RejectionOutcome(request, False, "No consumer email found for this query.")
        if self.notifier is None:
            logger.warning("No notification client configured", extra=log_extra)
            return RejectionOutcome(request, False, "Notifications are not configured.")
        try:
            await self.notifier.send_rejection_email(
                recipient=request.consumer_email,
                product_name=request.product_name,
                reason=reason,
            )
        except Exception as e:
            logger.error(f"Failed to send rejection email: {e}", extra=log_extra)
            return RejectionOutcome(request, False, "Failed to send email.")
        return RejectionOutcome(request, notification_sent=True)

    async def _set_status(
        self, recycler_id: str, query_id: str, target: RequestStatus,
    ) -> RecyclingRequest:
        request_path = paths.request_path(recycler_id, query_id)

        async def transition(tx: DocumentTransaction) -> RecyclingRequest:
            data = await tx.get(request_path)
            if data is None:
                raise ResourceNotFoundError("Recycling request", query_id)
            request = RecyclingRequest.from_document(data, recycler_id, query_id)
            scan_path = paths.scan_record_path(request.consumer_id, request.product_id)
            scan_doc = await tx.get(scan_path)
            check_status_transition(request.status, target)

            request.status = target
            request.updated_at = utc_now_iso()
            tx.update(request_path, {"status": target.value, "updatedAt": request.updated_at})
            if _embeds(scan_doc, query_id):
                tx.update(scan_path, {"recyclingRequest.status": target.value})
            return request

        request = await self.store.run_transaction(transition)
        logger.info(
            f"Recycling request {target.value}",
            extra={"recycler_id": recycler_id, "query_id": query_id},
        )
        return request

    # ─── Recycling axis ──────────────────────────────────────────

    async def start_recycling(self, recycler_id: str, query_id: str) -> RecyclingRequest:
        return await self.advance_recycle_status(recycler_id, query_id, RecycleStatus.STARTED)

    async def finish_recycling(self, recycler_id: str, query_id: str) -> RecyclingRequest:
        return await self.advance_recycle_status(recycler_id, query_id, RecycleStatus.FINISHED)

    async def advance_recycle_status(
        self, recycler_id: str, query_id: str, target: RecycleStatus,
    ) -> RecyclingRequest:
        request_path = paths.request_path(recycler_id, query_id)

        async def advance(tx: DocumentTransaction) -> RecyclingRequest:
            data = await tx.get(request_path)
            if data is None:
                raise ResourceNotFoundError("Recycling request", query_id)
            request = RecyclingRequest.from_document(data, recycler_id, query_id)
            scan_path = paths.scan_record_path(request.consumer_id, request.product_id)
            scan_doc = await tx.get(scan_path)
            manufacturer_id = request.manufacturer_id or (scan_doc or {}).get("manufacturerId")
            instance_path = None
            instance_doc = None
            if manufacturer_id:
                instance_path = paths.instance_path(
                    manufacturer_id, request.product_id, request.serial_number,
                )
                instance_doc = await tx.get(instance_path)
            check_recycle_transition(request.recycle_status, target, request.status)

            now = utc_now_iso()
            request.recycle_status = target
            request.updated_at = now
            request_updates = {"recycleStatus": target.value, "updatedAt": now}
            if target is RecycleStatus.FINISHED:
                request.finished_at = now
                request_updates["finishedAt"] = now
            tx.update(request_path, request_updates)

            if _tracks(scan_doc, request):
                scan_updates = {"recycleStatus": target.value}
                if _embeds(scan_doc, query_id):
                    scan_updates["recyclingRequest.recycleStatus"] = target.value
                tx.update(scan_path, scan_updates)
            elif scan_doc is not None:
                logger.info(
                    "Scan record now holds another unit; left untouched",
                    extra={"recycler_id": recycler_id, "query_id": query_id},
                )
            if instance_doc is not None:
                tx.update(instance_path, {
                    "recycleStatus": target.value, "updatedAt": SERVER_TIMESTAMP,
                })
            else:
                logger.warning(
                    "Product instance missing; recycleStatus not mirrored",
                    extra={"recycler_id": recycler_id, "query_id": query_id},
                )
            return request

        request = await self.store.run_transaction(advance)
        logger.info(
            f"Recycling {target.value}",
            extra={"recycler_id": recycler_id, "query_id": query_id},
        )
        return request

    # ─── Log maintenance ─────────────────────────────────────────

    async def delete_request_log(self, recycler_id: str, query_id: str) -> None:
        request_path = paths.request_path(recycler_id, query_id)

        async def remove(tx: DocumentTransaction) -> None:
            data = await tx.get(request_path)
            if data is None:
                raise ResourceNotFoundError("Recycling request", query_id)
            request = RecyclingRequest.from_document(data, recycler_id, query_id)
            tx.delete(request_path)
            tx.delete(paths.request_key_path(
                recycler_id, request.consumer_id, request.serial_number,
            ))

        await self.store.run_transaction(remove)
        logger.info(
            "Recycling request log deleted",
            extra={"recycler_id": recycler_id, "query_id": query_id},
        )


def _embeds(scan_doc: dict | None, query_id: str) -> bool:
    """True when the scan record's embedded request is this one."""
    embedded = (scan_doc or {}).get("recyclingRequest")
    return isinstance(embedded, dict) and embedded.get("queryId") == query_id


def _tracks(scan_doc: dict | None, request: RecyclingRequest) -> bool:
    """True when the scan record at (consumer, product) is for the request's unit."""
    if scan_doc is None:
        return False
    return (
        scan_doc.get("serialNumber") == request.serial_number
        or _embeds(scan_doc, request.query_id)
    )
