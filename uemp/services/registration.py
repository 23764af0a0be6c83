"""Registration Service — binds a consumer to one product instance, and undoes it.

Invariants:
    - register() runs as ONE transaction reading the instance and the consumer's scan
      record for (consumerId, productId) before writing either
    - Any precondition failure aborts the transaction: no scan record, instance untouched
    - Only store-level conflicts are retried (inside the store); domain errors are terminal
    - unbind() is best-effort: it logs and returns on a missing/corrupt instance or any
      failure, and never raises
    - Deleting a scan record is the source of truth; unbind follows it

Design Decisions:
    - delete_scan_record runs the compensator inline after the delete commits rather than
      through a store trigger: the adapter has no change feed
"""

import logging
from dataclasses import dataclass

from uemp.core import document_paths as paths
from uemp.core.documents import ConsumerScanRecord, ProductInstance
from uemp.core.errors import (
    DataCorruptionError, ErrorContext, InvalidArgumentError, ResourceNotFoundError,
    UempError,
)
from uemp.core.field_ops import SERVER_TIMESTAMP
from uemp.core.registration_rules import (
    bind_updates, check_registration, unbind_updates, validate_registration_input,
)
from uemp.core.repository_protocols import DocumentStore, DocumentTransaction

logger = logging.getLogger(__name__)

REGISTERED_MESSAGE = "Product registered successfully!"


@dataclass
class RegistrationResult:
    success: bool
    message: str | None = None

    def to_response(self) -> dict:
        return {"success": self.success, "message": self.message}


class RegistrationService:
    """Consumer-side registration protocol and its compensating reversal."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def register(
        self,
        consumer_id: str | None,
        manufacturer_id: str | None,
        product_id: str | None,
        serial_number: str | None,
        model_number: str | None,
        secret_key: str | None,
    ) -> RegistrationResult:
        validate_registration_input(consumer_id, {
            "manufacturerId": manufacturer_id,
            "productId": product_id,
            "serialNumber": serial_number,
            "modelNumber": model_number,
            "secretKey": secret_key,
        })
        instance_path = paths.instance_path(manufacturer_id, product_id, serial_number)
        scan_path = paths.scan_record_path(consumer_id, product_id)

        async def bind(tx: DocumentTransaction) -> None:
            instance_doc = await tx.get(instance_path)
            scan_doc = await tx.get(scan_path)
            instance = check_registration(
                instance_doc, scan_doc, consumer_id, secret_key,
                manufacturer_id, product_id, serial_number,
            )
            record = ConsumerScanRecord(
                consumer_id=consumer_id,
                product_id=product_id,
                serial_number=serial_number,
                manufacturer_id=manufacturer_id,
                model_number=model_number,
                recycle_status=instance.recycle_status,
            )
            tx.set(scan_path, {**record.to_document(), "registeredAt": SERVER_TIMESTAMP})
            tx.update(instance_path, bind_updates(consumer_id, instance))

        log_extra = {
            "consumer_id": consumer_id, "manufacturer_id": manufacturer_id,
            "product_id": product_id, "serial_number": serial_number,
        }
        try:
            await self.store.run_transaction(bind)
        except UempError as e:
            logger.info(
                f"Registration refused: {e.message}",
                extra={**log_extra, "error_code": e.code},
            )
            raise
        logger.info("Product registered", extra=log_extra)
        return RegistrationResult(success=True, message=REGISTERED_MESSAGE)

    async def unbind(
        self,
        consumer_id: str,
        manufacturer_id: str,
        product_id: str,
        serial_number: str,
    ) -> bool:
        """Compensator for a deleted scan record. Returns True when the instance changed."""
        log_extra = {
            "consumer_id": consumer_id, "manufacturer_id": manufacturer_id,
            "product_id": product_id, "serial_number": serial_number,
        }
        try:
            instance_path = paths.instance_path(manufacturer_id, product_id, serial_number)
        except UempError as e:
            logger.warning(f"Cannot unbind, bad identifiers: {e.message}", extra=log_extra)
            return False

        async def release(tx: DocumentTransaction) -> bool:
            data = await tx.get(instance_path)
            if data is None:
                logger.warning("Product not found while unbinding; nothing to do", extra=log_extra)
                return False
            try:
                instance = ProductInstance.from_document(
                    data, manufacturer_id, product_id, serial_number,
                )
            except DataCorruptionError as e:
                logger.warning(f"Product data corrupted while unbinding: {e.reason}", extra=log_extra)
                return False
            updates = unbind_updates(consumer_id, instance)
            if updates is None:
                return False
            tx.update(instance_path, updates)
            return True

        try:
            changed = await self.store.run_transaction(release)
        except Exception as e:
            logger.error(f"Unbind failed: {e}", extra=log_extra, exc_info=True)
            return False
        if changed:
            logger.info("Manufacturer record updated after scan record deletion", extra=log_extra)
        return changed

    async def delete_scan_record(self, consumer_id: str, product_id: str) -> None:
        """Consumer removes a registered product; the instance is released afterwards."""
        scan_path = paths.scan_record_path(consumer_id, product_id)

        async def remove(tx: DocumentTransaction) -> dict:
            data = await tx.get(scan_path)
            if data is None:
                raise ResourceNotFoundError(
                    "Scan record", product_id, ErrorContext(consumer_id=consumer_id),
                )
            tx.delete(scan_path)
            return data

        data = await self.store.run_transaction(remove)
        await self._release_after_delete(consumer_id, product_id, data)

    async def _release_after_delete(
        self, consumer_id: str, product_id: str, data: dict,
    ) -> None:
        manufacturer_id = data.get("manufacturerId")
        serial_number = data.get("serialNumber")
        if not manufacturer_id or not serial_number:
            logger.warning(
                f"Missing or invalid product data for scan record {product_id}; not unbinding",
                extra={"consumer_id": consumer_id, "product_id": product_id},
            )
            return
        await self.unbind(consumer_id, manufacturer_id, product_id, serial_number)

    async def verify_scan_records(self, consumer_id: str) -> list[ConsumerScanRecord]:
        """Drop scan records whose backing instance is gone; return the survivors."""
        verified = []
        for path, data in await self.store.list_documents(
            paths.scan_records_collection(consumer_id),
        ):
            product_id = paths.document_id(path)
            try:
                record = ConsumerScanRecord.from_document(data, consumer_id, product_id)
                instance_path = paths.instance_path(
                    record.manufacturer_id, product_id, record.serial_number,
                )
            except (DataCorruptionError, InvalidArgumentError) as e:
                logger.warning(
                    f"Skipping invalid scan record {path}: {e.message}",
                    extra={"consumer_id": consumer_id},
                )
                continue
            instance = await self.store.get(instance_path)
            if instance is not None:
                verified.append(record)
                continue
            logger.warning(
                "Product not found in manufacturer database; deleting scan record",
                extra={
                    "consumer_id": consumer_id, "product_id": product_id,
                    "serial_number": record.serial_number,
                },
            )
            await self.store.delete(path)
            await self._release_after_delete(consumer_id, product_id, data)
        return verified

    async def get_scan_record(
        self, consumer_id: str, product_id: str,
    ) -> ConsumerScanRecord:
        data = await self.store.get(paths.scan_record_path(consumer_id, product_id))
        if data is None:
            raise ResourceNotFoundError("Scan record", product_id)
        return ConsumerScanRecord.from_document(data, consumer_id, product_id)
