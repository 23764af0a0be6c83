"""Product Registry — creates and deduplicates product models and instances.

Invariants:
    - One ProductModel per (manufacturerId, name, category), resolved through the
      model-key index inside a transaction; repeated calls return the same productId
    - Descriptive attributes merge last-write-wins; identity fields never change
    - A ProductInstance is created once per (manufacturerId, productId, serialNumber)
    - instanceCount on the model moves in the same transaction as instance
      creation/deletion; the model (and its index entry) is deleted when it reaches zero
    - The PublicProductSummary is written after the instance commit; it is advisory
      and never carries the secret

Design Decisions:
    - instanceCount replaces a "scan siblings then delete" check, which could race
    - The public summary key (manufacturerId, serialNumber) is guarded inside the
      create transaction so two models cannot claim one serial number
"""

import logging
import uuid

from uemp.core import document_paths as paths
from uemp.core.documents import (
    ConsumerScanRecord, ProductInstance, ProductModel, PublicProductSummary,
)
from uemp.core.domain_types import RecycleStatus
from uemp.core.errors import (
    AlreadyExistsError, DataCorruptionError, ErrorContext,
    InvalidArgumentError, ResourceNotFoundError,
)
from uemp.core.field_ops import SERVER_TIMESTAMP, Increment
from uemp.core.qr_payload import encode_qr_payload
from uemp.core.repository_protocols import DocumentStore, DocumentTransaction
from uemp.core.secret_key import generate_secret_key

logger = logging.getLogger(__name__)

DESCRIPTIVE_ATTRS: dict[str, str] = {
    "recyclability": "recyclability",
    "recoverable_metals": "recoverableMetals",
}


def _descriptive_fields(attrs: dict | None) -> dict:
    """Accepts snake_case or camelCase keys; unknown keys are ignored."""
    attrs = attrs or {}
    fields = {}
    for snake, camel in DESCRIPTIVE_ATTRS.items():
        value = attrs.get(snake, attrs.get(camel))
        if value is not None:
            fields[camel] = str(value)
    return fields


def _require(value: str | None, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"Missing {name}.", field=name)
    return value.strip()


class ProductRegistry:
    """Manufacturer-side catalogue of models and serialized units."""

    def __init__(self, store: DocumentStore):
        self.store = store

    # ─── Models ──────────────────────────────────────────────────

    async def resolve_or_create_model(
        self, manufacturer_id: str, name: str, category: str, attrs: dict | None = None,
    ) -> str:
        """Return the productId for (name, category), creating the model if needed."""
        manufacturer_id = _require(manufacturer_id, "manufacturerId")
        name = _require(name, "name")
        category = _require(category, "category")
        key_path = paths.model_key_path(manufacturer_id, name, category)
        descriptive = _descriptive_fields(attrs)

        async def resolve(tx: DocumentTransaction) -> tuple[str, bool]:
            index = await tx.get(key_path)
            if index and isinstance(index.get("productId"), str):
                product_id = index["productId"]
                model_path = paths.model_path(manufacturer_id, product_id)
                if await tx.get(model_path) is not None:
                    tx.set(
                        model_path,
                        {**descriptive, "updatedAt": SERVER_TIMESTAMP},
                        merge=True,
                    )
                    return product_id, False
            product_id = uuid.uuid4().hex
            tx.set(key_path, {"productId": product_id, "name": name, "category": category})
            tx.set(paths.model_path(manufacturer_id, product_id), {
                "name": name,
                "category": category,
                **descriptive,
                "instanceCount": 0,
                "createdAt": SERVER_TIMESTAMP,
                "updatedAt": SERVER_TIMESTAMP,
            })
            return product_id, True

        product_id, created = await self.store.run_transaction(resolve)
        if created:
            logger.info(
                f"Created product model '{name}' ({category})",
                extra={"manufacturer_id": manufacturer_id, "product_id": product_id},
            )
        return product_id

    async def get_model(self, manufacturer_id: str, product_id: str) -> ProductModel:
        data = await self.store.get(paths.model_path(manufacturer_id, product_id))
        if data is None:
            raise ResourceNotFoundError("ProductModel", product_id)
        return ProductModel.from_document(data, manufacturer_id, product_id)

    async def list_models(self, manufacturer_id: str) -> list[ProductModel]:
        models = []
        for path, data in await self.store.list_documents(
            paths.models_collection(manufacturer_id),
        ):
            try:
                models.append(
                    ProductModel.from_document(data, manufacturer_id, paths.document_id(path)),
                )
            except DataCorruptionError as e:
                logger.warning(f"Skipping malformed model {path}: {e.reason}")
        return models

    # ─── Instances ───────────────────────────────────────────────

    async def create_instance(
        self,
        manufacturer_id: str,
        product_id: str,
        serial_number: str,
        attrs: dict | None = None,
    ) -> dict:
        """Create one serialized unit. Returns {secretKey, qrPayload}."""
        manufacturer_id = _require(manufacturer_id, "manufacturerId")
        product_id = _require(product_id, "productId")
        serial_number = _require(serial_number, "serialNumber")
        model_path = paths.model_path(manufacturer_id, product_id)
        instance_path = paths.instance_path(manufacturer_id, product_id, serial_number)
        summary_path = paths.public_summary_path(manufacturer_id, serial_number)
        qr_payload = encode_qr_payload(manufacturer_id, product_id, serial_number)
        ctx = ErrorContext(
            manufacturer_id=manufacturer_id, product_id=product_id,
            serial_number=serial_number,
        )
        descriptive = _descriptive_fields(attrs)

        async def create(tx: DocumentTransaction) -> tuple[str, ProductModel]:
            if await tx.get(instance_path) is not None:
                raise AlreadyExistsError(
                    f"Product instance '{serial_number}' already exists.", ctx,
                )
            model_doc = await tx.get(model_path)
            if model_doc is None:
                raise ResourceNotFoundError("ProductModel", product_id, ctx)
            model = ProductModel.from_document(model_doc, manufacturer_id, product_id)
            summary = await tx.get(summary_path)
            if summary is not None and summary.get("productId") != product_id:
                raise AlreadyExistsError(
                    f"Serial number '{serial_number}' is already used by another model.",
                    ctx,
                )
            secret_key = generate_secret_key()
            tx.set(instance_path, {
                "secretKey": secret_key,
                "registered": False,
                "registeredUsers": [],
                "userCount": 0,
                "recycleStatus": RecycleStatus.UNINITIATED.value,
                **descriptive,
                "createdAt": SERVER_TIMESTAMP,
                "updatedAt": SERVER_TIMESTAMP,
            })
            tx.update(model_path, {
                "instanceCount": Increment(1), "updatedAt": SERVER_TIMESTAMP,
            })
            return secret_key, model

        secret_key, model = await self.store.run_transaction(create)
        logger.info(
            "Created product instance",
            extra={
                "manufacturer_id": manufacturer_id, "product_id": product_id,
                "serial_number": serial_number,
            },
        )

        summary = PublicProductSummary(
            manufacturer_id=manufacturer_id,
            serial_number=serial_number,
            product_id=product_id,
            name=model.name,
            category=model.category,
            qr_payload=qr_payload,
        )
        await self.store.set(summary_path, summary.to_document())
        return {"secretKey": secret_key, "qrPayload": qr_payload}

    async def issue_product(
        self,
        manufacturer_id: str,
        name: str,
        category: str,
        serial_number: str,
        attrs: dict | None = None,
    ) -> dict:
        """Resolve the model for (name, category) and create the unit under it."""
        product_id = await self.resolve_or_create_model(
            manufacturer_id, name, category, attrs,
        )
        created = await self.create_instance(
            manufacturer_id, product_id, serial_number, attrs,
        )
        return {"productId": product_id, **created}

    async def get_instance(
        self, manufacturer_id: str, product_id: str, serial_number: str,
    ) -> ProductInstance:
        data = await self.store.get(
            paths.instance_path(manufacturer_id, product_id, serial_number),
        )
        if data is None:
            raise ResourceNotFoundError("Product", serial_number)
        return ProductInstance.from_document(
            data, manufacturer_id, product_id, serial_number,
        )

    async def list_instances(
        self, manufacturer_id: str, product_id: str,
    ) -> list[ProductInstance]:
        instances = []
        for path, data in await self.store.list_documents(
            paths.instances_collection(manufacturer_id, product_id),
        ):
            try:
                instances.append(ProductInstance.from_document(
                    data, manufacturer_id, product_id, paths.document_id(path),
                ))
            except DataCorruptionError as e:
                logger.warning(f"Skipping malformed instance {path}: {e.reason}")
        return instances

    async def delete_instance(
        self, manufacturer_id: str, product_id: str, serial_number: str,
    ) -> bool:
        """Delete the unit and its public summary. Returns True when the model went too."""
        model_path = paths.model_path(manufacturer_id, product_id)
        instance_path = paths.instance_path(manufacturer_id, product_id, serial_number)
        summary_path = paths.public_summary_path(manufacturer_id, serial_number)

        async def remove(tx: DocumentTransaction) -> bool:
            if await tx.get(instance_path) is None:
                raise ResourceNotFoundError("Product", serial_number)
            model_doc = await tx.get(model_path)
            if model_doc is None:
                tx.delete(instance_path)
                return False
            model = ProductModel.from_document(model_doc, manufacturer_id, product_id)
            tx.delete(instance_path)
            if model.instance_count <= 1:
                tx.delete(model_path)
                tx.delete(paths.model_key_path(manufacturer_id, model.name, model.category))
                return True
            tx.update(model_path, {
                "instanceCount": Increment(-1), "updatedAt": SERVER_TIMESTAMP,
            })
            return False

        model_deleted = await self.store.run_transaction(remove)
        summary = await self.store.get(summary_path)
        if summary is not None and summary.get("productId") == product_id:
            await self.store.delete(summary_path)
        logger.info(
            f"Deleted product instance (model deleted: {model_deleted})",
            extra={
                "manufacturer_id": manufacturer_id, "product_id": product_id,
                "serial_number": serial_number,
            },
        )
        return model_deleted

    # ─── Projections ─────────────────────────────────────────────

    async def get_public_summary(
        self, manufacturer_id: str, serial_number: str,
    ) -> PublicProductSummary:
        data = await self.store.get(
            paths.public_summary_path(manufacturer_id, serial_number),
        )
        if data is None:
            raise ResourceNotFoundError("Product", serial_number)
        return PublicProductSummary.from_document(data, manufacturer_id, serial_number)

    async def list_registered_products(
        self, consumer_id: str, include_inactive: bool = False,
    ) -> list[ConsumerScanRecord]:
        """The consumer's scan records; recycling-in-progress items only when asked."""
        records = []
        for path, data in await self.store.list_documents(
            paths.scan_records_collection(consumer_id),
        ):
            try:
                record = ConsumerScanRecord.from_document(
                    data, consumer_id, paths.document_id(path),
                )
            except DataCorruptionError as e:
                logger.warning(
                    f"Skipping malformed scan record {path}: {e.reason}",
                    extra={"consumer_id": consumer_id},
                )
                continue
            if include_inactive or record.is_active:
                records.append(record)
        return records
