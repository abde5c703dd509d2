from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable

from thalexa.application.dto.product import CreateProductInput, CreateProductOutput
from thalexa.application.dto.transaction import TransactionOutput
from thalexa.application.ports.pinning_port import PinningPort
from thalexa.domain.entities.product import PRODUCT_CATEGORIES, ProductDraft
from thalexa.domain.exceptions import (
    InvalidCallArgumentError,
    NetworkError,
    PinningError,
    RejectedError,
    SessionExpiredError,
    SigningError,
)
from thalexa.domain.services.escrow_transactions import EscrowTransactionBuilder

from .execute_transaction import TransactionExecutor, now_ms
from .zklogin_common import ZkLoginSigner


logger = logging.getLogger(__name__)


def build_product_metadata(command: CreateProductInput, *, created_at: int) -> dict:
    return {
        "name": command.name,
        "description": command.description,
        "category": command.category,
        "manufacturer": command.manufacturer,
        "originLocation": command.origin_location,
        "batchNumber": command.batch_number,
        "quantity": command.quantity,
        "unitPrice": command.unit_price,
        "currency": command.currency,
        "createdAt": created_at,
        "attributes": dict(command.attributes or {}),
    }


class ProductActionsUseCase:
    def __init__(
        self,
        *,
        builder: EscrowTransactionBuilder,
        executor: TransactionExecutor,
        pinning: PinningPort,
        clock_ms: Callable[[], int] = now_ms,
    ):
        self._builder = builder
        self._executor = executor
        self._pinning = pinning
        self._clock_ms = clock_ms

    async def create_product(self, command: CreateProductInput, *, signer: ZkLoginSigner) -> CreateProductOutput:
        if command.category not in PRODUCT_CATEGORIES:
            raise InvalidCallArgumentError(f"Unknown product category: {command.category}.")
        draft = ProductDraft(
            name=command.name,
            description=command.description,
            category=command.category,
            metadata_ipfs="",
            image_ipfs="",
            quantity=command.quantity,
            unit_price=command.unit_price,
            currency=command.currency,
            manufacturer=command.manufacturer,
            origin_location=command.origin_location,
            batch_number=command.batch_number,
        )
        # Nothing is pinned for a product the chain call would refuse.
        self._builder.validate_product(account_id=command.account_id, product=draft)

        pinned_cids: list[str] = []
        image_cid = ""
        if command.image is not None:
            pinned_image = await self._pinning.upload_file(
                content=command.image.content,
                filename=command.image.filename,
                content_type=command.image.content_type,
                name=f"Thalexa Product Image - {command.name}",
                keyvalues={"type": "product-image", "productName": command.name},
            )
            image_cid = pinned_image.cid
            pinned_cids.append(image_cid)

        metadata = build_product_metadata(command, created_at=self._clock_ms())
        if image_cid:
            metadata["image"] = image_cid
        try:
            pinned_metadata = await self._pinning.upload_json(
                payload=metadata,
                name=f"Thalexa Product - {command.name}",
                keyvalues={
                    "type": "product",
                    "category": command.category,
                    "manufacturer": command.manufacturer,
                    "batchNumber": command.batch_number,
                },
            )
        except (PinningError, NetworkError):
            await self._release(pinned_cids)
            raise
        pinned_cids.append(pinned_metadata.cid)

        call = self._builder.create_product(
            account_id=command.account_id,
            product=replace(draft, metadata_ipfs=pinned_metadata.cid, image_ipfs=image_cid),
        )
        try:
            receipt = await self._executor.execute(call, signer=signer)
        except (RejectedError, SigningError, SessionExpiredError):
            # The transaction never landed; a NetworkError leaves the outcome unknown.
            await self._release(pinned_cids)
            raise
        logger.info(
            "product_actions: product_created product_id=%s metadata_cid=%s digest=%s",
            receipt.transaction.product_id,
            pinned_metadata.cid,
            receipt.digest,
        )
        return CreateProductOutput(
            product_id=receipt.transaction.product_id,
            metadata_ipfs=pinned_metadata.cid,
            image_ipfs=image_cid,
            digest=receipt.digest,
            transaction_id=receipt.transaction.id,
        )

    async def _release(self, cids: list[str]) -> None:
        for cid in cids:
            try:
                await self._pinning.unpin(cid=cid)
            except (PinningError, NetworkError) as exc:
                logger.warning("product_actions: unpin_failed cid=%s error=%s", cid, exc)

    async def verify_product(self, *, product_id: str, signer: ZkLoginSigner) -> TransactionOutput:
        receipt = await self._executor.execute(
            self._builder.verify_product(product_id=product_id),
            signer=signer,
        )
        return TransactionOutput(
            digest=receipt.digest,
            transaction_id=receipt.transaction.id,
            status=receipt.transaction.status,
        )
