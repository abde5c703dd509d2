from __future__ import annotations

import logging

from thalexa.application.dto.escrow import (
    CompleteEscrowInput,
    CreateEscrowInput,
    EscrowActionOutput,
    UpdateTrackingInput,
)
from thalexa.application.dto.transaction import TransactionReceipt
from thalexa.domain.entities.move_call import MoveCall
from thalexa.domain.services.escrow_transactions import EscrowTransactionBuilder

from .execute_transaction import TransactionExecutor
from .zklogin_common import ZkLoginSigner


logger = logging.getLogger(__name__)


def build_escrow_output(receipt: TransactionReceipt) -> EscrowActionOutput:
    return EscrowActionOutput(
        escrow_id=receipt.transaction.escrow_id,
        digest=receipt.digest,
        transaction_id=receipt.transaction.id,
        status=receipt.transaction.status,
    )


class EscrowActionsUseCase:
    """Escrow lifecycle calls signed by the caller's zkLogin session.

    State preconditions are enforced by the chain; a refused transition comes
    back as ``RejectedError`` with the chain's reason.
    """

    def __init__(self, *, builder: EscrowTransactionBuilder, executor: TransactionExecutor):
        self._builder = builder
        self._executor = executor

    async def create_escrow(self, command: CreateEscrowInput, *, signer: ZkLoginSigner) -> EscrowActionOutput:
        call = self._builder.create_escrow(
            seller=command.seller,
            arbiter=command.arbiter,
            product_id=command.product_id,
            amount=command.amount,
            terms=command.terms,
        )
        return await self._run(call, signer)

    async def accept_escrow(self, *, escrow_id: str, signer: ZkLoginSigner) -> EscrowActionOutput:
        return await self._run(self._builder.accept_escrow(escrow_id=escrow_id), signer)

    async def update_tracking(self, command: UpdateTrackingInput, *, signer: ZkLoginSigner) -> EscrowActionOutput:
        call = self._builder.update_tracking(
            escrow_id=command.escrow_id,
            location=command.location,
            status=command.status,
        )
        return await self._run(call, signer)

    async def complete_escrow(self, command: CompleteEscrowInput, *, signer: ZkLoginSigner) -> EscrowActionOutput:
        call = self._builder.complete_escrow(escrow_id=command.escrow_id, seller=command.seller)
        return await self._run(call, signer)

    async def dispute_escrow(self, *, escrow_id: str, signer: ZkLoginSigner) -> EscrowActionOutput:
        return await self._run(self._builder.dispute_escrow(escrow_id=escrow_id), signer)

    async def cancel_escrow(self, *, escrow_id: str, signer: ZkLoginSigner) -> EscrowActionOutput:
        return await self._run(self._builder.cancel_escrow(escrow_id=escrow_id), signer)

    async def _run(self, call: MoveCall, signer: ZkLoginSigner) -> EscrowActionOutput:
        receipt = await self._executor.execute(call, signer=signer)
        logger.info(
            "escrow_actions: %s escrow_id=%s digest=%s",
            call.function,
            receipt.transaction.escrow_id,
            receipt.digest,
        )
        return build_escrow_output(receipt)
