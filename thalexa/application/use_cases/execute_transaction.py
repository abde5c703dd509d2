from __future__ import annotations

import base64
import logging
from dataclasses import replace
from typing import Callable

from thalexa.application.dto.transaction import TransactionReceipt
from thalexa.application.ports.chain_rpc_port import ChainRpcPort
from thalexa.application.ports.transaction_ledger_port import TransactionLedgerPort
from thalexa.domain.entities.move_call import MoveCall
from thalexa.domain.entities.transaction import Transaction
from thalexa.domain.exceptions import NetworkError, RejectedError
from thalexa.domain.services.chain_objects import execution_failure_reason, map_execution_response

from .zklogin_common import ZkLoginSigner, utcnow


logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(utcnow().timestamp() * 1000)


class TransactionExecutor:
    """Signs, submits and records one ``MoveCall``.

    The ledger id is the call digest for the signing address, so resubmitting
    the same call after a ``NetworkError`` updates the existing record.
    There is no retry loop here; retries are the caller's decision.
    """

    def __init__(
        self,
        *,
        chain_rpc: ChainRpcPort,
        ledger: TransactionLedgerPort,
        clock_ms: Callable[[], int] = now_ms,
    ):
        self._chain_rpc = chain_rpc
        self._ledger = ledger
        self._clock_ms = clock_ms

    async def execute(self, call: MoveCall, *, signer: ZkLoginSigner) -> TransactionReceipt:
        sender = signer.address
        tx_bytes = call.to_bytes(sender=sender)
        signature = signer.sign(tx_bytes)

        pending = Transaction(
            id=call.digest(sender=sender),
            sender=sender,
            receiver=call.receiver,
            amount=call.amount,
            currency=call.currency,
            product_id=call.product_id,
            escrow_id=call.escrow_id,
            timestamp=self._clock_ms(),
            status="pending",
            tx_hash="",
            function=call.function,
        )
        self._ledger.upsert(pending)

        try:
            raw = await self._chain_rpc.execute_transaction_block(
                tx_bytes=base64.b64encode(tx_bytes).decode("ascii"),
                signatures=[signature],
            )
        except NetworkError:
            logger.warning(
                "transaction_executor: network_error function=%s tx_id=%s",
                call.function,
                pending.id,
            )
            raise
        except RejectedError as exc:
            self._ledger.upsert(
                replace(pending, status="failed", tx_hash=exc.tx_hash or "", failure_reason=exc.reason)
            )
            logger.info(
                "transaction_executor: rejected function=%s tx_id=%s reason=%s",
                call.function,
                pending.id,
                exc.reason,
            )
            raise

        result = map_execution_response(raw)
        if result.status != "success":
            reason = execution_failure_reason(result)
            self._ledger.upsert(
                replace(pending, status="failed", tx_hash=result.digest, failure_reason=reason)
            )
            logger.info(
                "transaction_executor: execution_failed function=%s digest=%s reason=%s",
                call.function,
                result.digest,
                reason,
            )
            raise RejectedError(reason, tx_hash=result.digest)

        confirmed = replace(
            pending,
            status="confirmed",
            tx_hash=result.digest,
            product_id=call.product_id or result.created_object_id("::Product"),
            escrow_id=call.escrow_id or result.created_object_id("::EscrowContract"),
        )
        self._ledger.upsert(confirmed)
        logger.info(
            "transaction_executor: confirmed function=%s digest=%s sender=%s",
            call.function,
            result.digest,
            sender,
        )
        return TransactionReceipt(transaction=confirmed, result=result)
