from __future__ import annotations

from dataclasses import dataclass

from thalexa.domain.entities.transaction import ExecutionResult, Transaction


@dataclass(frozen=True)
class TransactionReceipt:
    transaction: Transaction
    result: ExecutionResult

    @property
    def digest(self) -> str:
        return self.result.digest


@dataclass(frozen=True)
class TransactionOutput:
    digest: str
    transaction_id: str
    status: str
