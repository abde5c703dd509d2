from __future__ import annotations

from typing import Protocol

from thalexa.domain.entities.transaction import Transaction


class TransactionLedgerPort(Protocol):
    def upsert(self, transaction: Transaction) -> None:
        ...

    def get(self, *, transaction_id: str) -> Transaction | None:
        ...

    def list_for_address(self, *, address: str, limit: int = 50) -> list[Transaction]:
        ...
