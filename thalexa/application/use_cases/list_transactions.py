from __future__ import annotations

from thalexa.application.ports.transaction_ledger_port import TransactionLedgerPort
from thalexa.domain.entities.transaction import Transaction
from thalexa.domain.services.units import is_valid_sui_address


MAX_PAGE_SIZE = 200


class ListTransactionsUseCase:
    def __init__(self, *, ledger: TransactionLedgerPort):
        self._ledger = ledger

    def execute(self, *, address: str, limit: int = 50) -> list[Transaction]:
        if not is_valid_sui_address(address):
            raise ValueError("address must be a 0x-prefixed 32-byte Sui address.")
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        return self._ledger.list_for_address(address=address.lower(), limit=limit)
