from __future__ import annotations

from threading import Lock

from sqlalchemy import text

from thalexa.application.ports.transaction_ledger_port import TransactionLedgerPort
from thalexa.domain.entities.transaction import Transaction
from thalexa.infrastructure.db.mappers.transactions_mapper import (
    map_row_to_transaction,
    map_transaction_to_params,
)


_COLUMNS = """
    id, sender, receiver, amount, currency, product_id, escrow_id,
    timestamp, status, tx_hash, function, failure_reason
"""


class SqlTransactionLedgerRepository(TransactionLedgerPort):
    def __init__(self, engine):
        self._engine = engine

    def upsert(self, transaction: Transaction) -> None:
        sql = f"""
            INSERT INTO escrow_transactions ({_COLUMNS})
            VALUES (
                :id, :sender, :receiver, :amount, :currency, :product_id, :escrow_id,
                :timestamp, :status, :tx_hash, :function, :failure_reason
            )
            ON CONFLICT (id) DO UPDATE SET
                receiver = excluded.receiver,
                amount = excluded.amount,
                product_id = excluded.product_id,
                escrow_id = excluded.escrow_id,
                timestamp = excluded.timestamp,
                status = excluded.status,
                tx_hash = excluded.tx_hash,
                function = excluded.function,
                failure_reason = excluded.failure_reason
        """
        with self._engine.begin() as conn:
            conn.execute(text(sql), map_transaction_to_params(transaction))

    def get(self, *, transaction_id: str) -> Transaction | None:
        sql = f"""
            SELECT {_COLUMNS}
            FROM escrow_transactions
            WHERE id = :id
            LIMIT 1
        """
        with self._engine.connect() as conn:
            row = conn.execute(text(sql), {"id": transaction_id}).mappings().first()
        if row is None:
            return None
        return map_row_to_transaction(row)

    def list_for_address(self, *, address: str, limit: int = 50) -> list[Transaction]:
        sql = f"""
            SELECT {_COLUMNS}
            FROM escrow_transactions
            WHERE sender = :address OR receiver = :address
            ORDER BY timestamp DESC, id
            LIMIT :limit
        """
        with self._engine.connect() as conn:
            rows = conn.execute(text(sql), {"address": address, "limit": limit}).mappings().all()
        return [map_row_to_transaction(row) for row in rows]


class InMemoryTransactionLedger(TransactionLedgerPort):
    def __init__(self):
        self._lock = Lock()
        self._rows: dict[str, Transaction] = {}

    def upsert(self, transaction: Transaction) -> None:
        with self._lock:
            self._rows[transaction.id] = transaction

    def get(self, *, transaction_id: str) -> Transaction | None:
        with self._lock:
            return self._rows.get(transaction_id)

    def list_for_address(self, *, address: str, limit: int = 50) -> list[Transaction]:
        with self._lock:
            rows = [
                row
                for row in self._rows.values()
                if row.sender == address or row.receiver == address
            ]
        rows.sort(key=lambda row: (-row.timestamp, row.id))
        return rows[:limit]
