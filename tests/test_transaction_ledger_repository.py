from __future__ import annotations

from dataclasses import replace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from thalexa.application.use_cases.list_transactions import ListTransactionsUseCase
from thalexa.domain.entities.transaction import Transaction
from thalexa.infrastructure.db.engine import create_schema
from thalexa.infrastructure.db.mappers.transactions_mapper import map_row_to_transaction, map_transaction_to_params
from thalexa.infrastructure.db.repositories.transaction_ledger_repository import (
    InMemoryTransactionLedger,
    SqlTransactionLedgerRepository,
)


BUYER = "0x" + "5" * 64
SELLER = "0x" + "1" * 64


def _transaction(**overrides) -> Transaction:
    payload = {
        "id": "tx-1",
        "sender": BUYER,
        "receiver": SELLER,
        "amount": 4_000_000_000,
        "currency": "SUI",
        "product_id": "0xp",
        "escrow_id": None,
        "timestamp": 1_000,
        "status": "pending",
        "tx_hash": "",
        "function": "create_escrow",
    }
    payload.update(overrides)
    return Transaction(**payload)


def _sql_ledger() -> SqlTransactionLedgerRepository:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_schema(engine)
    return SqlTransactionLedgerRepository(engine)


def test_mapper_round_trips_a_row():
    transaction = _transaction(failure_reason="boom")
    assert map_row_to_transaction(map_transaction_to_params(transaction)) == transaction


def test_sql_upsert_updates_pending_record_in_place():
    ledger = _sql_ledger()
    pending = _transaction()
    ledger.upsert(pending)
    ledger.upsert(replace(pending, status="confirmed", tx_hash="D1", escrow_id="0xe1"))

    stored = ledger.get(transaction_id="tx-1")
    assert stored.status == "confirmed"
    assert stored.tx_hash == "D1"
    assert stored.escrow_id == "0xe1"
    assert stored.amount == 4_000_000_000
    assert ledger.get(transaction_id="missing") is None


def test_sql_history_matches_sender_or_receiver_newest_first():
    ledger = _sql_ledger()
    ledger.upsert(_transaction(id="tx-1", timestamp=1_000))
    ledger.upsert(_transaction(id="tx-2", timestamp=3_000, sender=SELLER, receiver=None))
    ledger.upsert(_transaction(id="tx-3", timestamp=2_000, sender="0x" + "9" * 64, receiver=None))

    assert [row.id for row in ledger.list_for_address(address=SELLER)] == ["tx-2", "tx-1"]
    assert [row.id for row in ledger.list_for_address(address=BUYER)] == ["tx-1"]
    assert [row.id for row in ledger.list_for_address(address=SELLER, limit=1)] == ["tx-2"]


def test_in_memory_ledger_orders_like_sql():
    ledger = InMemoryTransactionLedger()
    ledger.upsert(_transaction(id="tx-1", timestamp=1_000))
    ledger.upsert(_transaction(id="tx-2", timestamp=3_000))
    ledger.upsert(replace(_transaction(id="tx-1", timestamp=1_000), status="failed"))

    rows = ledger.list_for_address(address=BUYER)
    assert [row.id for row in rows] == ["tx-2", "tx-1"]
    assert rows[1].status == "failed"


def test_list_transactions_validates_address_and_clamps_limit():
    ledger = InMemoryTransactionLedger()
    for index in range(3):
        ledger.upsert(_transaction(id=f"tx-{index}", timestamp=index))
    use_case = ListTransactionsUseCase(ledger=ledger)

    with pytest.raises(ValueError):
        use_case.execute(address="0x12")
    assert [row.id for row in use_case.execute(address=BUYER, limit=0)] == ["tx-2"]
    assert len(use_case.execute(address=BUYER, limit=10_000)) == 3
