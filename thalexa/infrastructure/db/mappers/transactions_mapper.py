from __future__ import annotations

from thalexa.domain.entities.transaction import Transaction


def map_row_to_transaction(row) -> Transaction:
    return Transaction(
        id=str(row["id"]),
        sender=str(row["sender"]),
        receiver=row["receiver"],
        amount=int(row["amount"]),
        currency=str(row["currency"]),
        product_id=row["product_id"],
        escrow_id=row["escrow_id"],
        timestamp=int(row["timestamp"]),
        status=row["status"],
        tx_hash=str(row["tx_hash"] or ""),
        function=row["function"],
        failure_reason=row["failure_reason"],
    )


def map_transaction_to_params(transaction: Transaction) -> dict:
    return {
        "id": transaction.id,
        "sender": transaction.sender,
        "receiver": transaction.receiver,
        "amount": transaction.amount,
        "currency": transaction.currency,
        "product_id": transaction.product_id,
        "escrow_id": transaction.escrow_id,
        "timestamp": transaction.timestamp,
        "status": transaction.status,
        "tx_hash": transaction.tx_hash,
        "function": transaction.function,
        "failure_reason": transaction.failure_reason,
    }
