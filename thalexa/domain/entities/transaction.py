from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


TransactionStatus = Literal["pending", "confirmed", "failed"]


@dataclass(frozen=True)
class Transaction:
    id: str
    sender: str
    receiver: str | None
    amount: int
    currency: str
    product_id: str | None
    escrow_id: str | None
    timestamp: int
    status: TransactionStatus
    tx_hash: str
    function: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class ChainEvent:
    id: str
    event_type: str
    sender: str | None
    timestamp_ms: int | None
    fields: dict


@dataclass(frozen=True)
class ObjectChange:
    change_type: str
    object_id: str
    object_type: str | None


@dataclass(frozen=True)
class ExecutionResult:
    digest: str
    status: str
    effects: dict
    events: tuple[ChainEvent, ...]
    object_changes: tuple[ObjectChange, ...]

    def created_object_id(self, type_suffix: str) -> str | None:
        for change in self.object_changes:
            if change.change_type != "created" or not change.object_type:
                continue
            if change.object_type.endswith(type_suffix):
                return change.object_id
        return None
