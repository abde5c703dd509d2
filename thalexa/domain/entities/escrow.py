from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class EscrowState(IntEnum):
    PENDING = 0
    ACCEPTED = 1
    IN_TRANSIT = 2
    DELIVERED = 3
    COMPLETED = 4
    DISPUTED = 5
    CANCELLED = 6

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


TERMINAL_ESCROW_STATES = frozenset({EscrowState.COMPLETED, EscrowState.CANCELLED})


@dataclass(frozen=True)
class TrackingUpdate:
    timestamp: int
    location: str
    status: str
    updated_by: str


@dataclass(frozen=True)
class EscrowContract:
    id: str
    buyer: str
    seller: str
    arbiter: str
    product_id: str
    amount: int
    state: EscrowState
    created_at: int
    accepted_at: int
    completed_at: int
    terms: str
    tracking_updates: tuple[TrackingUpdate, ...] = ()
