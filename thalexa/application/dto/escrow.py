from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CreateEscrowInput:
    seller: str
    arbiter: str
    product_id: str
    amount: int
    terms: str


@dataclass(frozen=True)
class UpdateTrackingInput:
    escrow_id: str
    location: str
    status: str


@dataclass(frozen=True)
class CompleteEscrowInput:
    escrow_id: str
    seller: str | None = None


@dataclass(frozen=True)
class EscrowActionOutput:
    escrow_id: str | None
    digest: str
    transaction_id: str
    status: str
