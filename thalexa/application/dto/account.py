from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CreateAccountInput:
    email: str


@dataclass(frozen=True)
class UpgradeSubscriptionInput:
    account_id: str
    tier: int
    payment_amount: int | None = None


@dataclass(frozen=True)
class AccountActionOutput:
    account_id: str | None
    digest: str
    transaction_id: str
