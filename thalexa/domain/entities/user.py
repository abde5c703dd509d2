from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    address: str
    email_hash: str | None
    subscription_tier: int
    subscription_expires: int
    monthly_volume: int
    products_created: int
    is_verified: bool
    created_at: int
