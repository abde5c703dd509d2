from __future__ import annotations

from pydantic import BaseModel, Field


class CreateAccountRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)


class UpgradeSubscriptionRequest(BaseModel):
    tier: int = Field(..., ge=0)
    payment_amount: int | None = Field(default=None, ge=0)


class AccountActionResponse(BaseModel):
    account_id: str | None
    digest: str
    transaction_id: str


class SubscriptionTierResponse(BaseModel):
    id: int
    code: str
    name: str
    price_mist: int
    price_sui: str
    monthly_volume_limit: int | None
    products_per_month: int | None
    transactions_per_day: int | None


class UserAccountResponse(BaseModel):
    address: str
    email_hash: str | None
    subscription_tier: int
    subscription_expires: int
    monthly_volume: int
    products_created: int
    is_verified: bool
    created_at: int


class BalanceResponse(BaseModel):
    address: str
    balance_mist: int
    balance_sui: str


class GasResponse(BaseModel):
    ok: bool


class TransactionResponse(BaseModel):
    id: str
    sender: str
    receiver: str | None
    amount: int
    currency: str
    product_id: str | None
    escrow_id: str | None
    timestamp: int
    status: str
    tx_hash: str
    function: str | None
    failure_reason: str | None


class ChainEventResponse(BaseModel):
    id: str
    event_type: str
    sender: str | None
    timestamp_ms: int | None
    fields: dict


class EventsPageResponse(BaseModel):
    events: list[ChainEventResponse]
    next_cursor: dict | None
    has_next_page: bool
