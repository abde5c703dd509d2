from __future__ import annotations

from pydantic import BaseModel, Field


class CreateEscrowRequest(BaseModel):
    seller: str = Field(..., min_length=66, max_length=66)
    arbiter: str = Field(..., min_length=66, max_length=66)
    product_id: str = Field(..., min_length=3)
    amount: int = Field(..., gt=0, description="Amount in MIST.")
    terms: str = Field(default="", max_length=4000)


class UpdateTrackingRequest(BaseModel):
    location: str = Field(..., min_length=1, max_length=500)
    status: str = Field(..., min_length=1, max_length=120)


class CompleteEscrowRequest(BaseModel):
    seller: str | None = None


class EscrowActionResponse(BaseModel):
    escrow_id: str | None
    digest: str
    transaction_id: str
    status: str


class TrackingUpdateResponse(BaseModel):
    timestamp: int
    location: str
    status: str
    updated_by: str


class EscrowResponse(BaseModel):
    id: str
    buyer: str
    seller: str
    arbiter: str
    product_id: str
    amount: int
    amount_sui: str
    state: int
    state_label: str
    created_at: int
    accepted_at: int
    completed_at: int
    terms: str
    tracking_updates: list[TrackingUpdateResponse]
