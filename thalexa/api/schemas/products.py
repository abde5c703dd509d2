from __future__ import annotations

from pydantic import BaseModel, Field


class ProductImageRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(..., min_length=1)
    content_base64: str = Field(..., min_length=1)


class CreateProductRequest(BaseModel):
    account_id: str = Field(..., min_length=3)
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=4000)
    category: str
    quantity: int = Field(..., gt=0)
    unit_price: int = Field(..., ge=0, description="Unit price in MIST.")
    currency: str = Field(default="SUI", min_length=1, max_length=16)
    manufacturer: str = Field(default="", max_length=200)
    origin_location: str = Field(default="", max_length=200)
    batch_number: str = Field(default="", max_length=120)
    attributes: dict | None = None
    image: ProductImageRequest | None = None


class CreateProductResponse(BaseModel):
    product_id: str | None
    metadata_ipfs: str
    image_ipfs: str
    digest: str
    transaction_id: str


class TransactionResultResponse(BaseModel):
    digest: str
    transaction_id: str
    status: str


class ProductResponse(BaseModel):
    id: str
    creator: str
    name: str
    description: str
    category: str
    metadata_ipfs: str
    image_ipfs: str
    quantity: int
    unit_price: int
    currency: str
    manufacturer: str
    origin_location: str
    batch_number: str
    created_at: int
    verification_count: int
    is_verified: bool
