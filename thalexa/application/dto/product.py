from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PinnedContent:
    cid: str
    size: int
    timestamp: str
    gateway_url: str


@dataclass(frozen=True)
class ProductImage:
    content: bytes
    filename: str
    content_type: str


@dataclass(frozen=True)
class CreateProductInput:
    account_id: str
    name: str
    description: str
    category: str
    quantity: int
    unit_price: int
    currency: str
    manufacturer: str
    origin_location: str
    batch_number: str
    attributes: dict | None = None
    image: ProductImage | None = None


@dataclass(frozen=True)
class CreateProductOutput:
    product_id: str | None
    metadata_ipfs: str
    image_ipfs: str
    digest: str
    transaction_id: str
