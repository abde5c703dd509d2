from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProductDraft:
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


@dataclass(frozen=True)
class Product:
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


PRODUCT_CATEGORIES = (
    "Agriculture",
    "Pharmaceutical",
    "Luxury Goods",
    "Electronics",
    "Fashion & Apparel",
    "Food & Beverage",
    "Automotive",
    "Industrial Equipment",
    "Art & Collectibles",
    "Other",
)
