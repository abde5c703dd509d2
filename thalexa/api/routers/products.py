from __future__ import annotations

import base64
import binascii

from fastapi import APIRouter, Depends, HTTPException

from thalexa.api.deps import get_chain_query_service, get_product_actions_use_case, get_signer
from thalexa.api.errors import to_http_exception
from thalexa.api.schemas.products import (
    CreateProductRequest,
    CreateProductResponse,
    ProductImageRequest,
    ProductResponse,
    TransactionResultResponse,
)
from thalexa.application.dto.product import CreateProductInput, ProductImage
from thalexa.application.use_cases.chain_queries import ChainQueryService
from thalexa.application.use_cases.product_actions import ProductActionsUseCase
from thalexa.application.use_cases.zklogin_common import ZkLoginSigner
from thalexa.domain.entities.product import Product
from thalexa.domain.exceptions import DomainError


router = APIRouter()


def _decode_image(image: ProductImageRequest | None) -> ProductImage | None:
    if image is None:
        return None
    try:
        content = base64.b64decode(image.content_base64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail="image.content_base64 is not valid base64.") from exc
    return ProductImage(content=content, filename=image.filename, content_type=image.content_type)


def _product_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        creator=product.creator,
        name=product.name,
        description=product.description,
        category=product.category,
        metadata_ipfs=product.metadata_ipfs,
        image_ipfs=product.image_ipfs,
        quantity=product.quantity,
        unit_price=product.unit_price,
        currency=product.currency,
        manufacturer=product.manufacturer,
        origin_location=product.origin_location,
        batch_number=product.batch_number,
        created_at=product.created_at,
        verification_count=product.verification_count,
        is_verified=product.is_verified,
    )


@router.post("/v1/products", response_model=CreateProductResponse)
async def create_product(
    req: CreateProductRequest,
    signer: ZkLoginSigner = Depends(get_signer),
    use_case: ProductActionsUseCase = Depends(get_product_actions_use_case),
):
    image = _decode_image(req.image)
    try:
        output = await use_case.create_product(
            CreateProductInput(
                account_id=req.account_id,
                name=req.name,
                description=req.description,
                category=req.category,
                quantity=req.quantity,
                unit_price=req.unit_price,
                currency=req.currency,
                manufacturer=req.manufacturer,
                origin_location=req.origin_location,
                batch_number=req.batch_number,
                attributes=req.attributes,
                image=image,
            ),
            signer=signer,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    return CreateProductResponse(
        product_id=output.product_id,
        metadata_ipfs=output.metadata_ipfs,
        image_ipfs=output.image_ipfs,
        digest=output.digest,
        transaction_id=output.transaction_id,
    )


@router.post("/v1/products/{product_id}/verify", response_model=TransactionResultResponse)
async def verify_product(
    product_id: str,
    signer: ZkLoginSigner = Depends(get_signer),
    use_case: ProductActionsUseCase = Depends(get_product_actions_use_case),
):
    try:
        output = await use_case.verify_product(product_id=product_id, signer=signer)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return TransactionResultResponse(
        digest=output.digest,
        transaction_id=output.transaction_id,
        status=output.status,
    )


@router.get("/v1/products/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    chain_queries: ChainQueryService = Depends(get_chain_query_service),
):
    try:
        product = await chain_queries.get_product(product_id=product_id)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _product_response(product)


@router.get("/v1/addresses/{address}/products", response_model=list[ProductResponse])
async def list_address_products(
    address: str,
    chain_queries: ChainQueryService = Depends(get_chain_query_service),
):
    try:
        products = await chain_queries.get_user_products(address=address)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return [_product_response(product) for product in products]
