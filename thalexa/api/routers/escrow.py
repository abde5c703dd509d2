from __future__ import annotations

from fastapi import APIRouter, Depends

from thalexa.api.deps import get_chain_query_service, get_escrow_actions_use_case, get_signer
from thalexa.api.errors import to_http_exception
from thalexa.api.schemas.escrow import (
    CompleteEscrowRequest,
    CreateEscrowRequest,
    EscrowActionResponse,
    EscrowResponse,
    TrackingUpdateResponse,
    UpdateTrackingRequest,
)
from thalexa.application.dto.escrow import (
    CompleteEscrowInput,
    CreateEscrowInput,
    EscrowActionOutput,
    UpdateTrackingInput,
)
from thalexa.application.use_cases.chain_queries import ChainQueryService
from thalexa.application.use_cases.escrow_actions import EscrowActionsUseCase
from thalexa.application.use_cases.zklogin_common import ZkLoginSigner
from thalexa.domain.entities.escrow import EscrowContract
from thalexa.domain.exceptions import DomainError
from thalexa.domain.services.units import mist_to_sui


router = APIRouter()


def _action_response(output: EscrowActionOutput) -> EscrowActionResponse:
    return EscrowActionResponse(
        escrow_id=output.escrow_id,
        digest=output.digest,
        transaction_id=output.transaction_id,
        status=output.status,
    )


def _escrow_response(escrow: EscrowContract) -> EscrowResponse:
    return EscrowResponse(
        id=escrow.id,
        buyer=escrow.buyer,
        seller=escrow.seller,
        arbiter=escrow.arbiter,
        product_id=escrow.product_id,
        amount=escrow.amount,
        amount_sui=str(mist_to_sui(escrow.amount)),
        state=int(escrow.state),
        state_label=escrow.state.label,
        created_at=escrow.created_at,
        accepted_at=escrow.accepted_at,
        completed_at=escrow.completed_at,
        terms=escrow.terms,
        tracking_updates=[
            TrackingUpdateResponse(
                timestamp=update.timestamp,
                location=update.location,
                status=update.status,
                updated_by=update.updated_by,
            )
            for update in escrow.tracking_updates
        ],
    )


@router.post("/v1/escrows", response_model=EscrowActionResponse)
async def create_escrow(
    req: CreateEscrowRequest,
    signer: ZkLoginSigner = Depends(get_signer),
    use_case: EscrowActionsUseCase = Depends(get_escrow_actions_use_case),
):
    try:
        output = await use_case.create_escrow(
            CreateEscrowInput(
                seller=req.seller,
                arbiter=req.arbiter,
                product_id=req.product_id,
                amount=req.amount,
                terms=req.terms,
            ),
            signer=signer,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _action_response(output)


@router.post("/v1/escrows/{escrow_id}/accept", response_model=EscrowActionResponse)
async def accept_escrow(
    escrow_id: str,
    signer: ZkLoginSigner = Depends(get_signer),
    use_case: EscrowActionsUseCase = Depends(get_escrow_actions_use_case),
):
    try:
        output = await use_case.accept_escrow(escrow_id=escrow_id, signer=signer)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _action_response(output)


@router.post("/v1/escrows/{escrow_id}/tracking", response_model=EscrowActionResponse)
async def update_tracking(
    escrow_id: str,
    req: UpdateTrackingRequest,
    signer: ZkLoginSigner = Depends(get_signer),
    use_case: EscrowActionsUseCase = Depends(get_escrow_actions_use_case),
):
    try:
        output = await use_case.update_tracking(
            UpdateTrackingInput(escrow_id=escrow_id, location=req.location, status=req.status),
            signer=signer,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _action_response(output)


@router.post("/v1/escrows/{escrow_id}/complete", response_model=EscrowActionResponse)
async def complete_escrow(
    escrow_id: str,
    req: CompleteEscrowRequest | None = None,
    signer: ZkLoginSigner = Depends(get_signer),
    use_case: EscrowActionsUseCase = Depends(get_escrow_actions_use_case),
):
    seller = req.seller if req is not None else None
    try:
        output = await use_case.complete_escrow(
            CompleteEscrowInput(escrow_id=escrow_id, seller=seller),
            signer=signer,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _action_response(output)


@router.post("/v1/escrows/{escrow_id}/dispute", response_model=EscrowActionResponse)
async def dispute_escrow(
    escrow_id: str,
    signer: ZkLoginSigner = Depends(get_signer),
    use_case: EscrowActionsUseCase = Depends(get_escrow_actions_use_case),
):
    try:
        output = await use_case.dispute_escrow(escrow_id=escrow_id, signer=signer)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _action_response(output)


@router.post("/v1/escrows/{escrow_id}/cancel", response_model=EscrowActionResponse)
async def cancel_escrow(
    escrow_id: str,
    signer: ZkLoginSigner = Depends(get_signer),
    use_case: EscrowActionsUseCase = Depends(get_escrow_actions_use_case),
):
    try:
        output = await use_case.cancel_escrow(escrow_id=escrow_id, signer=signer)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _action_response(output)


@router.get("/v1/escrows/{escrow_id}", response_model=EscrowResponse)
async def get_escrow(
    escrow_id: str,
    chain_queries: ChainQueryService = Depends(get_chain_query_service),
):
    try:
        escrow = await chain_queries.get_escrow(escrow_id=escrow_id)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _escrow_response(escrow)


@router.get("/v1/addresses/{address}/escrows", response_model=list[EscrowResponse])
async def list_address_escrows(
    address: str,
    chain_queries: ChainQueryService = Depends(get_chain_query_service),
):
    try:
        escrows = await chain_queries.get_escrow_contracts(address=address)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return [_escrow_response(escrow) for escrow in escrows]
