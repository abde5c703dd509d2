from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Query

from thalexa.api.deps import (
    get_account_actions_use_case,
    get_chain_query_service,
    get_faucet_client,
    get_list_transactions_use_case,
    get_signer,
    get_subscription_tiers,
)
from thalexa.api.errors import to_http_exception
from thalexa.api.schemas.accounts import (
    AccountActionResponse,
    BalanceResponse,
    ChainEventResponse,
    CreateAccountRequest,
    EventsPageResponse,
    GasResponse,
    SubscriptionTierResponse,
    TransactionResponse,
    UpgradeSubscriptionRequest,
    UserAccountResponse,
)
from thalexa.application.dto.account import AccountActionOutput, CreateAccountInput, UpgradeSubscriptionInput
from thalexa.application.ports.faucet_port import FaucetPort
from thalexa.application.use_cases.account_actions import AccountActionsUseCase
from thalexa.application.use_cases.chain_queries import ChainQueryService
from thalexa.application.use_cases.list_transactions import ListTransactionsUseCase
from thalexa.application.use_cases.zklogin_common import ZkLoginSigner
from thalexa.domain.entities.subscription import SubscriptionTier
from thalexa.domain.exceptions import DomainError
from thalexa.domain.services.units import is_valid_sui_address, mist_to_sui


router = APIRouter()


def _action_response(output: AccountActionOutput) -> AccountActionResponse:
    return AccountActionResponse(
        account_id=output.account_id,
        digest=output.digest,
        transaction_id=output.transaction_id,
    )


def _require_address(address: str) -> str:
    if not is_valid_sui_address(address):
        raise HTTPException(status_code=400, detail="address must be a 0x-prefixed 32-byte Sui address.")
    return address.lower()


@router.post("/v1/accounts", response_model=AccountActionResponse)
async def create_account(
    req: CreateAccountRequest,
    signer: ZkLoginSigner = Depends(get_signer),
    use_case: AccountActionsUseCase = Depends(get_account_actions_use_case),
):
    try:
        output = await use_case.create_account(CreateAccountInput(email=req.email), signer=signer)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _action_response(output)


@router.post("/v1/accounts/{account_id}/subscription", response_model=AccountActionResponse)
async def upgrade_subscription(
    account_id: str,
    req: UpgradeSubscriptionRequest,
    signer: ZkLoginSigner = Depends(get_signer),
    use_case: AccountActionsUseCase = Depends(get_account_actions_use_case),
):
    try:
        output = await use_case.upgrade_subscription(
            UpgradeSubscriptionInput(
                account_id=account_id,
                tier=req.tier,
                payment_amount=req.payment_amount,
            ),
            signer=signer,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _action_response(output)


@router.get("/v1/subscription-tiers", response_model=list[SubscriptionTierResponse])
def list_subscription_tiers(
    tiers: dict[int, SubscriptionTier] = Depends(get_subscription_tiers),
):
    return [
        SubscriptionTierResponse(
            id=tier.id,
            code=tier.code,
            name=tier.name,
            price_mist=tier.price_mist,
            price_sui=str(mist_to_sui(tier.price_mist)),
            monthly_volume_limit=tier.monthly_volume_limit,
            products_per_month=tier.products_per_month,
            transactions_per_day=tier.transactions_per_day,
        )
        for tier in sorted(tiers.values(), key=lambda tier: tier.id)
    ]


@router.get("/v1/addresses/{address}/account", response_model=UserAccountResponse)
async def get_user_account(
    address: str,
    chain_queries: ChainQueryService = Depends(get_chain_query_service),
):
    address = _require_address(address)
    try:
        user = await chain_queries.get_user_account(address=address)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    if user is None:
        raise HTTPException(status_code=404, detail="Account not found.")
    return UserAccountResponse(
        address=user.address,
        email_hash=user.email_hash,
        subscription_tier=user.subscription_tier,
        subscription_expires=user.subscription_expires,
        monthly_volume=user.monthly_volume,
        products_created=user.products_created,
        is_verified=user.is_verified,
        created_at=user.created_at,
    )


@router.get("/v1/addresses/{address}/balance", response_model=BalanceResponse)
async def get_balance(
    address: str,
    chain_queries: ChainQueryService = Depends(get_chain_query_service),
):
    address = _require_address(address)
    try:
        balance = await chain_queries.get_balance(address=address)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return BalanceResponse(address=address, balance_mist=balance, balance_sui=str(mist_to_sui(balance)))


@router.post("/v1/addresses/{address}/gas", response_model=GasResponse)
async def request_gas(
    address: str,
    faucet: FaucetPort = Depends(get_faucet_client),
):
    address = _require_address(address)
    try:
        ok = await faucet.request_gas(recipient=address)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return GasResponse(ok=ok)


@router.get("/v1/addresses/{address}/transactions", response_model=list[TransactionResponse])
def list_transactions(
    address: str,
    limit: int = Query(default=50, ge=1, le=200),
    use_case: ListTransactionsUseCase = Depends(get_list_transactions_use_case),
):
    try:
        rows = use_case.execute(address=address, limit=limit)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return [
        TransactionResponse(
            id=row.id,
            sender=row.sender,
            receiver=row.receiver,
            amount=row.amount,
            currency=row.currency,
            product_id=row.product_id,
            escrow_id=row.escrow_id,
            timestamp=row.timestamp,
            status=row.status,
            tx_hash=row.tx_hash,
            function=row.function,
            failure_reason=row.failure_reason,
        )
        for row in rows
    ]


@router.get("/v1/events/{event_name}", response_model=EventsPageResponse)
async def query_events(
    event_name: str,
    limit: int = Query(default=50, ge=1, le=200),
    cursor: str | None = None,
    chain_queries: ChainQueryService = Depends(get_chain_query_service),
):
    parsed_cursor = None
    if cursor:
        try:
            parsed_cursor = json.loads(cursor)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="cursor must be a JSON object.") from exc
    try:
        page = await chain_queries.query_events(event_name=event_name, limit=limit, cursor=parsed_cursor)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return EventsPageResponse(
        events=[
            ChainEventResponse(
                id=event.id,
                event_type=event.event_type,
                sender=event.sender,
                timestamp_ms=event.timestamp_ms,
                fields=event.fields,
            )
            for event in page.events
        ],
        next_cursor=page.next_cursor,
        has_next_page=page.has_next_page,
    )
