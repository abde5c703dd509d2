from __future__ import annotations

from functools import lru_cache

from fastapi import Cookie, Depends, Header, HTTPException

from thalexa.application.ports.chain_rpc_port import ChainRpcPort
from thalexa.application.ports.session_store_port import SessionStorePort
from thalexa.application.ports.transaction_ledger_port import TransactionLedgerPort
from thalexa.application.use_cases.account_actions import AccountActionsUseCase
from thalexa.application.use_cases.begin_zklogin import BeginZkLoginUseCase
from thalexa.application.use_cases.chain_queries import ChainQueryService
from thalexa.application.use_cases.complete_zklogin import CompleteZkLoginUseCase
from thalexa.application.use_cases.escrow_actions import EscrowActionsUseCase
from thalexa.application.use_cases.execute_transaction import TransactionExecutor, now_ms
from thalexa.application.use_cases.get_zklogin_session import GetZkLoginSessionUseCase
from thalexa.application.use_cases.list_transactions import ListTransactionsUseCase
from thalexa.application.use_cases.logout_zklogin import LogoutZkLoginUseCase
from thalexa.application.use_cases.product_actions import ProductActionsUseCase
from thalexa.application.use_cases.zklogin_common import ZkLoginSigner, build_provider_configs, build_signer
from thalexa.domain.entities.auth_session import OAuthProvider
from thalexa.domain.entities.subscription import SubscriptionTier, build_subscription_tiers
from thalexa.domain.exceptions import SessionExpiredError, SigningError
from thalexa.domain.services.escrow_transactions import EscrowTransactionBuilder
from thalexa.infrastructure.chain.local_chain import LocalEscrowChain
from thalexa.infrastructure.clients.pinata_client import PinataClient, PinataSettings
from thalexa.infrastructure.clients.sui_rpc_client import (
    DEFAULT_FAUCET_URLS,
    DEFAULT_FULLNODE_URLS,
    SuiFaucetClient,
    SuiFaucetSettings,
    SuiJsonRpcClient,
    SuiRpcClientSettings,
)
from thalexa.infrastructure.clients.zklogin_service_clients import (
    ZkLoginProverClient,
    ZkLoginSaltClient,
    ZkLoginServiceSettings,
)
from thalexa.infrastructure.db.engine import create_schema, get_engine
from thalexa.infrastructure.db.repositories.transaction_ledger_repository import (
    InMemoryTransactionLedger,
    SqlTransactionLedgerRepository,
)
from thalexa.infrastructure.security.ed25519_keys import Ed25519KeyService
from thalexa.infrastructure.security.jwt_decoder import PyJwtClaimsDecoder
from thalexa.infrastructure.session.memory_session_store import InMemorySessionStore
from thalexa.shared.config import get_settings


SESSION_HEADER = "X-Zklogin-Session"
SESSION_COOKIE = "zklogin_session"
LOCAL_PACKAGE_ID = "0x" + "0" * 63 + "a"
LOCAL_CONFIG_ID = "0x" + "0" * 63 + "b"


@lru_cache(maxsize=1)
def get_key_service() -> Ed25519KeyService:
    return Ed25519KeyService()


@lru_cache(maxsize=1)
def get_jwt_decoder() -> PyJwtClaimsDecoder:
    return PyJwtClaimsDecoder()


@lru_cache(maxsize=1)
def get_session_store() -> SessionStorePort:
    return InMemorySessionStore()


@lru_cache(maxsize=1)
def get_subscription_tiers() -> dict[int, SubscriptionTier]:
    return build_subscription_tiers(get_settings().subscription_tier_prices_mist)


def _is_local_backend() -> bool:
    return get_settings().chain_backend == "local"


def _get_package_id() -> str:
    settings = get_settings()
    if settings.escrow_package_id:
        return settings.escrow_package_id
    if _is_local_backend():
        return LOCAL_PACKAGE_ID
    raise HTTPException(status_code=500, detail="ESCROW_PACKAGE_ID is required.")


def _get_config_id() -> str:
    settings = get_settings()
    if settings.escrow_config_id:
        return settings.escrow_config_id
    if _is_local_backend():
        return LOCAL_CONFIG_ID
    raise HTTPException(status_code=500, detail="ESCROW_CONFIG_ID is required.")


@lru_cache(maxsize=1)
def get_chain_rpc() -> ChainRpcPort:
    settings = get_settings()
    if _is_local_backend():
        return LocalEscrowChain(
            package_id=_get_package_id(),
            key_port=get_key_service(),
            jwt_decoder=get_jwt_decoder(),
            clock_ms=now_ms,
            subscription_tiers=get_subscription_tiers(),
        )
    fullnode_url = settings.sui_fullnode_url or DEFAULT_FULLNODE_URLS.get(settings.sui_network, "")
    if not fullnode_url:
        raise HTTPException(status_code=500, detail="SUI_FULLNODE_URL is required.")
    return SuiJsonRpcClient(
        SuiRpcClientSettings(
            fullnode_url=fullnode_url,
            timeout_seconds=settings.sui_rpc_timeout_seconds,
            max_retries=settings.sui_rpc_max_retries,
        )
    )


@lru_cache(maxsize=1)
def get_faucet_client() -> SuiFaucetClient:
    settings = get_settings()
    return SuiFaucetClient(
        SuiFaucetSettings(
            faucet_url=settings.sui_faucet_url or DEFAULT_FAUCET_URLS.get(settings.sui_network, ""),
            network=settings.sui_network,
            timeout_seconds=settings.sui_rpc_timeout_seconds,
        )
    )


@lru_cache(maxsize=1)
def get_transaction_ledger() -> TransactionLedgerPort:
    settings = get_settings()
    if not settings.database_url:
        return InMemoryTransactionLedger()
    engine = get_engine(settings.database_url)
    create_schema(engine)
    return SqlTransactionLedgerRepository(engine)


@lru_cache(maxsize=1)
def _get_zklogin_service_settings() -> ZkLoginServiceSettings:
    settings = get_settings()
    if not settings.zklogin_salt_server_url:
        raise HTTPException(status_code=500, detail="ZKLOGIN_SALT_SERVER_URL is required.")
    if not settings.zklogin_proof_server_url:
        raise HTTPException(status_code=500, detail="ZKLOGIN_PROOF_SERVER_URL is required.")
    return ZkLoginServiceSettings(
        salt_url=settings.zklogin_salt_server_url,
        proof_url=settings.zklogin_proof_server_url,
        timeout_seconds=settings.zklogin_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_pinning_client() -> PinataClient:
    settings = get_settings()
    return PinataClient(
        PinataSettings(
            api_base=settings.pinata_api_base,
            gateway=settings.pinata_gateway,
            api_key=settings.pinata_api_key,
            secret_key=settings.pinata_secret_key,
            jwt=settings.pinata_jwt,
            timeout_seconds=settings.pinata_timeout_seconds,
            max_upload_bytes=settings.max_upload_bytes,
        )
    )


def get_transaction_builder() -> EscrowTransactionBuilder:
    return EscrowTransactionBuilder(
        package_id=_get_package_id(),
        config_id=_get_config_id(),
        clock_id=get_settings().sui_clock_id,
        subscription_tiers=get_subscription_tiers(),
    )


def get_transaction_executor() -> TransactionExecutor:
    return TransactionExecutor(chain_rpc=get_chain_rpc(), ledger=get_transaction_ledger())


def get_chain_query_service() -> ChainQueryService:
    return ChainQueryService(chain_rpc=get_chain_rpc(), package_id=_get_package_id())


def get_begin_zklogin_use_case() -> BeginZkLoginUseCase:
    settings = get_settings()
    providers = build_provider_configs(
        client_ids={
            OAuthProvider.GOOGLE: settings.google_client_id,
            OAuthProvider.FACEBOOK: settings.facebook_client_id,
            OAuthProvider.APPLE: settings.apple_client_id,
        },
        auth_urls={
            OAuthProvider.GOOGLE: settings.google_auth_url,
            OAuthProvider.FACEBOOK: settings.facebook_auth_url,
            OAuthProvider.APPLE: settings.apple_auth_url,
        },
    )
    return BeginZkLoginUseCase(
        session_store=get_session_store(),
        key_port=get_key_service(),
        providers=providers,
        redirect_url=settings.zklogin_redirect_url,
    )


def get_complete_zklogin_use_case() -> CompleteZkLoginUseCase:
    service_settings = _get_zklogin_service_settings()
    return CompleteZkLoginUseCase(
        session_store=get_session_store(),
        jwt_decoder=get_jwt_decoder(),
        salt_port=ZkLoginSaltClient(service_settings),
        proof_port=ZkLoginProverClient(service_settings),
    )


def get_get_zklogin_session_use_case() -> GetZkLoginSessionUseCase:
    return GetZkLoginSessionUseCase(session_store=get_session_store(), jwt_decoder=get_jwt_decoder())


def get_logout_zklogin_use_case() -> LogoutZkLoginUseCase:
    return LogoutZkLoginUseCase(session_store=get_session_store())


def get_escrow_actions_use_case() -> EscrowActionsUseCase:
    return EscrowActionsUseCase(builder=get_transaction_builder(), executor=get_transaction_executor())


def get_product_actions_use_case() -> ProductActionsUseCase:
    return ProductActionsUseCase(
        builder=get_transaction_builder(),
        executor=get_transaction_executor(),
        pinning=get_pinning_client(),
    )


def get_account_actions_use_case() -> AccountActionsUseCase:
    return AccountActionsUseCase(
        builder=get_transaction_builder(),
        executor=get_transaction_executor(),
        subscription_tiers=get_subscription_tiers(),
    )


def get_list_transactions_use_case() -> ListTransactionsUseCase:
    return ListTransactionsUseCase(ledger=get_transaction_ledger())


def get_session_id(
    x_zklogin_session: str | None = Header(default=None),
    zklogin_session: str | None = Cookie(default=None),
) -> str:
    session_id = (x_zklogin_session or zklogin_session or "").strip()
    if not session_id:
        raise HTTPException(status_code=401, detail=f"Missing {SESSION_HEADER} header.")
    return session_id


def get_signer(
    session_id: str = Depends(get_session_id),
    session_store: SessionStorePort = Depends(get_session_store),
) -> ZkLoginSigner:
    session = session_store.load(session_id=session_id)
    try:
        return build_signer(session, key_port=get_key_service(), jwt_decoder=get_jwt_decoder())
    except (SigningError, SessionExpiredError) as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc


def get_epoch_query_service() -> ChainQueryService:
    # Epoch reads do not touch package objects.
    return ChainQueryService(chain_rpc=get_chain_rpc(), package_id=get_settings().escrow_package_id)
