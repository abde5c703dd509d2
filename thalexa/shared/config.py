from __future__ import annotations

import json
import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _json(name: str) -> dict:
    value = _env(name)
    if not value:
        return {}
    return json.loads(value)


@dataclass(frozen=True)
class Settings:
    sui_network: str
    sui_fullnode_url: str
    sui_faucet_url: str
    sui_rpc_timeout_seconds: float
    sui_rpc_max_retries: int
    chain_backend: str
    escrow_package_id: str
    escrow_config_id: str
    sui_clock_id: str
    zklogin_redirect_url: str
    zklogin_max_epoch_offset: int
    google_client_id: str
    facebook_client_id: str
    apple_client_id: str
    google_auth_url: str
    facebook_auth_url: str
    apple_auth_url: str
    zklogin_salt_server_url: str
    zklogin_proof_server_url: str
    zklogin_timeout_seconds: float
    pinata_api_key: str
    pinata_secret_key: str
    pinata_jwt: str
    pinata_api_base: str
    pinata_gateway: str
    pinata_timeout_seconds: float
    max_upload_bytes: int
    subscription_tier_prices_mist: dict
    database_url: str
    log_level: str
    cors_origins: list[str]


def get_settings() -> Settings:
    network = _env("SUI_NETWORK", "testnet")
    return Settings(
        sui_network=network,
        sui_fullnode_url=_env("SUI_FULLNODE_URL", ""),
        sui_faucet_url=_env("SUI_FAUCET_URL", ""),
        sui_rpc_timeout_seconds=float(_env("SUI_RPC_TIMEOUT_SECONDS", "30")),
        sui_rpc_max_retries=int(_env("SUI_RPC_MAX_RETRIES", "3")),
        chain_backend=_env("CHAIN_BACKEND", "rpc").lower(),
        escrow_package_id=_env("ESCROW_PACKAGE_ID", ""),
        escrow_config_id=_env("ESCROW_CONFIG_ID", ""),
        sui_clock_id=_env("SUI_CLOCK_ID", "0x6"),
        zklogin_redirect_url=_env("ZKLOGIN_REDIRECT_URL", ""),
        zklogin_max_epoch_offset=int(_env("ZKLOGIN_MAX_EPOCH_OFFSET", "2")),
        google_client_id=_env("GOOGLE_CLIENT_ID", ""),
        facebook_client_id=_env("FACEBOOK_CLIENT_ID", ""),
        apple_client_id=_env("APPLE_CLIENT_ID", ""),
        google_auth_url=_env("GOOGLE_AUTH_URL", ""),
        facebook_auth_url=_env("FACEBOOK_AUTH_URL", ""),
        apple_auth_url=_env("APPLE_AUTH_URL", ""),
        zklogin_salt_server_url=_env("ZKLOGIN_SALT_SERVER_URL", "https://salt.api.mystenlabs.com/get_salt"),
        zklogin_proof_server_url=_env("ZKLOGIN_PROOF_SERVER_URL", "https://prover-dev.mystenlabs.com/v1"),
        zklogin_timeout_seconds=float(_env("ZKLOGIN_TIMEOUT_SECONDS", "30")),
        pinata_api_key=_env("PINATA_API_KEY", ""),
        pinata_secret_key=_env("PINATA_SECRET_KEY", ""),
        pinata_jwt=_env("PINATA_JWT", ""),
        pinata_api_base=_env("PINATA_API_BASE", "https://api.pinata.cloud"),
        pinata_gateway=_env("PINATA_GATEWAY", "https://gateway.pinata.cloud/ipfs/"),
        pinata_timeout_seconds=float(_env("PINATA_TIMEOUT_SECONDS", "60")),
        max_upload_bytes=int(_env("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024))),
        subscription_tier_prices_mist=_json("SUBSCRIPTION_TIER_PRICES_MIST"),
        database_url=_env("DATABASE_URL", ""),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
        cors_origins=[
            origin.strip()
            for origin in _env("CORS_ORIGINS", "").split(",")
            if origin.strip()
        ],
    )
