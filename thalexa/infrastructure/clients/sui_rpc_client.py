from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass

import httpx

from thalexa.application.ports.chain_rpc_port import ChainRpcPort
from thalexa.application.ports.faucet_port import FaucetPort
from thalexa.domain.exceptions import ConfigurationError, NetworkError, RejectedError


logger = logging.getLogger(__name__)


DEFAULT_FULLNODE_URLS = {
    "mainnet": "https://fullnode.mainnet.sui.io:443",
    "testnet": "https://fullnode.testnet.sui.io:443",
    "devnet": "https://fullnode.devnet.sui.io:443",
    "localnet": "http://127.0.0.1:9000",
}

DEFAULT_FAUCET_URLS = {
    "testnet": "https://faucet.testnet.sui.io/gas",
    "devnet": "https://faucet.devnet.sui.io/gas",
    "localnet": "http://127.0.0.1:9123/gas",
}

_OBJECT_OPTIONS = {"showContent": True, "showType": True, "showOwner": True, "showDisplay": True}
_EXECUTE_OPTIONS = {"showEffects": True, "showEvents": True, "showObjectChanges": True}
_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


@dataclass(frozen=True)
class SuiRpcClientSettings:
    fullnode_url: str
    timeout_seconds: float
    max_retries: int
    retry_base_delay: float = 0.25


class SuiJsonRpcClient(ChainRpcPort):
    """Sui full node JSON-RPC over httpx.

    Reads are retried with exponential backoff on transport failures.
    ``sui_executeTransactionBlock`` is sent once; a transport failure there
    surfaces as ``NetworkError`` and the caller decides whether to resubmit.
    """

    def __init__(self, settings: SuiRpcClientSettings, *, transport: httpx.AsyncBaseTransport | None = None):
        self._settings = settings
        self._transport = transport
        self._ids = itertools.count(1)

    async def get_balance(self, *, owner: str, coin_type: str) -> dict:
        return await self._read("suix_getBalance", [owner, coin_type])

    async def get_owned_objects(
        self,
        *,
        owner: str,
        struct_type: str | None = None,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> dict:
        query: dict = {"options": _OBJECT_OPTIONS}
        if struct_type:
            query["filter"] = {"StructType": struct_type}
        return await self._read("suix_getOwnedObjects", [owner, query, cursor, limit])

    async def get_object(self, *, object_id: str) -> dict:
        return await self._read("sui_getObject", [object_id, _OBJECT_OPTIONS])

    async def query_events(
        self,
        *,
        event_type: str,
        cursor: dict | None = None,
        limit: int | None = None,
        descending: bool = True,
    ) -> dict:
        return await self._read(
            "suix_queryEvents",
            [{"MoveEventType": event_type}, cursor, limit, descending],
        )

    async def get_latest_system_state(self) -> dict:
        return await self._read("suix_getLatestSuiSystemState", [])

    async def execute_transaction_block(self, *, tx_bytes: str, signatures: list[str]) -> dict:
        return await self._call(
            "sui_executeTransactionBlock",
            [tx_bytes, signatures, _EXECUTE_OPTIONS, "WaitForLocalExecution"],
        )

    async def _read(self, method: str, params: list) -> dict:
        attempts = max(1, self._settings.max_retries)
        delay = self._settings.retry_base_delay
        last_exc: NetworkError | None = None

        for attempt in range(1, attempts + 1):
            try:
                return await self._call(method, params)
            except NetworkError as exc:
                last_exc = exc
                if attempt == attempts:
                    break
                logger.warning(
                    "sui_rpc_client: read_retry method=%s attempt=%s/%s error=%s",
                    method,
                    attempt,
                    attempts,
                    exc,
                )
                await asyncio.sleep(delay)
                delay *= 2

        raise last_exc

    async def _call(self, method: str, params: list) -> dict:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            async with httpx.AsyncClient(timeout=self._settings.timeout_seconds, transport=self._transport) as client:
                response = await client.post(self._settings.fullnode_url, json=payload)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"{method} timed out.") from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"{method} transport failure: {exc}") from exc

        if response.status_code in _RETRYABLE_STATUS:
            raise NetworkError(f"{method} returned HTTP {response.status_code}.")
        if response.is_error:
            raise RejectedError(f"{method} returned HTTP {response.status_code}.")

        try:
            body = response.json()
        except ValueError as exc:
            raise NetworkError(f"{method} returned an unreadable body.") from exc

        error = body.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            logger.info("sui_rpc_client: rpc_error method=%s message=%s", method, message)
            raise RejectedError(str(message))
        return body.get("result") or {}


@dataclass(frozen=True)
class SuiFaucetSettings:
    faucet_url: str
    network: str
    timeout_seconds: float


class SuiFaucetClient(FaucetPort):
    def __init__(self, settings: SuiFaucetSettings, *, transport: httpx.AsyncBaseTransport | None = None):
        self._settings = settings
        self._transport = transport

    async def request_gas(self, *, recipient: str) -> bool:
        if self._settings.network == "mainnet":
            raise ConfigurationError("Faucet is not available on mainnet.")
        if not self._settings.faucet_url:
            raise ConfigurationError("SUI_FAUCET_URL is required.")

        try:
            async with httpx.AsyncClient(timeout=self._settings.timeout_seconds, transport=self._transport) as client:
                response = await client.post(
                    self._settings.faucet_url,
                    json={"FixedAmountRequest": {"recipient": recipient}},
                )
        except httpx.TimeoutException as exc:
            raise NetworkError("Faucet request timed out.") from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"Faucet is unreachable: {exc}") from exc

        logger.info(
            "sui_faucet_client: gas_requested recipient=%s status=%s",
            recipient,
            response.status_code,
        )
        return response.is_success
