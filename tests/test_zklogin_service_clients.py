from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from thalexa.application.dto.zklogin import ProofRequest
from thalexa.domain.exceptions import NetworkError, ProofUnavailableError, SaltUnavailableError
from thalexa.infrastructure.clients.zklogin_service_clients import (
    ZkLoginProverClient,
    ZkLoginSaltClient,
    ZkLoginServiceSettings,
)


SETTINGS = ZkLoginServiceSettings(
    salt_url="https://salt.example.com/get_salt",
    proof_url="https://prover.example.com/v1",
    timeout_seconds=5,
)


def _proof_request() -> ProofRequest:
    return ProofRequest(
        jwt="header.payload.sig",
        extended_ephemeral_public_key="AAEC",
        max_epoch=12,
        jwt_randomness="424242",
        salt="777",
    )


def test_salt_client_returns_salt_as_string():
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"jwt": "header.payload.sig"}
        return httpx.Response(200, json={"salt": 129390038577185583942388216820280642146})

    client = ZkLoginSaltClient(SETTINGS, transport=httpx.MockTransport(handler))
    assert asyncio.run(client.fetch_salt(jwt="header.payload.sig")) == "129390038577185583942388216820280642146"


def test_salt_client_maps_http_failure_and_missing_salt():
    failing = ZkLoginSaltClient(SETTINGS, transport=httpx.MockTransport(lambda request: httpx.Response(500)))
    with pytest.raises(SaltUnavailableError):
        asyncio.run(failing.fetch_salt(jwt="jwt"))

    empty = ZkLoginSaltClient(
        SETTINGS,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"other": 1})),
    )
    with pytest.raises(SaltUnavailableError):
        asyncio.run(empty.fetch_salt(jwt="jwt"))


def test_transport_failures_become_network_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(NetworkError):
        asyncio.run(ZkLoginSaltClient(SETTINGS, transport=httpx.MockTransport(handler)).fetch_salt(jwt="jwt"))
    with pytest.raises(NetworkError):
        asyncio.run(
            ZkLoginProverClient(SETTINGS, transport=httpx.MockTransport(handler)).fetch_proof(_proof_request())
        )


def test_prover_client_sends_camel_case_inputs():
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"proofPoints": {"a": ["1"]}, "headerBase64": "eyJ"})

    proof = asyncio.run(
        ZkLoginProverClient(SETTINGS, transport=httpx.MockTransport(handler)).fetch_proof(_proof_request())
    )

    assert proof["proofPoints"] == {"a": ["1"]}
    assert seen == [
        {
            "jwt": "header.payload.sig",
            "extendedEphemeralPublicKey": "AAEC",
            "maxEpoch": 12,
            "jwtRandomness": "424242",
            "salt": "777",
            "keyClaimName": "sub",
        }
    ]


def test_prover_client_rejects_error_status_and_empty_body():
    failing = ZkLoginProverClient(SETTINGS, transport=httpx.MockTransport(lambda request: httpx.Response(400)))
    with pytest.raises(ProofUnavailableError):
        asyncio.run(failing.fetch_proof(_proof_request()))

    empty = ZkLoginProverClient(
        SETTINGS,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
    )
    with pytest.raises(ProofUnavailableError):
        asyncio.run(empty.fetch_proof(_proof_request()))
