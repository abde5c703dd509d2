from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from thalexa.application.dto.zklogin import ProofRequest
from thalexa.application.ports.proof_port import ProofPort
from thalexa.application.ports.salt_port import SaltPort
from thalexa.domain.exceptions import NetworkError, ProofUnavailableError, SaltUnavailableError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZkLoginServiceSettings:
    salt_url: str
    proof_url: str
    timeout_seconds: float


async def _post_json(
    *,
    url: str,
    payload: dict,
    timeout_seconds: float,
    transport: httpx.AsyncBaseTransport | None,
    service: str,
) -> httpx.Response:
    try:
        async with httpx.AsyncClient(timeout=timeout_seconds, transport=transport) as client:
            return await client.post(url, json=payload)
    except httpx.TimeoutException as exc:
        logger.warning("zklogin_services: timeout service=%s", service)
        raise NetworkError(f"{service} request timed out.") from exc
    except httpx.TransportError as exc:
        logger.warning("zklogin_services: transport_error service=%s error=%s", service, exc)
        raise NetworkError(f"{service} is unreachable.") from exc


class ZkLoginSaltClient(SaltPort):
    def __init__(self, settings: ZkLoginServiceSettings, *, transport: httpx.AsyncBaseTransport | None = None):
        self._settings = settings
        self._transport = transport

    async def fetch_salt(self, *, jwt: str) -> str:
        response = await _post_json(
            url=self._settings.salt_url,
            payload={"jwt": jwt},
            timeout_seconds=self._settings.timeout_seconds,
            transport=self._transport,
            service="salt service",
        )
        if response.is_error:
            logger.warning("zklogin_services: salt_failed status=%s", response.status_code)
            raise SaltUnavailableError(f"Salt service returned HTTP {response.status_code}.")
        try:
            salt = response.json().get("salt")
        except (ValueError, AttributeError) as exc:
            raise SaltUnavailableError("Salt service returned an unreadable body.") from exc
        if salt is None or str(salt) == "":
            raise SaltUnavailableError("Salt service response has no salt.")
        return str(salt)


class ZkLoginProverClient(ProofPort):
    def __init__(self, settings: ZkLoginServiceSettings, *, transport: httpx.AsyncBaseTransport | None = None):
        self._settings = settings
        self._transport = transport

    async def fetch_proof(self, request: ProofRequest) -> dict:
        response = await _post_json(
            url=self._settings.proof_url,
            payload={
                "jwt": request.jwt,
                "extendedEphemeralPublicKey": request.extended_ephemeral_public_key,
                "maxEpoch": request.max_epoch,
                "jwtRandomness": request.jwt_randomness,
                "salt": request.salt,
                "keyClaimName": request.key_claim_name,
            },
            timeout_seconds=self._settings.timeout_seconds,
            transport=self._transport,
            service="proof service",
        )
        if response.is_error:
            logger.warning("zklogin_services: proof_failed status=%s", response.status_code)
            raise ProofUnavailableError(f"Proof service returned HTTP {response.status_code}.")
        try:
            proof = response.json()
        except ValueError as exc:
            raise ProofUnavailableError("Proof service returned an unreadable body.") from exc
        if not isinstance(proof, dict) or not proof:
            raise ProofUnavailableError("Proof service returned an empty proof.")
        return proof
