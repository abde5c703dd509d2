from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

import httpx

from thalexa.application.dto.zklogin import ZkLoginSessionOutput
from thalexa.application.ports.ephemeral_key_port import EphemeralKeyPort
from thalexa.application.ports.jwt_port import JwtDecoderPort
from thalexa.domain.entities.auth_session import AuthSession, JwtClaims, OAuthProvider, ZkLoginFlowState
from thalexa.domain.exceptions import InvalidCredentialError, SessionExpiredError, SigningError
from thalexa.domain.services.zklogin import is_session_valid
from thalexa.domain.services.zklogin_signature import ZkLoginSignature, encode_zklogin_signature


logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def now_ts() -> int:
    return int(utcnow().timestamp())


@dataclass(frozen=True)
class ProviderConfig:
    provider: OAuthProvider
    client_id: str
    auth_url: str
    response_type: str
    scope: str


DEFAULT_PROVIDER_AUTH_URLS = {
    OAuthProvider.GOOGLE: "https://accounts.google.com/o/oauth2/v2/auth",
    OAuthProvider.FACEBOOK: "https://www.facebook.com/v18.0/dialog/oauth",
    OAuthProvider.APPLE: "https://appleid.apple.com/auth/authorize",
}

PROVIDER_RESPONSE_TYPES = {
    OAuthProvider.GOOGLE: ("id_token", "openid email"),
    OAuthProvider.FACEBOOK: ("token", "email"),
    OAuthProvider.APPLE: ("id_token", "email"),
}


def build_provider_configs(
    *,
    client_ids: dict[OAuthProvider, str],
    auth_urls: dict[OAuthProvider, str] | None = None,
) -> dict[OAuthProvider, ProviderConfig]:
    auth_urls = auth_urls or {}
    configs: dict[OAuthProvider, ProviderConfig] = {}
    for provider in OAuthProvider:
        response_type, scope = PROVIDER_RESPONSE_TYPES[provider]
        configs[provider] = ProviderConfig(
            provider=provider,
            client_id=(client_ids.get(provider) or "").strip(),
            auth_url=auth_urls.get(provider) or DEFAULT_PROVIDER_AUTH_URLS[provider],
            response_type=response_type,
            scope=scope,
        )
    return configs


def build_authorization_url(
    *,
    provider_config: ProviderConfig,
    redirect_url: str,
    nonce: str,
    state: str,
) -> str:
    url = httpx.URL(
        provider_config.auth_url,
        params={
            "client_id": provider_config.client_id,
            "redirect_uri": redirect_url,
            "response_type": provider_config.response_type,
            "scope": provider_config.scope,
            "nonce": nonce,
            "state": state,
        },
    )
    return str(url)


class ZkLoginSigner:
    """Signing capability bound to one active zkLogin session.

    Validity is checked again on every ``sign`` call: a session whose JWT
    expired after the signer was built fails closed with ``SessionExpiredError``.
    """

    def __init__(
        self,
        *,
        session: AuthSession,
        key_port: EphemeralKeyPort,
        jwt_decoder: JwtDecoderPort,
        clock: Callable[[], int] = now_ts,
    ):
        self._session = session
        self._key_port = key_port
        self._jwt_decoder = jwt_decoder
        self._clock = clock

    @property
    def address(self) -> str:
        return self._session.user_address or ""

    @property
    def max_epoch(self) -> int:
        return self._session.max_epoch

    def sign(self, tx_bytes: bytes) -> str:
        session = self._session
        claims = self._jwt_decoder.decode_claims(jwt=session.jwt or "")
        if not is_session_valid(session, claims=claims, now=self._clock()):
            logger.info("zklogin_signer: refused reason=session_expired address=%s", self.address)
            raise SessionExpiredError("zkLogin session expired; authenticate again.")

        key_pair = session.ephemeral_key_pair
        signature = self._key_port.sign(key_pair=key_pair, message=tx_bytes)
        return encode_zklogin_signature(
            ZkLoginSignature(
                signature=signature,
                extended_public_key=key_pair.extended_public_key,
                zk_proof=session.zk_proof or {},
                max_epoch=session.max_epoch,
                jwt=session.jwt or "",
                salt=session.salt or "",
            )
        )


def build_signer(
    session: AuthSession | None,
    *,
    key_port: EphemeralKeyPort,
    jwt_decoder: JwtDecoderPort,
    clock: Callable[[], int] = now_ts,
) -> ZkLoginSigner:
    if session is None:
        raise SigningError("No zkLogin session; authenticate first.")
    if session.flow_state != ZkLoginFlowState.SESSION_ACTIVE:
        raise SigningError(f"zkLogin session is not active (state={session.flow_state.value}).")
    if session.ephemeral_key_pair is None or session.zk_proof is None or not session.salt:
        raise SigningError("zkLogin session is missing signing material.")

    try:
        claims = jwt_decoder.decode_claims(jwt=session.jwt or "")
    except InvalidCredentialError as exc:
        raise SigningError("zkLogin session holds an unreadable JWT.") from exc
    if not is_session_valid(session, claims=claims, now=clock()):
        raise SessionExpiredError("zkLogin session expired; authenticate again.")

    return ZkLoginSigner(session=session, key_port=key_port, jwt_decoder=jwt_decoder, clock=clock)


def build_session_output(
    *,
    session_id: str,
    session: AuthSession,
    claims: JwtClaims | None,
    now: int,
) -> ZkLoginSessionOutput:
    return ZkLoginSessionOutput(
        session_id=session_id,
        provider=session.provider,
        flow_state=session.flow_state,
        max_epoch=session.max_epoch,
        user_address=session.user_address,
        failure_reason=session.failure_reason,
        expires_at=claims.expires_at if claims else None,
        email=claims.email if claims else None,
        is_valid=is_session_valid(session, claims=claims, now=now),
    )
