from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable
from uuid import uuid4

from thalexa.application.dto.zklogin import BeginZkLoginInput, BeginZkLoginOutput
from thalexa.application.ports.ephemeral_key_port import EphemeralKeyPort
from thalexa.application.ports.session_store_port import SessionStorePort
from thalexa.domain.entities.auth_session import (
    AuthSession,
    OAuthProvider,
    OAuthStatePayload,
    ZkLoginFlowState,
)
from thalexa.domain.exceptions import ConfigurationError
from thalexa.domain.services.zklogin import compute_nonce, encode_state_payload, generate_randomness
from thalexa.domain.services.zklogin_flow import advance_flow

from .zklogin_common import ProviderConfig, build_authorization_url


logger = logging.getLogger(__name__)


def _new_session_id() -> str:
    return str(uuid4())


class BeginZkLoginUseCase:
    def __init__(
        self,
        *,
        session_store: SessionStorePort,
        key_port: EphemeralKeyPort,
        providers: dict[OAuthProvider, ProviderConfig],
        redirect_url: str,
        session_id_factory: Callable[[], str] = _new_session_id,
        randomness_factory: Callable[[], str] = generate_randomness,
    ):
        self._session_store = session_store
        self._key_port = key_port
        self._providers = providers
        self._redirect_url = redirect_url
        self._session_id_factory = session_id_factory
        self._randomness_factory = randomness_factory

    def execute(self, command: BeginZkLoginInput) -> BeginZkLoginOutput:
        provider_config = self._providers.get(command.provider)
        if provider_config is None or not provider_config.client_id:
            raise ConfigurationError(f"OAuth client id for provider '{command.provider.value}' is not configured.")
        if not self._redirect_url:
            raise ConfigurationError("ZKLOGIN_REDIRECT_URL is required.")
        if command.max_epoch < 0:
            raise ValueError("max_epoch must be non-negative.")

        key_pair = self._key_port.generate()
        randomness = self._randomness_factory()
        nonce = compute_nonce(
            ephemeral_public_key=key_pair.public_key,
            max_epoch=command.max_epoch,
            randomness=randomness,
        )
        session = AuthSession(
            nonce=nonce,
            randomness=randomness,
            max_epoch=command.max_epoch,
            provider=command.provider,
            ephemeral_key_pair=key_pair,
            flow_state=advance_flow(ZkLoginFlowState.IDLE, ZkLoginFlowState.KEYS_GENERATED),
        )

        state = encode_state_payload(
            OAuthStatePayload(
                provider=command.provider,
                randomness=randomness,
                max_epoch=command.max_epoch,
                ephemeral_public_key=key_pair.public_key_base64,
            )
        )
        authorization_url = build_authorization_url(
            provider_config=provider_config,
            redirect_url=self._redirect_url,
            nonce=nonce,
            state=state,
        )
        session = replace(
            session,
            flow_state=advance_flow(session.flow_state, ZkLoginFlowState.REDIRECT_ISSUED),
        )

        session_id = self._session_id_factory()
        self._session_store.store(session_id=session_id, session=session)
        logger.info(
            "zklogin: flow_started provider=%s session_id=%s max_epoch=%s",
            command.provider.value,
            session_id,
            command.max_epoch,
        )
        return BeginZkLoginOutput(
            session_id=session_id,
            provider=command.provider,
            authorization_url=authorization_url,
            nonce=nonce,
            max_epoch=command.max_epoch,
            state=state,
            flow_state=session.flow_state,
        )
