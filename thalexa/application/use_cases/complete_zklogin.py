from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Callable

from thalexa.application.dto.zklogin import CompleteZkLoginInput, ProofRequest, ZkLoginSessionOutput
from thalexa.application.ports.jwt_port import JwtDecoderPort
from thalexa.application.ports.proof_port import ProofPort
from thalexa.application.ports.salt_port import SaltPort
from thalexa.application.ports.session_store_port import SessionStorePort
from thalexa.domain.entities.auth_session import AuthSession, ZkLoginFlowState
from thalexa.domain.exceptions import (
    DomainError,
    FlowStateError,
    InvalidCredentialError,
    NetworkError,
    ProofUnavailableError,
    SaltUnavailableError,
    SessionExpiredError,
    SessionNotFoundError,
)
from thalexa.domain.services.zklogin import (
    decode_state_payload,
    derive_user_address,
    state_matches_session,
)
from thalexa.domain.services.zklogin_flow import advance_flow, can_complete

from .zklogin_common import build_session_output, now_ts


logger = logging.getLogger(__name__)


class CompleteZkLoginUseCase:
    """JWT -> salt -> proof -> address, committed as one session update.

    The session is claimed atomically (moved to ``jwt_received``) before any
    work, so a concurrent completion of the same flow is refused instead of
    racing. Local checks (decode, expiry, nonce and state binding) run before
    any network call. A failure is committed as ``failed`` with its error
    code; salt, proof and transport failures leave the flow resumable with
    the same keys and randomness.
    """

    def __init__(
        self,
        *,
        session_store: SessionStorePort,
        jwt_decoder: JwtDecoderPort,
        salt_port: SaltPort,
        proof_port: ProofPort,
        clock: Callable[[], int] = now_ts,
    ):
        self._session_store = session_store
        self._jwt_decoder = jwt_decoder
        self._salt_port = salt_port
        self._proof_port = proof_port
        self._clock = clock

    async def execute(self, command: CompleteZkLoginInput) -> ZkLoginSessionOutput:
        session = self._session_store.update(session_id=command.session_id, apply=self._claim)
        state = ZkLoginFlowState.JWT_RECEIVED

        try:
            claims = self._jwt_decoder.decode_claims(jwt=command.jwt)
            now = self._clock()
            if claims.expires_at <= now:
                raise SessionExpiredError("JWT already expired; authenticate again.")
            if claims.nonce != session.nonce:
                raise InvalidCredentialError("JWT nonce does not match this zkLogin flow.")
            if command.state is not None:
                self._check_state(command.state, session)

            salt = await self._salt_port.fetch_salt(jwt=command.jwt)
            state = advance_flow(state, ZkLoginFlowState.SALT_RESOLVED)

            key_pair = session.ephemeral_key_pair
            zk_proof = await self._proof_port.fetch_proof(
                ProofRequest(
                    jwt=command.jwt,
                    extended_ephemeral_public_key=key_pair.extended_public_key,
                    max_epoch=session.max_epoch,
                    jwt_randomness=session.randomness,
                    salt=salt,
                )
            )
            state = advance_flow(state, ZkLoginFlowState.PROOF_RESOLVED)
        except (
            InvalidCredentialError,
            SessionExpiredError,
            SaltUnavailableError,
            ProofUnavailableError,
            NetworkError,
        ) as exc:
            self._commit_failure(command.session_id, session, state, exc)
            raise
        except asyncio.CancelledError:
            # Keep the flow resumable; the caller gave up, not the provider.
            self._commit_failure(
                command.session_id,
                session,
                state,
                NetworkError("zkLogin completion was cancelled."),
            )
            raise

        user_address = derive_user_address(salt=salt, subject=claims.subject, audience=claims.audience)

        def activate(current: AuthSession) -> AuthSession:
            if current.flow_state != ZkLoginFlowState.JWT_RECEIVED or current.nonce != session.nonce:
                raise FlowStateError("zkLogin flow changed while it was being completed.")
            return replace(
                current,
                jwt=command.jwt,
                salt=salt,
                zk_proof=zk_proof,
                user_address=user_address,
                flow_state=advance_flow(state, ZkLoginFlowState.SESSION_ACTIVE),
                failure_reason=None,
            )

        committed = self._session_store.update(session_id=command.session_id, apply=activate)
        logger.info(
            "zklogin: session_active provider=%s session_id=%s address=%s",
            session.provider.value,
            command.session_id,
            user_address,
        )
        return build_session_output(
            session_id=command.session_id,
            session=committed,
            claims=claims,
            now=self._clock(),
        )

    @staticmethod
    def _claim(current: AuthSession) -> AuthSession:
        if not can_complete(current.flow_state, current.failure_reason):
            raise FlowStateError(
                f"zkLogin flow in state '{current.flow_state.value}' cannot receive a JWT."
            )
        # A resumed flow restarts from the JWT step.
        return replace(
            current,
            flow_state=advance_flow(ZkLoginFlowState.REDIRECT_ISSUED, ZkLoginFlowState.JWT_RECEIVED),
            failure_reason=None,
        )

    @staticmethod
    def _check_state(raw_state: str, session: AuthSession) -> None:
        try:
            payload = decode_state_payload(raw_state)
        except ValueError as exc:
            raise InvalidCredentialError("OAuth state is malformed.") from exc
        if not state_matches_session(payload, session):
            raise InvalidCredentialError("OAuth state does not match this zkLogin flow.")

    def _commit_failure(
        self,
        session_id: str,
        session: AuthSession,
        state: ZkLoginFlowState,
        exc: DomainError,
    ) -> None:
        def fail(current: AuthSession) -> AuthSession:
            if current.nonce != session.nonce:
                raise FlowStateError("zkLogin flow was restarted.")
            return replace(
                current,
                flow_state=advance_flow(current.flow_state, ZkLoginFlowState.FAILED),
                failure_reason=exc.code,
            )

        try:
            self._session_store.update(session_id=session_id, apply=fail)
        except (FlowStateError, SessionNotFoundError) as refused:
            # An active, already failed, cleared or restarted flow is left as is.
            logger.warning(
                "zklogin: failure_not_recorded session_id=%s step=%s reason=%s detail=%s",
                session_id,
                state.value,
                exc.code,
                refused,
            )
            return
        logger.warning(
            "zklogin: flow_failed provider=%s session_id=%s step=%s reason=%s",
            session.provider.value,
            session_id,
            state.value,
            exc.code,
        )
