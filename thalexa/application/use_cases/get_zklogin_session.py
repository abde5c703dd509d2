from __future__ import annotations

from typing import Callable

from thalexa.application.dto.zklogin import ZkLoginSessionOutput
from thalexa.application.ports.jwt_port import JwtDecoderPort
from thalexa.application.ports.session_store_port import SessionStorePort
from thalexa.domain.exceptions import InvalidCredentialError, SessionNotFoundError

from .zklogin_common import build_session_output, now_ts


class GetZkLoginSessionUseCase:
    def __init__(
        self,
        *,
        session_store: SessionStorePort,
        jwt_decoder: JwtDecoderPort,
        clock: Callable[[], int] = now_ts,
    ):
        self._session_store = session_store
        self._jwt_decoder = jwt_decoder
        self._clock = clock

    def execute(self, *, session_id: str) -> ZkLoginSessionOutput:
        session = self._session_store.load(session_id=session_id)
        if session is None:
            raise SessionNotFoundError("zkLogin session not found.")

        claims = None
        if session.jwt:
            try:
                claims = self._jwt_decoder.decode_claims(jwt=session.jwt)
            except InvalidCredentialError:
                # Reported as an invalid session.
                claims = None
        return build_session_output(
            session_id=session_id,
            session=session,
            claims=claims,
            now=self._clock(),
        )
