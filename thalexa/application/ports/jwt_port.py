from __future__ import annotations

from typing import Protocol

from thalexa.domain.entities.auth_session import JwtClaims


class JwtDecoderPort(Protocol):
    def decode_claims(self, *, jwt: str) -> JwtClaims:
        ...
