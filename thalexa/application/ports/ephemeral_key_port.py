from __future__ import annotations

from typing import Protocol

from thalexa.domain.entities.auth_session import EphemeralKeyPair


class EphemeralKeyPort(Protocol):
    def generate(self) -> EphemeralKeyPair:
        ...

    def sign(self, *, key_pair: EphemeralKeyPair, message: bytes) -> bytes:
        ...

    def verify(self, *, public_key: bytes, message: bytes, signature: bytes) -> bool:
        ...
