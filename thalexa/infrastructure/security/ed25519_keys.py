from __future__ import annotations

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from thalexa.application.ports.ephemeral_key_port import EphemeralKeyPort
from thalexa.domain.entities.auth_session import EphemeralKeyPair
from thalexa.domain.exceptions import SigningError


class Ed25519KeyService(EphemeralKeyPort):
    def generate(self) -> EphemeralKeyPair:
        private_key = Ed25519PrivateKey.generate()
        return EphemeralKeyPair(
            private_key=private_key.private_bytes(
                encoding=serialization.Encoding.Raw,
                format=serialization.PrivateFormat.Raw,
                encryption_algorithm=serialization.NoEncryption(),
            ),
            public_key=private_key.public_key().public_bytes(
                encoding=serialization.Encoding.Raw,
                format=serialization.PublicFormat.Raw,
            ),
        )

    def sign(self, *, key_pair: EphemeralKeyPair, message: bytes) -> bytes:
        try:
            private_key = Ed25519PrivateKey.from_private_bytes(key_pair.private_key)
        except ValueError as exc:
            raise SigningError("Ephemeral private key is malformed.") from exc
        return private_key.sign(message)

    def verify(self, *, public_key: bytes, message: bytes, signature: bytes) -> bool:
        try:
            Ed25519PublicKey.from_public_bytes(public_key).verify(signature, message)
        except (InvalidSignature, ValueError):
            return False
        return True
