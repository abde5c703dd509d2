from __future__ import annotations

import base64
from dataclasses import dataclass
from enum import Enum


class OAuthProvider(str, Enum):
    GOOGLE = "google"
    FACEBOOK = "facebook"
    APPLE = "apple"


class ZkLoginFlowState(str, Enum):
    IDLE = "idle"
    KEYS_GENERATED = "keys_generated"
    REDIRECT_ISSUED = "redirect_issued"
    JWT_RECEIVED = "jwt_received"
    SALT_RESOLVED = "salt_resolved"
    PROOF_RESOLVED = "proof_resolved"
    SESSION_ACTIVE = "session_active"
    FAILED = "failed"


# Sui signature scheme flag for Ed25519 public keys.
ED25519_SCHEME_FLAG = 0x00


@dataclass(frozen=True, repr=False)
class EphemeralKeyPair:
    private_key: bytes
    public_key: bytes

    def __repr__(self) -> str:
        return f"EphemeralKeyPair(public_key={self.public_key_base64})"

    @property
    def public_key_base64(self) -> str:
        return base64.b64encode(self.public_key).decode("ascii")

    @property
    def extended_public_key(self) -> str:
        return base64.b64encode(bytes([ED25519_SCHEME_FLAG]) + self.public_key).decode("ascii")


@dataclass(frozen=True)
class JwtClaims:
    subject: str
    audience: str
    issuer: str
    expires_at: int
    nonce: str | None = None
    email: str | None = None
    name: str | None = None
    picture: str | None = None


@dataclass(frozen=True, repr=False)
class AuthSession:
    nonce: str
    randomness: str
    max_epoch: int
    provider: OAuthProvider
    ephemeral_key_pair: EphemeralKeyPair | None = None
    jwt: str | None = None
    salt: str | None = None
    user_address: str | None = None
    zk_proof: dict | None = None
    flow_state: ZkLoginFlowState = ZkLoginFlowState.IDLE
    failure_reason: str | None = None

    def __repr__(self) -> str:
        return (
            f"AuthSession(provider={self.provider.value}, max_epoch={self.max_epoch}, "
            f"flow_state={self.flow_state.value}, user_address={self.user_address})"
        )


@dataclass(frozen=True)
class OAuthStatePayload:
    provider: OAuthProvider
    randomness: str
    max_epoch: int
    ephemeral_public_key: str
