from __future__ import annotations

from dataclasses import dataclass

from thalexa.domain.entities.auth_session import OAuthProvider, ZkLoginFlowState


@dataclass(frozen=True)
class BeginZkLoginInput:
    provider: OAuthProvider
    max_epoch: int


@dataclass(frozen=True)
class BeginZkLoginOutput:
    session_id: str
    provider: OAuthProvider
    authorization_url: str
    nonce: str
    max_epoch: int
    state: str
    flow_state: ZkLoginFlowState


@dataclass(frozen=True)
class CompleteZkLoginInput:
    session_id: str
    jwt: str
    state: str | None = None


@dataclass(frozen=True)
class ZkLoginSessionOutput:
    session_id: str
    provider: OAuthProvider
    flow_state: ZkLoginFlowState
    max_epoch: int
    user_address: str | None
    failure_reason: str | None
    expires_at: int | None
    email: str | None
    is_valid: bool


@dataclass(frozen=True)
class ProofRequest:
    jwt: str
    extended_ephemeral_public_key: str
    max_epoch: int
    jwt_randomness: str
    salt: str
    key_claim_name: str = "sub"
