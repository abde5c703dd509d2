from __future__ import annotations

import base64

from thalexa.domain.entities.auth_session import (
    AuthSession,
    EphemeralKeyPair,
    OAuthProvider,
    ZkLoginFlowState,
)


def _b64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def map_session_to_dict(session: AuthSession) -> dict:
    key_pair = session.ephemeral_key_pair
    return {
        "nonce": session.nonce,
        "randomness": session.randomness,
        "maxEpoch": session.max_epoch,
        "provider": session.provider.value,
        "ephemeralPrivateKey": _b64(key_pair.private_key) if key_pair else None,
        "ephemeralPublicKey": _b64(key_pair.public_key) if key_pair else None,
        "jwt": session.jwt,
        "salt": session.salt,
        "userAddress": session.user_address,
        "zkProof": session.zk_proof,
        "flowState": session.flow_state.value,
        "failureReason": session.failure_reason,
    }


def map_dict_to_session(raw: dict) -> AuthSession:
    key_pair = None
    if raw.get("ephemeralPrivateKey") and raw.get("ephemeralPublicKey"):
        key_pair = EphemeralKeyPair(
            private_key=base64.b64decode(raw["ephemeralPrivateKey"]),
            public_key=base64.b64decode(raw["ephemeralPublicKey"]),
        )
    return AuthSession(
        nonce=raw["nonce"],
        randomness=raw["randomness"],
        max_epoch=int(raw["maxEpoch"]),
        provider=OAuthProvider(raw["provider"]),
        ephemeral_key_pair=key_pair,
        jwt=raw.get("jwt"),
        salt=raw.get("salt"),
        user_address=raw.get("userAddress"),
        zk_proof=raw.get("zkProof"),
        flow_state=ZkLoginFlowState(raw.get("flowState") or ZkLoginFlowState.IDLE.value),
        failure_reason=raw.get("failureReason"),
    )


def merge_session_dicts(current: dict | None, incoming: dict) -> dict:
    """Overlay the non-null fields of ``incoming`` on ``current``.

    ``failureReason`` belongs to the ``failed`` state: it is dropped whenever
    the incoming flow state is anything else.
    """
    merged = dict(current or {})
    for key, value in incoming.items():
        if value is not None:
            merged[key] = value
    if merged.get("flowState") != ZkLoginFlowState.FAILED.value:
        merged["failureReason"] = None
    return merged
