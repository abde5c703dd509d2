from __future__ import annotations

import base64
import hashlib
import json
import secrets

from thalexa.domain.entities.auth_session import (
    AuthSession,
    JwtClaims,
    OAuthProvider,
    OAuthStatePayload,
    ZkLoginFlowState,
)


ZKLOGIN_SIGNATURE_FLAG = 0x05
NONCE_DIGEST_SIZE = 20
RANDOMNESS_BITS = 128


def generate_randomness() -> str:
    return str(secrets.randbits(RANDOMNESS_BITS))


def compute_nonce(*, ephemeral_public_key: bytes, max_epoch: int, randomness: str) -> str:
    """Bind the ephemeral key, epoch bound and randomness into an OAuth nonce.

    Output shape matches zkLogin nonces (20 bytes, base64url without padding).
    """
    if max_epoch < 0:
        raise ValueError("max_epoch must be non-negative.")
    randomness_value = int(randomness)
    if randomness_value < 0 or randomness_value.bit_length() > RANDOMNESS_BITS:
        raise ValueError("randomness must fit in 128 bits.")

    digest = hashlib.blake2b(digest_size=NONCE_DIGEST_SIZE, person=b"zklogin-nonce")
    digest.update(ephemeral_public_key)
    digest.update(int(max_epoch).to_bytes(8, "big"))
    digest.update(randomness_value.to_bytes(RANDOMNESS_BITS // 8, "big"))
    return base64.urlsafe_b64encode(digest.digest()).decode("ascii").rstrip("=")


def _length_prefixed(value: str) -> bytes:
    raw = value.encode("utf-8")
    return len(raw).to_bytes(4, "big") + raw


def derive_user_address(*, salt: str, subject: str, audience: str) -> str:
    # Depends only on (salt, sub, aud): provider and expiry never enter the hash.
    digest = hashlib.blake2b(digest_size=32)
    digest.update(bytes([ZKLOGIN_SIGNATURE_FLAG]))
    digest.update(_length_prefixed(salt))
    digest.update(_length_prefixed(subject))
    digest.update(_length_prefixed(audience))
    return "0x" + digest.hexdigest()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def hash_email(email: str) -> str:
    return hashlib.sha256(normalize_email(email).encode("utf-8")).hexdigest()


def encode_state_payload(payload: OAuthStatePayload) -> str:
    return json.dumps(
        {
            "provider": payload.provider.value,
            "randomness": payload.randomness,
            "maxEpoch": payload.max_epoch,
            "ephemeralPublicKey": payload.ephemeral_public_key,
        },
        separators=(",", ":"),
    )


def decode_state_payload(state: str) -> OAuthStatePayload:
    try:
        raw = json.loads(state)
        return OAuthStatePayload(
            provider=OAuthProvider(raw["provider"]),
            randomness=str(raw["randomness"]),
            max_epoch=int(raw["maxEpoch"]),
            ephemeral_public_key=str(raw["ephemeralPublicKey"]),
        )
    except (ValueError, KeyError, TypeError) as exc:
        raise ValueError("Malformed OAuth state payload.") from exc


def state_matches_session(payload: OAuthStatePayload, session: AuthSession) -> bool:
    key_pair = session.ephemeral_key_pair
    return (
        key_pair is not None
        and payload.provider == session.provider
        and payload.randomness == session.randomness
        and payload.max_epoch == session.max_epoch
        and payload.ephemeral_public_key == key_pair.public_key_base64
    )


def is_session_valid(session: AuthSession | None, *, claims: JwtClaims | None, now: int) -> bool:
    if session is None or not session.jwt or not session.user_address:
        return False
    if session.flow_state != ZkLoginFlowState.SESSION_ACTIVE:
        return False
    if claims is None:
        return False
    return claims.expires_at > now
