from __future__ import annotations

import base64
import unittest
from dataclasses import replace

import jwt as pyjwt
import pytest

from thalexa.domain.entities.auth_session import (
    AuthSession,
    EphemeralKeyPair,
    JwtClaims,
    OAuthProvider,
    OAuthStatePayload,
    ZkLoginFlowState,
)
from thalexa.domain.exceptions import FlowStateError, InvalidCredentialError
from thalexa.domain.services.zklogin import (
    compute_nonce,
    decode_state_payload,
    derive_user_address,
    encode_state_payload,
    generate_randomness,
    hash_email,
    is_session_valid,
    state_matches_session,
)
from thalexa.domain.services.zklogin_flow import advance_flow, can_complete
from thalexa.domain.services.zklogin_signature import (
    ZkLoginSignature,
    decode_zklogin_signature,
    encode_zklogin_signature,
)
from thalexa.infrastructure.security.ed25519_keys import Ed25519KeyService
from thalexa.infrastructure.security.jwt_decoder import PyJwtClaimsDecoder


TEST_SECRET = "thalexa-test-secret-with-enough-bytes"


def _key_pair() -> EphemeralKeyPair:
    return EphemeralKeyPair(private_key=bytes(32), public_key=bytes(range(32)))


def _session(**overrides) -> AuthSession:
    payload = {
        "nonce": "nonce",
        "randomness": "42",
        "max_epoch": 10,
        "provider": OAuthProvider.GOOGLE,
        "ephemeral_key_pair": _key_pair(),
    }
    payload.update(overrides)
    return AuthSession(**payload)


class NonceTests(unittest.TestCase):
    def test_nonce_is_deterministic_for_same_inputs(self):
        first = compute_nonce(ephemeral_public_key=bytes(range(32)), max_epoch=10, randomness="123")
        second = compute_nonce(ephemeral_public_key=bytes(range(32)), max_epoch=10, randomness="123")
        self.assertEqual(first, second)
        # 20 bytes, base64url without padding.
        self.assertEqual(len(first), 27)
        self.assertNotIn("=", first)

    def test_nonce_changes_with_each_bound_input(self):
        base = compute_nonce(ephemeral_public_key=bytes(range(32)), max_epoch=10, randomness="123")
        self.assertNotEqual(
            base, compute_nonce(ephemeral_public_key=bytes(range(32)), max_epoch=11, randomness="123")
        )
        self.assertNotEqual(
            base, compute_nonce(ephemeral_public_key=bytes(range(32)), max_epoch=10, randomness="124")
        )
        self.assertNotEqual(
            base, compute_nonce(ephemeral_public_key=bytes(32), max_epoch=10, randomness="123")
        )

    def test_nonce_rejects_negative_epoch_and_oversized_randomness(self):
        with self.assertRaises(ValueError):
            compute_nonce(ephemeral_public_key=bytes(32), max_epoch=-1, randomness="1")
        with self.assertRaises(ValueError):
            compute_nonce(ephemeral_public_key=bytes(32), max_epoch=1, randomness=str(2**128))

    def test_generated_randomness_fits_in_128_bits(self):
        for _ in range(20):
            value = int(generate_randomness())
            self.assertGreaterEqual(value, 0)
            self.assertLessEqual(value.bit_length(), 128)


class AddressTests(unittest.TestCase):
    def test_address_is_stable_for_salt_subject_and_audience(self):
        first = derive_user_address(salt="1", subject="sub", audience="aud")
        second = derive_user_address(salt="1", subject="sub", audience="aud")
        self.assertEqual(first, second)
        self.assertTrue(first.startswith("0x"))
        self.assertEqual(len(first), 66)

    def test_address_differs_when_any_input_differs(self):
        base = derive_user_address(salt="1", subject="sub", audience="aud")
        self.assertNotEqual(base, derive_user_address(salt="2", subject="sub", audience="aud"))
        self.assertNotEqual(base, derive_user_address(salt="1", subject="other", audience="aud"))
        self.assertNotEqual(base, derive_user_address(salt="1", subject="sub", audience="other"))

    def test_length_prefix_prevents_concatenation_collisions(self):
        self.assertNotEqual(
            derive_user_address(salt="1", subject="ab", audience="c"),
            derive_user_address(salt="1", subject="a", audience="bc"),
        )


def test_hash_email_normalizes_case_and_whitespace():
    assert hash_email("  Alice@Example.COM ") == hash_email("alice@example.com")
    assert len(hash_email("alice@example.com")) == 64


def test_state_payload_round_trip_matches_session():
    session = _session()
    encoded = encode_state_payload(
        OAuthStatePayload(
            provider=OAuthProvider.GOOGLE,
            randomness="42",
            max_epoch=10,
            ephemeral_public_key=_key_pair().public_key_base64,
        )
    )
    payload = decode_state_payload(encoded)
    assert state_matches_session(payload, session)
    assert not state_matches_session(payload, _session(randomness="43"))
    assert not state_matches_session(payload, _session(provider=OAuthProvider.APPLE))


def test_decode_state_payload_rejects_garbage():
    with pytest.raises(ValueError):
        decode_state_payload("not-json")
    with pytest.raises(ValueError):
        decode_state_payload('{"provider": "myspace"}')


def test_session_validity_requires_active_flow_jwt_address_and_unexpired_claims():
    claims = JwtClaims(subject="s", audience="a", issuer="i", expires_at=100)
    active = _session(jwt="jwt", user_address="0x" + "1" * 64, flow_state=ZkLoginFlowState.SESSION_ACTIVE)
    assert is_session_valid(active, claims=claims, now=99)
    assert not is_session_valid(active, claims=claims, now=100)
    assert not is_session_valid(
        _session(jwt="jwt", flow_state=ZkLoginFlowState.SESSION_ACTIVE),
        claims=claims,
        now=0,
    )
    failed = replace(active, flow_state=ZkLoginFlowState.FAILED, failure_reason="proof_unavailable")
    assert not is_session_valid(failed, claims=claims, now=0)
    assert not is_session_valid(active, claims=None, now=0)
    assert not is_session_valid(None, claims=claims, now=0)


class FlowTransitionTests(unittest.TestCase):
    def test_happy_path_walks_every_state_in_order(self):
        state = ZkLoginFlowState.IDLE
        for target in (
            ZkLoginFlowState.KEYS_GENERATED,
            ZkLoginFlowState.REDIRECT_ISSUED,
            ZkLoginFlowState.JWT_RECEIVED,
            ZkLoginFlowState.SALT_RESOLVED,
            ZkLoginFlowState.PROOF_RESOLVED,
            ZkLoginFlowState.SESSION_ACTIVE,
        ):
            state = advance_flow(state, target)
        self.assertEqual(state, ZkLoginFlowState.SESSION_ACTIVE)

    def test_skipping_a_step_is_rejected(self):
        with self.assertRaises(FlowStateError):
            advance_flow(ZkLoginFlowState.REDIRECT_ISSUED, ZkLoginFlowState.SALT_RESOLVED)

    def test_any_pending_state_can_fail_but_active_cannot(self):
        self.assertEqual(
            advance_flow(ZkLoginFlowState.SALT_RESOLVED, ZkLoginFlowState.FAILED),
            ZkLoginFlowState.FAILED,
        )
        with self.assertRaises(FlowStateError):
            advance_flow(ZkLoginFlowState.SESSION_ACTIVE, ZkLoginFlowState.FAILED)

    def test_only_collaborator_failures_are_resumable(self):
        self.assertTrue(can_complete(ZkLoginFlowState.REDIRECT_ISSUED, None))
        self.assertTrue(can_complete(ZkLoginFlowState.FAILED, "salt_unavailable"))
        self.assertTrue(can_complete(ZkLoginFlowState.FAILED, "proof_unavailable"))
        self.assertTrue(can_complete(ZkLoginFlowState.FAILED, "network_error"))
        self.assertFalse(can_complete(ZkLoginFlowState.FAILED, "invalid_credential"))
        self.assertFalse(can_complete(ZkLoginFlowState.SESSION_ACTIVE, None))


def test_signature_encoding_carries_all_fields_and_hides_secrets_in_repr():
    signature = ZkLoginSignature(
        signature=b"\x01" * 64,
        extended_public_key=_key_pair().extended_public_key,
        zk_proof={"proofPoints": {"a": ["1"]}},
        max_epoch=10,
        jwt="header.payload.sig",
        salt="999",
    )
    decoded = decode_zklogin_signature(encode_zklogin_signature(signature))
    assert decoded == signature
    assert decoded.public_key == _key_pair().public_key
    assert "header.payload.sig" not in repr(decoded)
    assert "999" not in repr(decoded)


def test_decode_signature_rejects_malformed_input():
    with pytest.raises(ValueError):
        decode_zklogin_signature("%%%")
    with pytest.raises(ValueError):
        decode_zklogin_signature(base64.b64encode(b'{"signature": "AA=="}').decode("ascii"))


def test_ed25519_key_service_signs_and_verifies():
    service = Ed25519KeyService()
    key_pair = service.generate()
    signature = service.sign(key_pair=key_pair, message=b"payload")

    assert len(key_pair.public_key) == 32
    assert service.verify(public_key=key_pair.public_key, message=b"payload", signature=signature)
    assert not service.verify(public_key=key_pair.public_key, message=b"other", signature=signature)
    assert str(key_pair.private_key) not in repr(key_pair)


def test_jwt_decoder_reads_claims_without_signature_check():
    token = pyjwt.encode(
        {
            "sub": "user-1",
            "aud": ["client-1", "other"],
            "iss": "https://accounts.google.com",
            "exp": 4_000_000_000,
            "nonce": "abc",
            "email": "alice@example.com",
        },
        TEST_SECRET,
        algorithm="HS256",
    )
    claims = PyJwtClaimsDecoder().decode_claims(jwt=token)
    assert claims.subject == "user-1"
    assert claims.audience == "client-1"
    assert claims.nonce == "abc"
    assert claims.email == "alice@example.com"


def test_jwt_decoder_rejects_missing_claims_and_garbage():
    decoder = PyJwtClaimsDecoder()
    token = pyjwt.encode({"sub": "user-1", "exp": 4_000_000_000}, TEST_SECRET, algorithm="HS256")
    with pytest.raises(InvalidCredentialError):
        decoder.decode_claims(jwt=token)
    with pytest.raises(InvalidCredentialError):
        decoder.decode_claims(jwt="not-a-jwt")
