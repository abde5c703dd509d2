from __future__ import annotations

import unittest

from thalexa.application.use_cases.zklogin_common import build_signer
from thalexa.domain.entities.auth_session import (
    AuthSession,
    JwtClaims,
    OAuthProvider,
    ZkLoginFlowState,
)
from thalexa.domain.exceptions import InvalidCredentialError, SessionExpiredError, SigningError
from thalexa.domain.services.zklogin_signature import decode_zklogin_signature
from thalexa.infrastructure.security.ed25519_keys import Ed25519KeyService


NOW = 1_700_000_000
ADDRESS = "0x" + "ab" * 32


class FakeJwtDecoder:
    def __init__(self, expires_at: int = NOW + 60):
        self.expires_at = expires_at

    def decode_claims(self, *, jwt: str) -> JwtClaims:
        if jwt == "broken":
            raise InvalidCredentialError("broken")
        return JwtClaims(subject="sub", audience="aud", issuer="iss", expires_at=self.expires_at)


class SignerTests(unittest.TestCase):
    def setUp(self):
        self.keys = Ed25519KeyService()
        self.key_pair = self.keys.generate()

    def _session(self, **overrides) -> AuthSession:
        payload = {
            "nonce": "n",
            "randomness": "1",
            "max_epoch": 5,
            "provider": OAuthProvider.GOOGLE,
            "ephemeral_key_pair": self.key_pair,
            "jwt": "header.payload.sig",
            "salt": "123",
            "user_address": ADDRESS,
            "zk_proof": {"proofPoints": {}},
            "flow_state": ZkLoginFlowState.SESSION_ACTIVE,
        }
        payload.update(overrides)
        return AuthSession(**payload)

    def test_signature_carries_proof_material_and_verifies(self):
        signer = build_signer(self._session(), key_port=self.keys, jwt_decoder=FakeJwtDecoder(), clock=lambda: NOW)
        encoded = signer.sign(b"tx-bytes")
        signature = decode_zklogin_signature(encoded)

        self.assertEqual(signer.address, ADDRESS)
        self.assertEqual(signature.max_epoch, 5)
        self.assertEqual(signature.salt, "123")
        self.assertEqual(signature.jwt, "header.payload.sig")
        self.assertEqual(signature.public_key, self.key_pair.public_key)
        self.assertTrue(
            self.keys.verify(public_key=signature.public_key, message=b"tx-bytes", signature=signature.signature)
        )

    def test_missing_or_inactive_session_cannot_sign(self):
        with self.assertRaises(SigningError):
            build_signer(None, key_port=self.keys, jwt_decoder=FakeJwtDecoder())
        with self.assertRaises(SigningError):
            build_signer(
                self._session(flow_state=ZkLoginFlowState.PROOF_RESOLVED),
                key_port=self.keys,
                jwt_decoder=FakeJwtDecoder(),
            )
        with self.assertRaises(SigningError):
            build_signer(self._session(zk_proof=None), key_port=self.keys, jwt_decoder=FakeJwtDecoder())
        with self.assertRaises(SigningError):
            build_signer(self._session(jwt="broken"), key_port=self.keys, jwt_decoder=FakeJwtDecoder())

    def test_expired_session_is_refused(self):
        with self.assertRaises(SessionExpiredError):
            build_signer(
                self._session(),
                key_port=self.keys,
                jwt_decoder=FakeJwtDecoder(expires_at=NOW),
                clock=lambda: NOW,
            )

    def test_signer_rechecks_expiry_on_each_call(self):
        now = {"value": NOW}
        signer = build_signer(
            self._session(),
            key_port=self.keys,
            jwt_decoder=FakeJwtDecoder(),
            clock=lambda: now["value"],
        )
        signer.sign(b"first")
        now["value"] = NOW + 120
        with self.assertRaises(SessionExpiredError):
            signer.sign(b"second")


if __name__ == "__main__":
    unittest.main()
