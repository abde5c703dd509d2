from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass


@dataclass(frozen=True, repr=False)
class ZkLoginSignature:
    signature: bytes
    extended_public_key: str
    zk_proof: dict
    max_epoch: int
    jwt: str
    salt: str

    def __repr__(self) -> str:
        return f"ZkLoginSignature(extended_public_key={self.extended_public_key}, max_epoch={self.max_epoch})"

    @property
    def public_key(self) -> bytes:
        # Drop the scheme flag byte.
        return base64.b64decode(self.extended_public_key)[1:]


def encode_zklogin_signature(signature: ZkLoginSignature) -> str:
    payload = {
        "signature": base64.b64encode(signature.signature).decode("ascii"),
        "publicKey": signature.extended_public_key,
        "zkProof": signature.zk_proof,
        "maxEpoch": signature.max_epoch,
        "jwt": signature.jwt,
        "salt": signature.salt,
    }
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def decode_zklogin_signature(encoded: str) -> ZkLoginSignature:
    try:
        payload = json.loads(base64.b64decode(encoded, validate=True))
        return ZkLoginSignature(
            signature=base64.b64decode(payload["signature"], validate=True),
            extended_public_key=str(payload["publicKey"]),
            zk_proof=dict(payload["zkProof"]),
            max_epoch=int(payload["maxEpoch"]),
            jwt=str(payload["jwt"]),
            salt=str(payload["salt"]),
        )
    except (binascii.Error, ValueError, KeyError, TypeError) as exc:
        raise ValueError("Malformed zkLogin signature.") from exc
