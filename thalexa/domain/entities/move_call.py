from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Literal


ArgumentKind = Literal["pure", "object", "split_coin"]


@dataclass(frozen=True)
class CallArgument:
    kind: ArgumentKind
    type_tag: str
    value: Any

    def to_dict(self) -> dict:
        value = self.value
        if isinstance(value, bytes):
            value = "0x" + value.hex()
        return {"kind": self.kind, "type": self.type_tag, "value": value}


@dataclass(frozen=True)
class MoveCall:
    """Unsigned, fully specified entry-point call.

    ``receiver``, ``amount``, ``product_id`` and ``escrow_id`` are audit
    context for the transaction ledger; they are not sent as arguments.
    ``request_id`` is fixed when the call is built so that a retry of the same
    descriptor serializes to the same bytes.
    """

    package_id: str
    module: str
    function: str
    arguments: tuple[CallArgument, ...]
    request_id: str
    receiver: str | None = None
    amount: int = 0
    currency: str = "SUI"
    product_id: str | None = None
    escrow_id: str | None = None

    @property
    def target(self) -> str:
        return f"{self.package_id}::{self.module}::{self.function}"

    def to_dict(self) -> dict:
        return {
            "target": self.target,
            "arguments": [argument.to_dict() for argument in self.arguments],
            "request_id": self.request_id,
        }

    def to_bytes(self, *, sender: str) -> bytes:
        payload = self.to_dict()
        payload["sender"] = sender
        return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")

    def digest(self, *, sender: str) -> str:
        return hashlib.blake2b(self.to_bytes(sender=sender), digest_size=32).hexdigest()
