from __future__ import annotations

from typing import Protocol

from thalexa.application.dto.zklogin import ProofRequest


class ProofPort(Protocol):
    async def fetch_proof(self, request: ProofRequest) -> dict:
        ...
