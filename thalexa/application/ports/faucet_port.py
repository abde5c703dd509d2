from __future__ import annotations

from typing import Protocol


class FaucetPort(Protocol):
    async def request_gas(self, *, recipient: str) -> bool:
        ...
