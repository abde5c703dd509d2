from __future__ import annotations

from typing import Protocol


class SaltPort(Protocol):
    async def fetch_salt(self, *, jwt: str) -> str:
        ...
