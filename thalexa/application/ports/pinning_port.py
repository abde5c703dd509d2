from __future__ import annotations

from typing import Protocol

from thalexa.application.dto.product import PinnedContent


class PinningPort(Protocol):
    async def upload_file(
        self,
        *,
        content: bytes,
        filename: str,
        content_type: str,
        name: str | None = None,
        keyvalues: dict | None = None,
    ) -> PinnedContent:
        ...

    async def upload_json(
        self,
        *,
        payload: dict,
        name: str,
        keyvalues: dict | None = None,
    ) -> PinnedContent:
        ...

    async def fetch_json(self, *, cid: str) -> dict:
        ...

    async def unpin(self, *, cid: str) -> None:
        ...

    def gateway_url(self, cid: str) -> str:
        ...
