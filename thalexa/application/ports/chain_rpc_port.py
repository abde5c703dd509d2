from __future__ import annotations

from typing import Protocol


class ChainRpcPort(Protocol):
    """Raw Sui JSON-RPC surface; responses are the ``result`` payloads."""

    async def get_balance(self, *, owner: str, coin_type: str) -> dict:
        ...

    async def get_owned_objects(
        self,
        *,
        owner: str,
        struct_type: str | None = None,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> dict:
        ...

    async def get_object(self, *, object_id: str) -> dict:
        ...

    async def query_events(
        self,
        *,
        event_type: str,
        cursor: dict | None = None,
        limit: int | None = None,
        descending: bool = True,
    ) -> dict:
        ...

    async def execute_transaction_block(self, *, tx_bytes: str, signatures: list[str]) -> dict:
        ...

    async def get_latest_system_state(self) -> dict:
        ...
