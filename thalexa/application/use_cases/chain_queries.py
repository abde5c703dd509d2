from __future__ import annotations

import logging
from dataclasses import replace

from thalexa.application.dto.chain import EventsPage, OwnedObjectsPage
from thalexa.application.ports.chain_rpc_port import ChainRpcPort
from thalexa.domain.entities.escrow import EscrowContract
from thalexa.domain.entities.product import Product
from thalexa.domain.entities.units import SUI_COIN_TYPE
from thalexa.domain.entities.user import User
from thalexa.domain.exceptions import ObjectNotFoundError
from thalexa.domain.services.chain_objects import (
    map_fields_to_escrow,
    map_fields_to_product,
    map_fields_to_user,
    map_raw_event,
    object_fields,
    object_type,
)
from thalexa.domain.services.units import normalize_object_id


logger = logging.getLogger(__name__)


class ChainQueryService:
    """Read-only view over escrow package objects and events."""

    def __init__(self, *, chain_rpc: ChainRpcPort, package_id: str, module: str = "escrow"):
        self._chain_rpc = chain_rpc
        self._package_id = package_id
        self._module = module

    def struct_type(self, name: str) -> str:
        return f"{self._package_id}::{self._module}::{name}"

    async def get_balance(self, *, address: str) -> int:
        raw = await self._chain_rpc.get_balance(owner=address, coin_type=SUI_COIN_TYPE)
        return int(raw.get("totalBalance") or 0)

    async def get_owned_objects(
        self,
        *,
        address: str,
        struct_type: str | None = None,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> OwnedObjectsPage:
        raw = await self._chain_rpc.get_owned_objects(
            owner=address,
            struct_type=struct_type,
            cursor=cursor,
            limit=limit,
        )
        return OwnedObjectsPage(
            objects=list(raw.get("data") or []),
            next_cursor=raw.get("nextCursor"),
            has_next_page=bool(raw.get("hasNextPage", False)),
        )

    async def get_user_account(self, *, address: str) -> User | None:
        page = await self.get_owned_objects(address=address, struct_type=self.struct_type("UserAccount"))
        if not page.objects:
            return None
        user = map_fields_to_user(object_fields(page.objects[0]))
        if not user.address:
            user = replace(user, address=address)
        return user

    async def get_user_products(self, *, address: str) -> list[Product]:
        page = await self.get_owned_objects(address=address, struct_type=self.struct_type("Product"))
        return [map_fields_to_product(object_fields(item)) for item in page.objects]

    async def get_escrow_contracts(self, *, address: str, page_size: int = 50) -> list[EscrowContract]:
        """Escrows where ``address`` is buyer, seller or arbiter.

        Escrow contracts are shared objects, so they never show up among an
        address's owned objects; they are found through ``EscrowCreated``
        events instead, newest first.
        """
        address = address.lower()
        escrow_ids: list[str] = []
        cursor = None
        while True:
            page = await self.query_events(event_name="EscrowCreated", limit=page_size, cursor=cursor)
            for event in page.events:
                parties = {str(event.fields.get(role) or "").lower() for role in ("buyer", "seller", "arbiter")}
                escrow_id = event.fields.get("escrow_id")
                if address in parties and escrow_id and escrow_id not in escrow_ids:
                    escrow_ids.append(escrow_id)
            if not page.has_next_page or page.next_cursor is None:
                break
            cursor = page.next_cursor

        escrows = []
        for escrow_id in escrow_ids:
            try:
                escrows.append(await self.get_escrow(escrow_id=escrow_id))
            except ObjectNotFoundError:
                logger.info("chain_queries: escrow_gone escrow_id=%s address=%s", escrow_id, address)
        return escrows

    async def get_object(self, *, object_id: str) -> dict:
        try:
            object_id = normalize_object_id(object_id)
        except ValueError as exc:
            raise ObjectNotFoundError(f"Invalid object id: {object_id}.") from exc
        raw = await self._chain_rpc.get_object(object_id=object_id)
        if not raw.get("data"):
            raise ObjectNotFoundError(f"Object {object_id} not found.")
        return raw

    async def get_escrow(self, *, escrow_id: str) -> EscrowContract:
        raw = await self._get_typed_object(escrow_id, "EscrowContract")
        return map_fields_to_escrow(object_fields(raw))

    async def get_product(self, *, product_id: str) -> Product:
        raw = await self._get_typed_object(product_id, "Product")
        return map_fields_to_product(object_fields(raw))

    async def query_events(
        self,
        *,
        event_name: str,
        limit: int = 50,
        cursor: dict | None = None,
    ) -> EventsPage:
        raw = await self._chain_rpc.query_events(
            event_type=self.struct_type(event_name),
            cursor=cursor,
            limit=limit,
            descending=True,
        )
        return EventsPage(
            events=[map_raw_event(item) for item in raw.get("data") or []],
            next_cursor=raw.get("nextCursor"),
            has_next_page=bool(raw.get("hasNextPage", False)),
        )

    async def get_current_epoch(self) -> int:
        raw = await self._chain_rpc.get_latest_system_state()
        return int(raw.get("epoch") or 0)

    async def _get_typed_object(self, object_id: str, name: str) -> dict:
        raw = await self.get_object(object_id=object_id)
        expected = self.struct_type(name)
        if object_type(raw) != expected:
            logger.info(
                "chain_queries: type_mismatch object_id=%s expected=%s found=%s",
                object_id,
                expected,
                object_type(raw),
            )
            raise ObjectNotFoundError(f"Object {object_id} is not a {name}.")
        return raw
