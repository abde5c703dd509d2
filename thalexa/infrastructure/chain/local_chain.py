from __future__ import annotations

import base64
import binascii
import hashlib
import json
import logging
from typing import Callable

from thalexa.application.ports.chain_rpc_port import ChainRpcPort
from thalexa.application.ports.ephemeral_key_port import EphemeralKeyPort
from thalexa.application.ports.jwt_port import JwtDecoderPort
from thalexa.domain.entities.escrow import EscrowContract, EscrowState
from thalexa.domain.entities.subscription import DEFAULT_SUBSCRIPTION_TIERS, SubscriptionTier
from thalexa.domain.entities.units import SUI_COIN_TYPE
from thalexa.domain.exceptions import InvalidCredentialError, RejectedError
from thalexa.domain.services import escrow_lifecycle
from thalexa.domain.services.chain_objects import map_fields_to_escrow
from thalexa.domain.services.zklogin import derive_user_address
from thalexa.domain.services.zklogin_signature import decode_zklogin_signature


logger = logging.getLogger(__name__)


SUBSCRIPTION_PERIOD_MS = 30 * 24 * 60 * 60 * 1000


class MoveAbort(Exception):
    def __init__(self, function: str, reason: str):
        super().__init__(f"MoveAbort in escrow::{function}: {reason}")
        self.function = function
        self.reason = reason


def _object_id(seed: bytes) -> str:
    return "0x" + hashlib.blake2b(seed, digest_size=32).hexdigest()


def _text(argument: dict) -> str:
    value = argument.get("value") or ""
    if isinstance(value, str) and value.startswith("0x"):
        return bytes.fromhex(value[2:]).decode("utf-8")
    return str(value)


class LocalEscrowChain(ChainRpcPort):
    """In-process stand-in for a Sui full node running the escrow package.

    Verifies zkLogin signatures against the sender address, executes the
    escrow entry points with the lifecycle rules and answers the same read
    calls as the JSON-RPC client. Execution failures are reported in the
    transaction effects, as a full node does, and a replayed transaction
    returns its original response.
    """

    def __init__(
        self,
        *,
        package_id: str,
        key_port: EphemeralKeyPort,
        jwt_decoder: JwtDecoderPort,
        clock_ms: Callable[[], int],
        module: str = "escrow",
        epoch: int = 0,
        subscription_tiers: dict[int, SubscriptionTier] | None = None,
    ):
        self._package_id = package_id
        self._module = module
        self._key_port = key_port
        self._jwt_decoder = jwt_decoder
        self._clock_ms = clock_ms
        self._epoch = epoch
        if subscription_tiers is None:
            subscription_tiers = {tier.id: tier for tier in DEFAULT_SUBSCRIPTION_TIERS}
        self._subscription_tiers = subscription_tiers
        self._objects: dict[str, dict] = {}
        self._balances: dict[str, int] = {}
        self._events: list[dict] = []
        self._executed: dict[str, dict] = {}
        self._handlers = {
            "create_account": self._create_account,
            "upgrade_subscription": self._upgrade_subscription,
            "create_product": self._create_product,
            "create_escrow": self._create_escrow,
            "accept_escrow": self._accept_escrow,
            "update_tracking": self._update_tracking,
            "complete_escrow": self._complete_escrow,
            "dispute_escrow": self._dispute_escrow,
            "cancel_escrow": self._cancel_escrow,
            "verify_product": self._verify_product,
        }

    @property
    def epoch(self) -> int:
        return self._epoch

    def advance_epoch(self, count: int = 1) -> int:
        self._epoch += count
        return self._epoch

    def fund(self, address: str, amount: int) -> None:
        self._balances[address] = self._balances.get(address, 0) + amount

    def struct_type(self, name: str) -> str:
        return f"{self._package_id}::{self._module}::{name}"

    async def get_balance(self, *, owner: str, coin_type: str) -> dict:
        total = self._balances.get(owner, 0) if coin_type == SUI_COIN_TYPE else 0
        return {"coinType": coin_type, "coinObjectCount": 1 if total else 0, "totalBalance": str(total)}

    async def get_owned_objects(
        self,
        *,
        owner: str,
        struct_type: str | None = None,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> dict:
        matches = [
            obj
            for obj in self._objects.values()
            if obj["owner"].get("AddressOwner") == owner and (struct_type is None or obj["type"] == struct_type)
        ]
        ids = [obj["objectId"] for obj in matches]
        start = ids.index(cursor) + 1 if cursor in ids else 0
        end = len(matches) if limit is None else start + limit
        page = matches[start:end]
        return {
            "data": [{"data": json.loads(json.dumps(obj))} for obj in page],
            "nextCursor": page[-1]["objectId"] if page else None,
            "hasNextPage": end < len(matches),
        }

    async def get_object(self, *, object_id: str) -> dict:
        obj = self._objects.get(object_id)
        if obj is None:
            return {"error": {"code": "notExists", "object_id": object_id}}
        return {"data": json.loads(json.dumps(obj))}

    async def query_events(
        self,
        *,
        event_type: str,
        cursor: dict | None = None,
        limit: int | None = None,
        descending: bool = True,
    ) -> dict:
        matches = [event for event in self._events if event["type"] == event_type]
        if descending:
            matches.reverse()
        start = 0
        if cursor is not None:
            for index, event in enumerate(matches):
                if event["id"] == cursor:
                    start = index + 1
                    break
        end = len(matches) if limit is None else start + limit
        page = matches[start:end]
        return {
            "data": page,
            "nextCursor": page[-1]["id"] if page else None,
            "hasNextPage": end < len(matches),
        }

    async def get_latest_system_state(self) -> dict:
        return {"epoch": str(self._epoch)}

    async def execute_transaction_block(self, *, tx_bytes: str, signatures: list[str]) -> dict:
        try:
            raw_bytes = base64.b64decode(tx_bytes, validate=True)
            tx = json.loads(raw_bytes)
            sender = str(tx["sender"])
            target = str(tx["target"])
            arguments = list(tx["arguments"])
        except (binascii.Error, ValueError, KeyError, TypeError) as exc:
            raise RejectedError("Transaction bytes could not be deserialized.") from exc

        digest = hashlib.blake2b(raw_bytes, digest_size=32).hexdigest()
        if digest in self._executed:
            return self._executed[digest]

        self._verify_signature(sender=sender, tx_bytes=raw_bytes, signatures=signatures)
        function = self._resolve_function(target)

        snapshot = (
            {key: json.loads(json.dumps(value)) for key, value in self._objects.items()},
            dict(self._balances),
            len(self._events),
        )
        context = _ExecutionContext(digest=digest, sender=sender, now_ms=self._clock_ms())
        try:
            self._handlers[function](context, arguments)
        except MoveAbort as exc:
            self._objects, self._balances = snapshot[0], snapshot[1]
            del self._events[snapshot[2]:]
            logger.info("local_chain: aborted function=%s digest=%s reason=%s", function, digest, exc.reason)
            response = self._response(digest, status={"status": "failure", "error": str(exc)}, context=None)
        else:
            logger.info("local_chain: executed function=%s digest=%s sender=%s", function, digest, sender)
            response = self._response(digest, status={"status": "success"}, context=context)

        self._executed[digest] = response
        return response

    def _verify_signature(self, *, sender: str, tx_bytes: bytes, signatures: list[str]) -> None:
        if not signatures:
            raise RejectedError("Transaction is not signed.")
        try:
            signature = decode_zklogin_signature(signatures[0])
            claims = self._jwt_decoder.decode_claims(jwt=signature.jwt)
        except (ValueError, InvalidCredentialError) as exc:
            raise RejectedError("Invalid user signature: malformed zkLogin signature.") from exc

        if signature.max_epoch < self._epoch:
            raise RejectedError(
                f"Invalid user signature: max epoch {signature.max_epoch} is before current epoch {self._epoch}."
            )
        if not self._key_port.verify(
            public_key=signature.public_key,
            message=tx_bytes,
            signature=signature.signature,
        ):
            raise RejectedError("Invalid user signature: ephemeral signature does not verify.")
        address = derive_user_address(salt=signature.salt, subject=claims.subject, audience=claims.audience)
        if address != sender:
            raise RejectedError("Invalid user signature: signer does not match sender.")

    def _resolve_function(self, target: str) -> str:
        parts = target.split("::")
        if len(parts) != 3 or parts[0] != self._package_id or parts[1] != self._module:
            raise RejectedError(f"Unknown package or module in target {target}.")
        if parts[2] not in self._handlers:
            raise RejectedError(f"Function {parts[2]} is not an entry point of {self._module}.")
        return parts[2]

    def _response(self, digest: str, *, status: dict, context: _ExecutionContext | None) -> dict:
        return {
            "digest": digest,
            "effects": {"status": status, "executedEpoch": str(self._epoch)},
            "events": list(context.events) if context else [],
            "objectChanges": list(context.object_changes) if context else [],
        }

    # entry points

    def _create_account(self, ctx: _ExecutionContext, args: list[dict]) -> None:
        if any(
            obj["type"] == self.struct_type("UserAccount") and obj["owner"].get("AddressOwner") == ctx.sender
            for obj in self._objects.values()
        ):
            raise MoveAbort("create_account", "EAccountExists")
        account_id = self._new_object(
            ctx,
            "UserAccount",
            owner=ctx.sender,
            fields={
                "owner": ctx.sender,
                "email_hash": args[0]["value"],
                "subscription_tier": 0,
                "subscription_expires": "0",
                "monthly_volume": "0",
                "products_created": "0",
                "is_verified": False,
                "created_at": str(ctx.now_ms),
            },
        )
        self._emit(ctx, "AccountCreated", {"account_id": account_id, "owner": ctx.sender})

    def _upgrade_subscription(self, ctx: _ExecutionContext, args: list[dict]) -> None:
        account = self._owned(ctx, "upgrade_subscription", args[0]["value"], "UserAccount")
        payment = int(args[1]["value"])
        tier = self._subscription_tiers.get(int(args[2]["value"]))
        if tier is None:
            raise MoveAbort("upgrade_subscription", "EInvalidTier")
        if payment < tier.price_mist:
            raise MoveAbort("upgrade_subscription", "EInsufficientPayment")
        self._debit(ctx, "upgrade_subscription", payment)

        fields = account["content"]["fields"]
        fields["subscription_tier"] = tier.id
        fields["subscription_expires"] = str(ctx.now_ms + SUBSCRIPTION_PERIOD_MS)
        self._mutated(ctx, account)
        self._emit(ctx, "SubscriptionUpgraded", {"account_id": account["objectId"], "tier": tier.id})

    def _create_product(self, ctx: _ExecutionContext, args: list[dict]) -> None:
        account = self._owned(ctx, "create_product", args[0]["value"], "UserAccount")
        product_id = self._new_object(
            ctx,
            "Product",
            owner=ctx.sender,
            fields={
                "creator": ctx.sender,
                "name": _text(args[1]),
                "description": _text(args[2]),
                "category": _text(args[3]),
                "metadata_ipfs": _text(args[4]),
                "image_ipfs": _text(args[5]),
                "quantity": str(args[6]["value"]),
                "unit_price": str(args[7]["value"]),
                "currency": _text(args[8]),
                "manufacturer": _text(args[9]),
                "origin_location": _text(args[10]),
                "batch_number": _text(args[11]),
                "created_at": str(ctx.now_ms),
                "verification_count": "0",
                "is_verified": False,
            },
        )
        fields = account["content"]["fields"]
        fields["products_created"] = str(int(fields["products_created"]) + 1)
        self._mutated(ctx, account)
        self._emit(ctx, "ProductCreated", {"product_id": product_id, "creator": ctx.sender})

    def _create_escrow(self, ctx: _ExecutionContext, args: list[dict]) -> None:
        seller = str(args[0]["value"])
        arbiter = str(args[1]["value"])
        product_id = str(args[2]["value"])
        amount = int(args[3]["value"])
        product = self._objects.get(product_id)
        if product is None or product["type"] != self.struct_type("Product"):
            raise MoveAbort("create_escrow", "EProductNotFound")
        if seller == ctx.sender:
            raise MoveAbort("create_escrow", "ESellerIsBuyer")
        self._debit(ctx, "create_escrow", amount)

        escrow_id = self._new_object(
            ctx,
            "EscrowContract",
            fields={
                "buyer": ctx.sender,
                "seller": seller,
                "arbiter": arbiter,
                "product_id": product_id,
                "amount": str(amount),
                "state": int(EscrowState.PENDING),
                "created_at": str(ctx.now_ms),
                "accepted_at": "0",
                "completed_at": "0",
                "terms": _text(args[4]),
                "tracking_updates": [],
            },
        )
        self._emit(
            ctx,
            "EscrowCreated",
            {
                "escrow_id": escrow_id,
                "buyer": ctx.sender,
                "seller": seller,
                "arbiter": arbiter,
                "amount": str(amount),
            },
        )

    def _accept_escrow(self, ctx: _ExecutionContext, args: list[dict]) -> None:
        escrow = self._escrow(args[0]["value"], "accept_escrow")
        self._require_party(ctx, "accept_escrow", "ENotSeller", escrow.seller)
        updated = self._transition(
            "accept_escrow",
            lambda: escrow_lifecycle.accept(escrow, now_ms=ctx.now_ms),
        )
        self._store_escrow(ctx, updated)
        self._emit(ctx, "EscrowAccepted", {"escrow_id": escrow.id, "seller": ctx.sender})

    def _update_tracking(self, ctx: _ExecutionContext, args: list[dict]) -> None:
        escrow = self._escrow(args[0]["value"], "update_tracking")
        self._require_party(ctx, "update_tracking", "ENotAuthorized", escrow.seller, escrow.arbiter)
        status = _text(args[2])
        updated = self._transition(
            "update_tracking",
            lambda: escrow_lifecycle.append_tracking(
                escrow,
                location=_text(args[1]),
                status=status,
                updated_by=ctx.sender,
                now_ms=ctx.now_ms,
            ),
        )
        self._store_escrow(ctx, updated)
        self._emit(
            ctx,
            "TrackingUpdated",
            {"escrow_id": escrow.id, "status": status, "state": int(updated.state)},
        )

    def _complete_escrow(self, ctx: _ExecutionContext, args: list[dict]) -> None:
        escrow = self._escrow(args[0]["value"], "complete_escrow")
        self._require_party(ctx, "complete_escrow", "ENotAuthorized", escrow.buyer, escrow.arbiter)
        updated = self._transition(
            "complete_escrow",
            lambda: escrow_lifecycle.complete(escrow, now_ms=ctx.now_ms),
        )
        self._store_escrow(ctx, updated)
        self.fund(escrow.seller, escrow.amount)
        self._emit(ctx, "EscrowCompleted", {"escrow_id": escrow.id, "seller": escrow.seller, "amount": str(escrow.amount)})

    def _dispute_escrow(self, ctx: _ExecutionContext, args: list[dict]) -> None:
        escrow = self._escrow(args[0]["value"], "dispute_escrow")
        self._require_party(
            ctx,
            "dispute_escrow",
            "ENotParty",
            escrow.buyer,
            escrow.seller,
            escrow.arbiter,
        )
        updated = self._transition("dispute_escrow", lambda: escrow_lifecycle.dispute(escrow))
        self._store_escrow(ctx, updated)
        self._emit(ctx, "EscrowDisputed", {"escrow_id": escrow.id, "raised_by": ctx.sender})

    def _cancel_escrow(self, ctx: _ExecutionContext, args: list[dict]) -> None:
        escrow = self._escrow(args[0]["value"], "cancel_escrow")
        self._require_party(ctx, "cancel_escrow", "ENotParty", escrow.buyer, escrow.seller)
        updated = self._transition("cancel_escrow", lambda: escrow_lifecycle.cancel(escrow))
        self._store_escrow(ctx, updated)
        self.fund(escrow.buyer, escrow.amount)
        self._emit(ctx, "EscrowCancelled", {"escrow_id": escrow.id, "cancelled_by": ctx.sender})

    def _verify_product(self, ctx: _ExecutionContext, args: list[dict]) -> None:
        product = self._objects.get(str(args[0]["value"]))
        if product is None or product["type"] != self.struct_type("Product"):
            raise MoveAbort("verify_product", "EProductNotFound")
        fields = product["content"]["fields"]
        fields["verification_count"] = str(int(fields["verification_count"]) + 1)
        fields["is_verified"] = True
        self._mutated(ctx, product)
        self._emit(ctx, "ProductVerified", {"product_id": product["objectId"], "verifier": ctx.sender})

    # helpers

    def _new_object(self, ctx: _ExecutionContext, name: str, *, fields: dict, owner: str | None = None) -> str:
        # No owner means a shared object, mutable by any party the Move code admits.
        object_id = _object_id(f"{ctx.digest}:{len(ctx.object_changes)}".encode("ascii"))
        object_type = self.struct_type(name)
        self._objects[object_id] = {
            "objectId": object_id,
            "version": "1",
            "type": object_type,
            "owner": {"AddressOwner": owner} if owner else {"Shared": {"initial_shared_version": 1}},
            "content": {
                "dataType": "moveObject",
                "type": object_type,
                "fields": {"id": {"id": object_id}, **fields},
            },
        }
        ctx.object_changes.append(
            {"type": "created", "objectId": object_id, "objectType": object_type, "sender": ctx.sender}
        )
        return object_id

    def _mutated(self, ctx: _ExecutionContext, obj: dict) -> None:
        obj["version"] = str(int(obj["version"]) + 1)
        ctx.object_changes.append(
            {"type": "mutated", "objectId": obj["objectId"], "objectType": obj["type"], "sender": ctx.sender}
        )

    def _emit(self, ctx: _ExecutionContext, name: str, parsed: dict) -> None:
        event = {
            "id": {"txDigest": ctx.digest, "eventSeq": str(len(ctx.events))},
            "type": self.struct_type(name),
            "sender": ctx.sender,
            "timestampMs": str(ctx.now_ms),
            "parsedJson": parsed,
        }
        ctx.events.append(event)
        self._events.append(event)

    def _owned(self, ctx: _ExecutionContext, function: str, object_id: str, name: str) -> dict:
        obj = self._objects.get(str(object_id))
        if obj is None or obj["type"] != self.struct_type(name):
            raise MoveAbort(function, f"E{name}NotFound")
        if obj["owner"].get("AddressOwner") != ctx.sender:
            raise MoveAbort(function, "ENotOwner")
        return obj

    def _debit(self, ctx: _ExecutionContext, function: str, amount: int) -> None:
        balance = self._balances.get(ctx.sender, 0)
        if balance < amount:
            raise MoveAbort(function, "EInsufficientBalance")
        self._balances[ctx.sender] = balance - amount

    def _escrow(self, object_id: str, function: str) -> EscrowContract:
        obj = self._objects.get(str(object_id))
        if obj is None or obj["type"] != self.struct_type("EscrowContract"):
            raise MoveAbort(function, "EEscrowNotFound")
        return map_fields_to_escrow(obj["content"]["fields"])

    @staticmethod
    def _require_party(
        ctx: _ExecutionContext,
        function: str,
        code: str,
        *allowed: str,
    ) -> None:
        if ctx.sender not in allowed:
            raise MoveAbort(function, code)

    @staticmethod
    def _transition(function: str, apply: Callable[[], EscrowContract]) -> EscrowContract:
        try:
            return apply()
        except escrow_lifecycle.IllegalEscrowTransition as exc:
            raise MoveAbort(function, f"EInvalidState: {exc}") from exc

    def _store_escrow(self, ctx: _ExecutionContext, escrow: EscrowContract) -> None:
        obj = self._objects[escrow.id]
        obj["content"]["fields"].update(
            {
                "state": int(escrow.state),
                "accepted_at": str(escrow.accepted_at),
                "completed_at": str(escrow.completed_at),
                "tracking_updates": [
                    {
                        "type": self.struct_type("TrackingUpdate"),
                        "fields": {
                            "timestamp": str(update.timestamp),
                            "location": update.location,
                            "status": update.status,
                            "updated_by": update.updated_by,
                        },
                    }
                    for update in escrow.tracking_updates
                ],
            }
        )
        self._mutated(ctx, obj)


class _ExecutionContext:
    def __init__(self, *, digest: str, sender: str, now_ms: int):
        self.digest = digest
        self.sender = sender
        self.now_ms = now_ms
        self.events: list[dict] = []
        self.object_changes: list[dict] = []
