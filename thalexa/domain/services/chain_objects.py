from __future__ import annotations

from typing import Any, Mapping

from thalexa.domain.entities.escrow import EscrowContract, EscrowState, TrackingUpdate
from thalexa.domain.entities.product import Product
from thalexa.domain.entities.transaction import ChainEvent, ExecutionResult, ObjectChange
from thalexa.domain.entities.user import User


def _as_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    return int(value)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return bytes(int(item) for item in value).decode("utf-8", errors="replace")
    return str(value)


def _as_hex(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, list):
        if not value:
            return None
        return bytes(int(item) for item in value).hex()
    text = str(value)
    return text[2:] if text.startswith("0x") else text or None


def _as_id(value: Any) -> str:
    if isinstance(value, Mapping):
        inner = value.get("id")
        return _as_id(inner) if inner is not None else ""
    return str(value) if value is not None else ""


def _struct_fields(value: Any) -> Mapping[str, Any]:
    if isinstance(value, Mapping) and isinstance(value.get("fields"), Mapping):
        return value["fields"]
    return value if isinstance(value, Mapping) else {}


def object_fields(raw: Mapping[str, Any]) -> Mapping[str, Any]:
    """Extract Move struct fields from a Sui object response (or its ``data``)."""
    data = raw.get("data", raw) if isinstance(raw, Mapping) else {}
    if not isinstance(data, Mapping):
        return {}
    content = data.get("content") or {}
    return _struct_fields(content)


def object_type(raw: Mapping[str, Any]) -> str | None:
    data = raw.get("data", raw)
    if not isinstance(data, Mapping):
        return None
    return data.get("type") or (data.get("content") or {}).get("type")


def map_fields_to_user(fields: Mapping[str, Any]) -> User:
    return User(
        address=str(fields.get("owner") or fields.get("address") or ""),
        email_hash=_as_hex(fields.get("email_hash")),
        subscription_tier=_as_int(fields.get("subscription_tier")),
        subscription_expires=_as_int(fields.get("subscription_expires")),
        monthly_volume=_as_int(fields.get("monthly_volume")),
        products_created=_as_int(fields.get("products_created")),
        is_verified=bool(fields.get("is_verified", False)),
        created_at=_as_int(fields.get("created_at")),
    )


def map_fields_to_product(fields: Mapping[str, Any]) -> Product:
    return Product(
        id=_as_id(fields.get("id")),
        creator=str(fields.get("creator") or ""),
        name=_as_text(fields.get("name")),
        description=_as_text(fields.get("description")),
        category=_as_text(fields.get("category")),
        metadata_ipfs=_as_text(fields.get("metadata_ipfs")),
        image_ipfs=_as_text(fields.get("image_ipfs")),
        quantity=_as_int(fields.get("quantity")),
        unit_price=_as_int(fields.get("unit_price")),
        currency=_as_text(fields.get("currency")),
        manufacturer=_as_text(fields.get("manufacturer")),
        origin_location=_as_text(fields.get("origin_location")),
        batch_number=_as_text(fields.get("batch_number")),
        created_at=_as_int(fields.get("created_at")),
        verification_count=_as_int(fields.get("verification_count")),
        is_verified=bool(fields.get("is_verified", False)),
    )


def map_fields_to_tracking_update(raw: Any) -> TrackingUpdate:
    fields = _struct_fields(raw)
    return TrackingUpdate(
        timestamp=_as_int(fields.get("timestamp")),
        location=_as_text(fields.get("location")),
        status=_as_text(fields.get("status")),
        updated_by=str(fields.get("updated_by") or ""),
    )


def map_fields_to_escrow(fields: Mapping[str, Any]) -> EscrowContract:
    updates = fields.get("tracking_updates") or []
    return EscrowContract(
        id=_as_id(fields.get("id")),
        buyer=str(fields.get("buyer") or ""),
        seller=str(fields.get("seller") or ""),
        arbiter=str(fields.get("arbiter") or ""),
        product_id=_as_id(fields.get("product_id")),
        amount=_as_int(fields.get("amount")),
        state=EscrowState(_as_int(fields.get("state"))),
        created_at=_as_int(fields.get("created_at")),
        accepted_at=_as_int(fields.get("accepted_at")),
        completed_at=_as_int(fields.get("completed_at")),
        terms=_as_text(fields.get("terms")),
        tracking_updates=tuple(map_fields_to_tracking_update(item) for item in updates),
    )


def map_raw_event(raw: Mapping[str, Any]) -> ChainEvent:
    event_id = raw.get("id") or {}
    if isinstance(event_id, Mapping):
        event_id = f"{event_id.get('txDigest', '')}:{event_id.get('eventSeq', '')}"
    timestamp = raw.get("timestampMs")
    return ChainEvent(
        id=str(event_id),
        event_type=str(raw.get("type") or ""),
        sender=raw.get("sender"),
        timestamp_ms=int(timestamp) if timestamp is not None else None,
        fields=dict(raw.get("parsedJson") or {}),
    )


def map_execution_response(raw: Mapping[str, Any]) -> ExecutionResult:
    effects = dict(raw.get("effects") or {})
    status = (effects.get("status") or {}).get("status", "unknown")
    changes = tuple(
        ObjectChange(
            change_type=str(change.get("type") or ""),
            object_id=str(change.get("objectId") or ""),
            object_type=change.get("objectType"),
        )
        for change in raw.get("objectChanges") or []
    )
    return ExecutionResult(
        digest=str(raw.get("digest") or ""),
        status=str(status),
        effects=effects,
        events=tuple(map_raw_event(event) for event in raw.get("events") or []),
        object_changes=changes,
    )


def execution_failure_reason(result: ExecutionResult) -> str:
    status = result.effects.get("status") or {}
    return str(status.get("error") or f"Transaction status: {result.status}")
