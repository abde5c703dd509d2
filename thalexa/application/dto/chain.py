from __future__ import annotations

from dataclasses import dataclass

from thalexa.domain.entities.transaction import ChainEvent


@dataclass(frozen=True)
class OwnedObjectsPage:
    objects: list[dict]
    next_cursor: str | None
    has_next_page: bool


@dataclass(frozen=True)
class EventsPage:
    events: list[ChainEvent]
    next_cursor: dict | None
    has_next_page: bool
