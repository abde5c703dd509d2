from __future__ import annotations

import logging
from threading import Lock
from typing import Callable

from thalexa.application.ports.session_store_port import SessionStorePort
from thalexa.domain.entities.auth_session import AuthSession
from thalexa.domain.exceptions import SessionNotFoundError

from .session_mapper import map_dict_to_session, map_session_to_dict, merge_session_dicts


logger = logging.getLogger(__name__)


class InMemorySessionStore(SessionStorePort):
    """Process-local session storage keyed by session id.

    Each session is kept as one serialized dict and replaced whole under the
    lock, so readers never observe a partially merged session.
    """

    def __init__(self):
        self._lock = Lock()
        self._sessions: dict[str, dict] = {}

    def store(self, *, session_id: str, session: AuthSession) -> AuthSession:
        incoming = map_session_to_dict(session)
        with self._lock:
            merged = merge_session_dicts(self._sessions.get(session_id), incoming)
            self._sessions[session_id] = merged
        return map_dict_to_session(merged)

    def load(self, *, session_id: str) -> AuthSession | None:
        with self._lock:
            raw = self._sessions.get(session_id)
        if raw is None:
            return None
        return map_dict_to_session(raw)

    def update(
        self,
        *,
        session_id: str,
        apply: Callable[[AuthSession], AuthSession],
    ) -> AuthSession:
        with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                raise SessionNotFoundError("zkLogin session not found; begin a new flow.")
            incoming = map_session_to_dict(apply(map_dict_to_session(current)))
            merged = merge_session_dicts(current, incoming)
            self._sessions[session_id] = merged
        return map_dict_to_session(merged)

    def clear(self, *, session_id: str) -> None:
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.info("session_store: cleared session_id=%s", session_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
