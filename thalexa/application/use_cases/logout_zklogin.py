from __future__ import annotations

import logging

from thalexa.application.ports.session_store_port import SessionStorePort


logger = logging.getLogger(__name__)


class LogoutZkLoginUseCase:
    def __init__(self, *, session_store: SessionStorePort):
        self._session_store = session_store

    def execute(self, *, session_id: str) -> None:
        self._session_store.clear(session_id=session_id)
        logger.info("zklogin: session_cleared session_id=%s", session_id)
