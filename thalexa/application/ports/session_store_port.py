from __future__ import annotations

from typing import Callable, Protocol

from thalexa.domain.entities.auth_session import AuthSession


class SessionStorePort(Protocol):
    def store(self, *, session_id: str, session: AuthSession) -> AuthSession:
        ...

    def load(self, *, session_id: str) -> AuthSession | None:
        ...

    def update(
        self,
        *,
        session_id: str,
        apply: Callable[[AuthSession], AuthSession],
    ) -> AuthSession:
        """Read, transform and write one session atomically.

        Raises SessionNotFoundError when nothing is stored under the id. An
        exception raised by ``apply`` leaves the stored session untouched.
        """
        ...

    def clear(self, *, session_id: str) -> None:
        ...
