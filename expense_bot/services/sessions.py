from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

from ..errors import SessionNotFoundError

DEFAULT_SESSION_TIMEOUT = timedelta(minutes=5)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    chat_id: int
    command: str
    created_at: datetime
    message_id: Optional[int] = None


class SessionStore(Protocol):
    def start(self, user_id: int, chat_id: int, command: str) -> Session: ...
    def attach_message_ref(self, user_id: int, message_id: int) -> None: ...
    def get_chat(self, user_id: int) -> int: ...
    def get_command(self, user_id: int) -> str: ...
    def get_message_ref(self, user_id: int) -> Optional[int]: ...
    def is_expired(self, user_id: int) -> bool: ...
    def reset_timer(self, user_id: int) -> None: ...
    def delete(self, user_id: int) -> None: ...


class InMemorySessionStore(SessionStore):
    """Process-local session map, one pending upload per user.

    Every operation holds the lock, so a single call never interleaves with
    another. Two updates for the same user that race can still observe each
    other's intermediate state (e.g. a document arriving while the prompt is
    being sent); that window is accepted.
    """

    def __init__(
        self,
        timeout: timedelta = DEFAULT_SESSION_TIMEOUT,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.timeout = timeout
        self._clock = clock
        self._sessions: dict[int, Session] = {}
        self._lock = threading.Lock()

    def _require(self, user_id: int) -> Session:
        session = self._sessions.get(user_id)
        if session is None:
            raise SessionNotFoundError(user_id)
        return session

    def start(self, user_id: int, chat_id: int, command: str) -> Session:
        session = Session(chat_id=chat_id, command=command, created_at=self._clock())
        with self._lock:
            self._sessions[user_id] = session
        return replace(session)

    def attach_message_ref(self, user_id: int, message_id: int) -> None:
        with self._lock:
            self._require(user_id).message_id = message_id

    def get_chat(self, user_id: int) -> int:
        with self._lock:
            return self._require(user_id).chat_id

    def get_command(self, user_id: int) -> str:
        with self._lock:
            return self._require(user_id).command

    def get_message_ref(self, user_id: int) -> Optional[int]:
        with self._lock:
            return self._require(user_id).message_id

    def is_expired(self, user_id: int) -> bool:
        # A missing session is not "expired"; callers check existence separately.
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                return False
            return self._clock() - session.created_at > self.timeout

    def reset_timer(self, user_id: int) -> None:
        with self._lock:
            self._require(user_id).created_at = self._clock()

    def delete(self, user_id: int) -> None:
        with self._lock:
            self._sessions.pop(user_id, None)
