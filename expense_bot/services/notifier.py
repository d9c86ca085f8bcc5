from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Optional

from ..errors import SessionNotFoundError, TransportError
from ..telegram.transport import ChatTransport
from .sessions import SessionStore

logger = logging.getLogger(__name__)

SUMMARY_URL_PLACEHOLDER = "TBA"


def build_summary(notes: Iterable[str], url: str = SUMMARY_URL_PLACEHOLDER) -> str:
    lines = ["Finished", *(f"- {note}" for note in notes)]
    return "\n".join(lines) + f"\n\nURL: {url}"


class Notifier:
    """Sends messages to the chat bound to a user's session."""

    def __init__(self, transport: ChatTransport, sessions: SessionStore) -> None:
        self.transport = transport
        self.sessions = sessions

    async def notify(self, user_id: int, text: str) -> Optional[int]:
        """Send ``text`` to the user's chat; failures are logged, not raised."""
        try:
            chat_id = self.sessions.get_chat(user_id)
            return await self.transport.send_text(chat_id, text)
        except (SessionNotFoundError, TransportError):
            logger.exception("Failed to notify user %s", user_id)
            return None

    async def finish(self, user_id: int, notes: Iterable[str]) -> None:
        """Deliver the final summary and close the session, whether or not sending worked."""
        try:
            await self.notify(user_id, build_summary(notes))
        finally:
            self.sessions.delete(user_id)
