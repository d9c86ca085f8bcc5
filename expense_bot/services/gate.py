from __future__ import annotations

import logging
from typing import Optional

from ..errors import NoFileAttachedError, SessionNotFoundError, UnknownCommandError, UnprocessableMessageError
from .sessions import SessionStore
from .upload import UPLOAD_COMMAND, SpendeeUploadService

logger = logging.getLogger(__name__)

NO_FILE_MESSAGE = "Please send the CSV as a document attachment"


class UploadGate:
    """Decides what an incoming message means for the user's pending upload."""

    def __init__(self, sessions: SessionStore, service: SpendeeUploadService) -> None:
        self.sessions = sessions
        self.service = service

    async def on_command(self, user_id: int, chat_id: int, command: str) -> None:
        if command != UPLOAD_COMMAND:
            raise UnknownCommandError(f"invalid command: {command}")
        await self.service.request(user_id, chat_id)

    async def on_message(
        self,
        user_id: int,
        *,
        file_id: Optional[str] = None,
        text: Optional[str] = None,
    ) -> None:
        try:
            command = self.sessions.get_command(user_id)
        except SessionNotFoundError as exc:
            logger.warning("Dropping message without an active session: %s", exc)
            return

        if command != UPLOAD_COMMAND:
            raise UnprocessableMessageError(f"unprocessable text: {text}")

        if self.sessions.is_expired(user_id):
            await self.service.expire(user_id)
            return

        if file_id is None:
            await self.service.notifier.notify(user_id, NO_FILE_MESSAGE)
            raise NoFileAttachedError(f"user {user_id} sent no file for {UPLOAD_COMMAND}")

        await self.service.process(user_id, file_id)
