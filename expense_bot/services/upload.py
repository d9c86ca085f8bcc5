from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import partial
from typing import Callable, Optional

import anyio

from ..errors import StoreError, TransportError, ValidationError
from ..telegram.transport import ChatTransport
from .notifier import Notifier
from .reconciler import reconcile_csv
from .sessions import SessionStore
from .writer import IdempotentSheetWriter

logger = logging.getLogger(__name__)

UPLOAD_COMMAND = "upload_spendee"
UPLOAD_PROMPT = "Please upload your Spendee CSV document"
TIMEOUT_MESSAGE = "Request timeout"
NOT_CSV_MESSAGE = "File must be csv, please upload again"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SpendeeUploadService:
    """Runs the Spendee upload conversation: prompt, then CSV to sheet."""

    def __init__(
        self,
        sessions: SessionStore,
        transport: ChatTransport,
        writer: IdempotentSheetWriter,
        notifier: Optional[Notifier] = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.sessions = sessions
        self.transport = transport
        self.writer = writer
        self.notifier = notifier or Notifier(transport, sessions)
        self._clock = clock

    async def request(self, user_id: int, chat_id: int) -> int:
        """Open an upload session and ask the user for the file."""
        self.sessions.start(user_id, chat_id, UPLOAD_COMMAND)
        message_id = await self.transport.send_text(chat_id, UPLOAD_PROMPT)
        self.sessions.attach_message_ref(user_id, message_id)
        logger.info("Upload requested by user %s (prompt message %s)", user_id, message_id)
        return message_id

    async def expire(self, user_id: int) -> None:
        logger.info("Upload session of user %s timed out", user_id)
        await self.notifier.notify(user_id, TIMEOUT_MESSAGE)
        self.sessions.delete(user_id)

    async def process(self, user_id: int, file_id: str) -> Optional[list[str]]:
        """Import the uploaded CSV and report back.

        Returns the notes sent in the summary, or ``None`` when the session
        had already timed out. A non-CSV upload raises ``ValidationError``
        and keeps the session open for another attempt.
        """
        if self.sessions.is_expired(user_id):
            await self.expire(user_id)
            return None

        try:
            file_url = await self.transport.resolve_file_url(file_id)
        except TransportError:
            await self.notifier.finish(user_id, [])
            raise

        if not file_url.lower().endswith(".csv"):
            await self.notifier.notify(user_id, NOT_CSV_MESSAGE)
            self.sessions.reset_timer(user_id)
            raise ValidationError(f"file {file_id} is not a CSV document")

        notes: list[str] = []
        try:
            content = await self.transport.fetch_file(file_url)
            result = await anyio.to_thread.run_sync(partial(reconcile_csv, content, now=self._clock()))
            notes.extend(result.notes)
            outcomes = await self.writer.write(result.groups)
            notes.extend(outcome.note for outcome in outcomes if outcome.note)
        except StoreError as exc:
            notes.extend(outcome.note for outcome in exc.outcomes if outcome.note)
            raise
        finally:
            await self.notifier.finish(user_id, notes)
        return notes
