from __future__ import annotations

import logging
from typing import Protocol

import httpx
from telegram import Bot
from telegram.error import TelegramError

from ..errors import TransportError

logger = logging.getLogger(__name__)


class ChatTransport(Protocol):
    async def send_text(self, chat_id: int, text: str) -> int: ...
    async def resolve_file_url(self, file_id: str) -> str: ...
    async def fetch_file(self, url: str) -> bytes: ...


class TelegramTransport(ChatTransport):
    """Telegram Bot API calls used by the upload flow, with errors normalised."""

    def __init__(self, bot: Bot, *, download_timeout: float = 30.0) -> None:
        self.bot = bot
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout=download_timeout, connect=10.0),
            follow_redirects=True,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def send_text(self, chat_id: int, text: str) -> int:
        try:
            message = await self.bot.send_message(chat_id=chat_id, text=text)
        except TelegramError as exc:
            raise TransportError(f"could not send message to chat {chat_id}: {exc}") from exc
        return message.message_id

    async def resolve_file_url(self, file_id: str) -> str:
        try:
            file = await self.bot.get_file(file_id)
        except TelegramError as exc:
            raise TransportError(f"could not resolve file {file_id}: {exc}") from exc
        if not file.file_path:
            raise TransportError(f"Telegram returned no path for file {file_id}")
        return file.file_path

    async def fetch_file(self, url: str) -> bytes:
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            # The URL embeds the bot token; keep it out of logs.
            raise TransportError(f"could not download file: {type(exc).__name__}") from exc
        return response.content
