from __future__ import annotations

import asyncio
import contextlib
import logging
import textwrap
from collections.abc import Awaitable
from datetime import timedelta
from typing import Any

from telegram import BotCommand, Update
from telegram.ext import (
    AIORateLimiter,
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from ..config import get_settings
from ..errors import (
    NoFileAttachedError,
    SessionError,
    StoreError,
    TransportError,
    UnknownCommandError,
    UnprocessableMessageError,
    ValidationError,
)
from ..services import (
    UPLOAD_COMMAND,
    GoogleSheetsStore,
    IdempotentSheetWriter,
    InMemorySessionStore,
    SpendeeUploadService,
    UploadGate,
)
from .transport import TelegramTransport

logger = logging.getLogger(__name__)

HELP_TEXT = textwrap.dedent(
    f"""
    How I can help:

    - /{UPLOAD_COMMAND} - import a Spendee CSV export into the expense spreadsheet.
      Send the command, then upload the .csv file as a document within a few minutes.
    - Only months that have already ended are imported; a month that is already
      in the spreadsheet is skipped.
    """
)

ALLOWED_UPDATES = ["message"]


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.message:
        return
    await update.message.reply_text(
        f"Hi! Send /{UPLOAD_COMMAND} and then your Spendee CSV export to record last month's expenses."
    )


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.message:
        return
    await update.message.reply_text(HELP_TEXT.strip())


def _get_gate(context: ContextTypes.DEFAULT_TYPE) -> UploadGate:
    return context.application.bot_data["upload_gate"]


async def _run_gate(call: Awaitable[None], user_id: int) -> None:
    """Await a gate call and log its outcome; nothing is raised back to the webhook."""
    try:
        await call
    except (UnknownCommandError, UnprocessableMessageError, NoFileAttachedError) as exc:
        logger.warning("Rejected message from user %s: %s", user_id, exc)
    except ValidationError as exc:
        logger.warning("Upload from user %s refused: %s", user_id, exc)
    except SessionError:
        logger.exception("Session error while handling message from user %s", user_id)
    except (TransportError, StoreError):
        logger.exception("Upload for user %s aborted", user_id)


async def upload_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.message or not update.effective_user:
        return
    user_id = update.effective_user.id
    await _run_gate(
        _get_gate(context).on_command(user_id, update.message.chat_id, UPLOAD_COMMAND),
        user_id,
    )


async def unknown_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.message or not update.effective_user:
        return
    command = (update.message.text or "").split()[0].lstrip("/").split("@")[0]
    user_id = update.effective_user.id
    await _run_gate(
        _get_gate(context).on_command(user_id, update.message.chat_id, command),
        user_id,
    )


async def document_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.message or not update.effective_user or not update.message.document:
        return
    user_id = update.effective_user.id
    await _run_gate(
        _get_gate(context).on_message(user_id, file_id=update.message.document.file_id),
        user_id,
    )


async def other_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.message or not update.effective_user:
        return
    user_id = update.effective_user.id
    await _run_gate(
        _get_gate(context).on_message(user_id, text=update.message.text),
        user_id,
    )


def _create_application(token: str) -> Application:
    application = (
        Application.builder()
        .token(token)
        .rate_limiter(AIORateLimiter())
        .build()
    )
    application.add_handler(CommandHandler("start", start))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler(UPLOAD_COMMAND, upload_command))
    application.add_handler(MessageHandler(filters.COMMAND, unknown_command))
    application.add_handler(MessageHandler(filters.Document.ALL, document_message))
    application.add_handler(MessageHandler(~filters.COMMAND & ~filters.Document.ALL, other_message))
    return application


def _build_gate(transport: TelegramTransport) -> UploadGate:
    settings = get_settings()
    sessions = InMemorySessionStore(timedelta(seconds=settings.session_timeout_seconds))
    writer = IdempotentSheetWriter(GoogleSheetsStore.from_settings(settings))
    service = SpendeeUploadService(sessions, transport, writer)
    return UploadGate(sessions, service)


async def _register_webhook(application: Application, webhook_url: str) -> None:
    info = await application.bot.get_webhook_info()
    if info.url == webhook_url:
        logger.info("Telegram webhook already points at this backend; no changes.")
        return
    await application.bot.set_webhook(
        url=webhook_url,
        drop_pending_updates=False,
        allowed_updates=ALLOWED_UPDATES,
    )


async def init_bot() -> None:
    """Initialise the Telegram bot and register the webhook."""
    settings = get_settings()
    if not settings.telegram_bot_token or not settings.telegram_webhook_secret:
        logger.info("Telegram bot or webhook secret not configured; skipping bot initialisation.")
        return
    if not settings.backend_base_url:
        logger.warning("BACKEND_BASE_URL is missing; skipping Telegram webhook setup.")
        return

    base_url = str(settings.backend_base_url)
    webhook_url = base_url.rstrip("/") + f"/api/telegram/webhook/{settings.telegram_webhook_secret}"

    async with _lock:
        global _application, _transport
        if _application is not None:
            return

        application = _create_application(settings.telegram_bot_token)
        transport = TelegramTransport(
            application.bot, download_timeout=settings.file_download_timeout_seconds
        )

        try:
            application.bot_data["upload_gate"] = _build_gate(transport)
            await application.initialize()
            await application.start()
            try:
                await application.bot.set_my_commands(
                    [
                        BotCommand("start", "Show welcome message"),
                        BotCommand("help", "List bot features"),
                        BotCommand(UPLOAD_COMMAND, "Import a Spendee CSV export"),
                    ]
                )
            except Exception:
                logger.exception("Failed to set Telegram command list.")
            if settings.telegram_register_webhook_on_start:
                await _register_webhook(application, webhook_url)
        except Exception:
            logger.exception("Failed to initialise Telegram webhook; bot disabled for this run.")
            with contextlib.suppress(Exception):
                await application.stop()
            with contextlib.suppress(Exception):
                await application.shutdown()
            await transport.aclose()
            return

        _application = application
        _transport = transport
        logger.info("Telegram webhook configured at %s", base_url.rstrip("/") + "/api/telegram/webhook/***")


async def handle_update(payload: dict[str, Any]) -> None:
    """Process a Telegram update forwarded by FastAPI."""
    async with _lock:
        if _application is None:
            raise RuntimeError("Telegram bot is not initialised.")
        application = _application
    update = Update.de_json(payload, application.bot)
    await application.process_update(update)


async def shutdown_bot() -> None:
    """Tear down the Telegram bot."""
    async with _lock:
        global _application, _transport
        if _application is None:
            return
        await _application.stop()
        await _application.shutdown()
        if _transport:
            await _transport.aclose()
        _application = None
        _transport = None


_application: Application | None = None
_transport: TelegramTransport | None = None
_lock = asyncio.Lock()
