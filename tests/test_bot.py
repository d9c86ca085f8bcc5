from __future__ import annotations

from types import SimpleNamespace
from unittest import IsolatedAsyncioTestCase
from unittest.mock import AsyncMock

from telegram import Update

from expense_bot.errors import StoreError, UnknownCommandError, ValidationError
from expense_bot.services.upload import UPLOAD_COMMAND
from expense_bot.telegram import bot


class DummyMessage:
    """Minimal stand-in for a Telegram message used in handlers."""

    def __init__(self, text: str | None = None, *, chat_id: int = 77, document=None) -> None:
        self.text = text
        self.chat_id = chat_id
        self.document = document
        self.reply_text = AsyncMock()


def _update(message: DummyMessage, user_id: int = 528101001) -> SimpleNamespace:
    return SimpleNamespace(message=message, effective_user=SimpleNamespace(id=user_id))


def _context(gate) -> SimpleNamespace:
    return SimpleNamespace(application=SimpleNamespace(bot_data={"upload_gate": gate}))


PHOTO_UPDATE = {
    "update_id": 2,
    "message": {
        "message_id": 6,
        "date": 1700000000,
        "chat": {"id": 77, "type": "private"},
        "from": {"id": 528101001, "is_bot": False, "first_name": "Tester"},
        "photo": [{"file_id": "AgACAgUAAxkBAAIC", "file_unique_id": "AQADx", "width": 90, "height": 90}],
    },
}


class TelegramBotTests(IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.gate = AsyncMock()
        self.context = _context(self.gate)

    async def test_upload_command_opens_gate(self) -> None:
        await bot.upload_command(_update(DummyMessage(f"/{UPLOAD_COMMAND}")), self.context)

        self.gate.on_command.assert_awaited_once_with(528101001, 77, UPLOAD_COMMAND)

    async def test_unknown_command_is_logged(self) -> None:
        self.gate.on_command.side_effect = UnknownCommandError("invalid command: report")

        with self.assertLogs("expense_bot.telegram.bot", level="WARNING") as logs:
            await bot.unknown_command(_update(DummyMessage("/report@ExpenseBot last")), self.context)

        self.gate.on_command.assert_awaited_once_with(528101001, 77, "report")
        self.assertIn("invalid command: report", logs.output[0])

    async def test_document_is_forwarded_with_file_id(self) -> None:
        document = SimpleNamespace(file_id="BQACAgUAAxkBAAIB")

        await bot.document_message(_update(DummyMessage(document=document)), self.context)

        self.gate.on_message.assert_awaited_once_with(528101001, file_id="BQACAgUAAxkBAAIB")

    async def test_text_is_forwarded(self) -> None:
        await bot.other_message(_update(DummyMessage("hello")), self.context)

        self.gate.on_message.assert_awaited_once_with(528101001, text="hello")

    async def test_pipeline_errors_are_logged_not_raised(self) -> None:
        self.gate.on_message.side_effect = StoreError("quota exceeded")
        document = SimpleNamespace(file_id="file-1")

        with self.assertLogs("expense_bot.telegram.bot", level="ERROR"):
            await bot.document_message(_update(DummyMessage(document=document)), self.context)

    async def test_wrong_file_type_is_a_warning(self) -> None:
        self.gate.on_message.side_effect = ValidationError("not a csv")
        document = SimpleNamespace(file_id="file-1")

        with self.assertLogs("expense_bot.telegram.bot", level="WARNING") as logs:
            await bot.document_message(_update(DummyMessage(document=document)), self.context)

        self.assertTrue(logs.output[0].startswith("WARNING"))

    async def test_start_and_help_reply(self) -> None:
        message = DummyMessage("/start")
        await bot.start(_update(message), self.context)
        self.assertIn(f"/{UPLOAD_COMMAND}", message.reply_text.await_args.args[0])

        message = DummyMessage("/help")
        await bot.help_command(_update(message), self.context)
        self.assertIn("Spendee CSV", message.reply_text.await_args.args[0])

    async def test_updates_without_user_are_ignored(self) -> None:
        update = SimpleNamespace(message=DummyMessage("hi"), effective_user=None)

        await bot.other_message(update, self.context)

        self.gate.on_message.assert_not_awaited()

    async def test_photo_without_document_reaches_gate_without_file(self) -> None:
        message = DummyMessage(None)

        await bot.other_message(_update(message), self.context)

        self.gate.on_message.assert_awaited_once()
        self.assertIsNone(self.gate.on_message.await_args.kwargs.get("file_id"))

    async def test_every_non_command_message_has_a_handler(self) -> None:
        application = bot._create_application("123:ABC")
        update = Update.de_json(PHOTO_UPDATE, application.bot)

        matched = [handler.callback for handler in application.handlers[0] if handler.check_update(update)]

        self.assertEqual(matched, [bot.other_message])
