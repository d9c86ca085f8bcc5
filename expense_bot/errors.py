"""Exception hierarchy shared by the upload workflow."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .schemas.expense import WriteOutcome


class ExpenseBotError(Exception):
    """Base exception for the expense bot."""


class TransportError(ExpenseBotError):
    """Raised when Telegram calls or file downloads fail."""


class SessionError(ExpenseBotError):
    """Session lookup or lifecycle errors."""


class SessionNotFoundError(SessionError):
    """Raised when a user has no active session."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"no active session for user {user_id}")
        self.user_id = user_id


class ParseError(ExpenseBotError):
    """Raised for a malformed CSV row or an unparsable timestamp."""


class ValidationError(ExpenseBotError):
    """Raised when an uploaded file is not acceptable (e.g. not a CSV)."""


class StoreError(ExpenseBotError):
    """Raised when reading from or appending to the spreadsheet fails."""

    def __init__(self, message: str, *, outcomes: list["WriteOutcome"] | None = None) -> None:
        super().__init__(message)
        self.outcomes: list["WriteOutcome"] = list(outcomes or [])


class NoFileAttachedError(ExpenseBotError):
    """Raised when an upload is pending but the message carries no document."""


class UnknownCommandError(ExpenseBotError):
    """Raised for slash commands the bot does not handle."""


class UnprocessableMessageError(ExpenseBotError):
    """Raised when a follow-up message does not fit the active command."""
