from __future__ import annotations

import json
import logging
from functools import partial
from typing import Any, Optional, Protocol

import anyio
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..config import Settings, get_settings
from ..errors import StoreError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


class TabularStore(Protocol):
    async def get_values(self, value_range: str) -> list[list[Any]]: ...
    async def append_rows(self, sheet_name: str, rows: list[list[Any]]) -> None: ...


def load_credentials(settings: Settings) -> service_account.Credentials:
    if settings.google_service_account_file:
        logger.info("Using service account key file for Google Sheets")
        return service_account.Credentials.from_service_account_file(
            str(settings.google_service_account_file), scopes=SCOPES
        )
    if settings.google_service_account_json:
        logger.info("Using inline service account JSON for Google Sheets")
        info = json.loads(settings.google_service_account_json)
        return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
    raise RuntimeError(
        "No Google credentials configured. "
        "Set GOOGLE_SERVICE_ACCOUNT_FILE or GOOGLE_SERVICE_ACCOUNT_JSON."
    )


class GoogleSheetsStore(TabularStore):
    """Reads and appends value ranges of one spreadsheet via the Sheets v4 API."""

    def __init__(self, spreadsheet_id: str, service: Any) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.service = service

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GoogleSheetsStore":
        settings = settings or get_settings()
        if not settings.gsheet_id:
            raise RuntimeError("GSHEET_ID is not configured.")
        credentials = load_credentials(settings)
        service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        return cls(settings.gsheet_id, service)

    def _get_values(self, value_range: str) -> list[list[Any]]:
        response = (
            self.service.spreadsheets()
            .values()
            .get(spreadsheetId=self.spreadsheet_id, range=value_range)
            .execute()
        )
        return response.get("values", [])

    def _append_rows(self, sheet_name: str, rows: list[list[Any]]) -> None:
        (
            self.service.spreadsheets()
            .values()
            .append(
                spreadsheetId=self.spreadsheet_id,
                range=f"{sheet_name}!A:E",
                valueInputOption="USER_ENTERED",
                body={"values": rows},
            )
            .execute()
        )

    async def get_values(self, value_range: str) -> list[list[Any]]:
        try:
            return await anyio.to_thread.run_sync(self._get_values, value_range)
        except (HttpError, GoogleAuthError, OSError) as exc:
            raise StoreError(f"could not read range {value_range}: {exc}") from exc

    async def append_rows(self, sheet_name: str, rows: list[list[Any]]) -> None:
        try:
            await anyio.to_thread.run_sync(partial(self._append_rows, sheet_name, rows))
        except (HttpError, GoogleAuthError, OSError) as exc:
            raise StoreError(f"could not append to sheet {sheet_name}: {exc}") from exc
        logger.info("Appended %d row(s) to sheet %s", len(rows), sheet_name)
