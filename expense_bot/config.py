from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralised application settings, sourced from environment variables or .env."""

    app_name: str = Field(default="ExpenseBot")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    telegram_bot_token: Optional[str] = Field(default=None, alias="TELEGRAM_BOT_TOKEN")
    telegram_webhook_secret: Optional[str] = Field(
        default=None, alias="TELEGRAM_WEBHOOK_SECRET"
    )
    backend_base_url: Optional[AnyHttpUrl] = Field(
        default=None,
        alias="BACKEND_BASE_URL",
        description="The public URL where FastAPI is reachable (used by Telegram webhooks).",
    )
    telegram_register_webhook_on_start: bool = Field(
        default=False, alias="TELEGRAM_REGISTER_WEBHOOK_ON_START"
    )
    gsheet_id: Optional[str] = Field(
        default=None,
        alias="GSHEET_ID",
        description="Spreadsheet that receives one tab per month (01..12).",
    )
    google_service_account_file: Optional[Path] = Field(
        default=None,
        alias="GOOGLE_SERVICE_ACCOUNT_FILE",
        description="Path to a service account JSON key with access to the spreadsheet.",
    )
    google_service_account_json: Optional[str] = Field(
        default=None,
        alias="GOOGLE_SERVICE_ACCOUNT_JSON",
        description="Inline service account JSON; used when no key file is configured.",
    )
    session_timeout_seconds: int = Field(
        default=5 * 60,
        alias="SESSION_TIMEOUT_SECONDS",
        description="How long an upload request waits for the CSV document (in seconds).",
        ge=30,
    )
    file_download_timeout_seconds: float = Field(
        default=30.0,
        alias="FILE_DOWNLOAD_TIMEOUT_SECONDS",
        gt=0,
    )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached accessor so imports share a single settings instance."""
    return Settings()  # type: ignore[call-arg]
