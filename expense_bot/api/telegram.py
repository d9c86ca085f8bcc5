import logging

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import PlainTextResponse

from ..config import get_settings
from ..telegram.bot import handle_update
from ..utils import ensure_correlation_id

logger = logging.getLogger(__name__)

router = APIRouter()

WEBHOOK_ACK = "Webhook OK"


def verify_secret(secret: str) -> None:
    settings = get_settings()
    if not settings.telegram_webhook_secret or secret != settings.telegram_webhook_secret:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)


@router.post("/webhook/{secret}", response_class=PlainTextResponse)
async def telegram_webhook(secret: str, request: Request) -> str:
    verify_secret(secret)
    ensure_correlation_id(request.headers.get("X-Correlation-ID"))
    try:
        payload = await request.json()
        await handle_update(payload)
    except Exception:
        # Telegram retries on non-2xx; failures are ours to log, not its to replay.
        logger.exception("Failed to process Telegram update")
    return WEBHOOK_ACK
