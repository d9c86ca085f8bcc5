from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import api_router
from .config import get_settings
from .telegram.bot import init_bot, shutdown_bot
from .utils import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_bot()
    try:
        yield
    finally:
        await shutdown_bot()


settings = get_settings()
configure_logging(settings.log_level)
_docs_enabled = settings.environment.lower() != "production"
app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
    docs_url="/docs" if _docs_enabled else None,
    redoc_url="/redoc" if _docs_enabled else None,
)
app.include_router(api_router, prefix="/api")


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
