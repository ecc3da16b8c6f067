"""
Webhook mode: receive pushed updates over HTTP instead of polling.

Mount the router in any FastAPI app, or use ``create_app`` for a standalone
one. Each accepted update goes through ``Dispatcher.feed_update`` in the
background so the server gets its 200 OK right away.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, FastAPI, Header, HTTPException, Request
from pydantic import ValidationError

from .config import Settings, get_settings
from .dispatcher import Dispatcher
from .logging_config import get_logger, setup_logging
from .types import Update

logger = get_logger("webhook")

DEFAULT_WEBHOOK_PATH = "/telegram/webhook"


def create_webhook_router(
    dispatcher: Dispatcher,
    *,
    path: str = DEFAULT_WEBHOOK_PATH,
    secret_token: Optional[str] = None,
) -> APIRouter:
    router = APIRouter()

    @router.post(path)
    async def telegram_webhook(
        request: Request,
        background_tasks: BackgroundTasks,
        x_telegram_bot_api_secret_token: Optional[str] = Header(None),
    ):
        """
        Webhook endpoint for updates.

        The server sends updates here when they arrive.
        """
        # Verify secret token if configured
        if secret_token and x_telegram_bot_api_secret_token != secret_token:
            raise HTTPException(status_code=403, detail="Invalid secret token")

        try:
            payload = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Body is not valid JSON")

        try:
            update = Update.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Rejected invalid update: {e}")
            raise HTTPException(status_code=400, detail="Invalid update")

        background_tasks.add_task(dispatcher.feed_update, update)

        return {"ok": True}

    return router


def create_app(
    dispatcher: Dispatcher,
    *,
    path: str = DEFAULT_WEBHOOK_PATH,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Standalone app serving the webhook plus a health check."""
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await dispatcher.bot.close()
        logger.info("Bot shut down")

    app = FastAPI(title="botwire webhook", lifespan=lifespan)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    app.include_router(
        create_webhook_router(
            dispatcher,
            path=path,
            secret_token=settings.webhook_secret or None,
        )
    )

    return app
