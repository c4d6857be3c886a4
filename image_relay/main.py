import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from .core import deps
from .core.config import settings
from .core.errors import ConfigurationError
from .core.logging import configure_logging
from .routers.upload import router as upload_router
from .routers.webhook import router as webhook_router

logger = logging.getLogger(__name__)

tags_metadata = [
    {
        "name": "upload",
        "description": "Commit an image to the configured GitHub repository and get its URL back.",
    },
    {
        "name": "telegram",
        "description": "Manage the Telegram webhook that delivers photos sent to the bot.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Refuse to start without config, a working GitHub token and a registered webhook."""
    configure_logging()
    settings.require()
    app.state.http = deps.http_client()
    try:
        login = await deps.repository_client(app.state.http).validate_credential()
        logger.info("GitHub token valid for %s", login)
        await deps.messaging_client(app.state.http).register_webhook(settings.webhook_url)
        yield
    finally:
        await app.state.http.aclose()


app = FastAPI(
    title="Image Relay",
    description=(
        "How to Use:\n\n"
        "1) Upload an image: POST /upload with a multipart `image` field; the response carries `imageUrl`.\n"
        "2) Or send a photo to the Telegram bot; it replies with the URL once the commit lands.\n"
        "3) After changing WEBHOOK_URL, call GET /setWebhook; GET /getWebhookInfo shows what Telegram has."
    ),
    openapi_tags=tags_metadata,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.include_router(upload_router)
app.include_router(webhook_router)


def run() -> None:
    configure_logging()
    try:
        settings.require()
    except ConfigurationError as e:
        logger.critical("%s", e)
        sys.exit(1)
    logger.info("Server running on port %s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)
