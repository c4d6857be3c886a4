import logging
import secrets

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from ..core.config import settings
from ..core.deps import MessengerDep, RelayDep
from ..core.errors import UpstreamError
from ..core.models import ErrorResponse, Update

logger = logging.getLogger(__name__)

router = APIRouter(tags=["telegram"])


# Telegram only knows the URL we registered, so the bot token in the path
# doubles as the shared secret.
@router.post(
    "/webhook/{token}",
    include_in_schema=False,
)
async def receive_update(token: str, request: Request, relay: RelayDep):
    if not secrets.compare_digest(token.encode(), settings.telegram_token.encode()):
        return Response(status_code=404)
    try:
        update = Update.model_validate(await request.json())
    except ValueError as e:
        logger.warning("ignoring unparseable update: %s", e)
        return Response(status_code=200)
    try:
        await relay.handle_update(update)
    except Exception:
        logger.exception("update %s: handling failed", update.update_id)
        return Response(status_code=500)
    return Response(status_code=200)


@router.get(
    "/setWebhook",
    responses={500: {"model": ErrorResponse}},
    summary="Re-register the Telegram webhook",
    description=(
        "Points Telegram at `{WEBHOOK_URL}/webhook/{token}` again, e.g. after the "
        "public base URL changed. Returns Telegram's response as-is."
    ),
)
async def set_webhook(messenger: MessengerDep):
    try:
        return await messenger.register_webhook(settings.webhook_url)
    except UpstreamError as e:
        logger.error("setWebhook failed: %s", e)
        return JSONResponse(status_code=500, content={"error": str(e)})


@router.get(
    "/getWebhookInfo",
    responses={500: {"model": ErrorResponse}},
    summary="Show the current Telegram webhook registration",
)
async def get_webhook_info(messenger: MessengerDep):
    try:
        return await messenger.get_webhook_status()
    except UpstreamError as e:
        logger.error("getWebhookInfo failed: %s", e)
        return JSONResponse(status_code=500, content={"error": str(e)})
