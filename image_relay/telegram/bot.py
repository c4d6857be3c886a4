"""Thin wrapper around the handful of Telegram Bot API methods we use."""
import logging
from typing import Any

import httpx

from ..core.errors import UpstreamError

logger = logging.getLogger(__name__)


class MessagingClient:
    def __init__(self, http: httpx.AsyncClient, *, token: str, api_url: str = "https://api.telegram.org"):
        self.http = http
        self.token = token
        self.api_url = api_url.rstrip("/")

    def method_url(self, method: str) -> str:
        return f"{self.api_url}/bot{self.token}/{method}"

    def webhook_url(self, public_base_url: str) -> str:
        return f"{public_base_url.rstrip('/')}/webhook/{self.token}"

    async def call(self, method: str, **params: Any) -> dict:
        """POST a Bot API method and return the whole response body.

        Raises UpstreamError on transport failure, a non-2xx status or
        `"ok": false`, carrying Telegram's `description` when it sent one.
        The token is kept out of the error text.
        """
        try:
            resp = await self.http.post(self.method_url(method), json=params)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Telegram {method} failed: {type(e).__name__}") from e
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.is_error or not body.get("ok"):
            description = body.get("description") or resp.reason_phrase
            raise UpstreamError(
                f"Telegram {method} failed: {description}", status_code=resp.status_code
            )
        return body

    async def resolve_file_location(self, file_id: str) -> str:
        body = await self.call("getFile", file_id=file_id)
        file_path = (body.get("result") or {}).get("file_path")
        if not file_path:
            raise UpstreamError("Telegram getFile returned no file_path")
        return f"{self.api_url}/file/bot{self.token}/{file_path}"

    async def download_bytes(self, url: str) -> bytes:
        try:
            resp = await self.http.get(url)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Telegram file download failed: {type(e).__name__}") from e
        if resp.is_error:
            raise UpstreamError(
                f"Telegram file download failed: {resp.status_code}", status_code=resp.status_code
            )
        return resp.content

    async def send_message(self, chat_id: int, text: str) -> dict:
        body = await self.call("sendMessage", chat_id=chat_id, text=text)
        return body.get("result") or {}

    async def register_webhook(self, public_base_url: str) -> dict:
        body = await self.call("setWebhook", url=self.webhook_url(public_base_url))
        logger.info("webhook registered: %s", body.get("description", "ok"))
        return body

    async def get_webhook_status(self) -> dict:
        return await self.call("getWebhookInfo")
