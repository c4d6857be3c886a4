import json
import os
import sys
from io import BytesIO

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Ensure project root on sys.path so `import image_relay...` works
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from image_relay.core import deps
from image_relay.core.config import settings
from image_relay.main import app

OWNER = "octo"
REPO = "pics"
BOT_TOKEN = "123456:TEST-token"
PUBLIC_URL = "https://relay.example.com"


def png_bytes(size=(3, 2), color=(0, 128, 255)) -> bytes:
    img = Image.new("RGB", size, color=color)
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def jpeg_bytes() -> bytes:
    img = Image.new("RGB", (4, 4), color=(200, 10, 10))
    buf = BytesIO()
    img.save(buf, format="JPEG")
    return buf.getvalue()


class FakePlatforms:
    """In-memory stand-in for the GitHub contents API and the Telegram Bot API.

    `fail` maps an operation name to the status (GitHub) or to any truthy
    value (Telegram) that should make it fail.
    """

    def __init__(self):
        self.requests = []
        self.files = {}
        self.writes = []
        self.file_ids = []
        self.sent = []
        self.webhook = None
        self.fail = {}
        self.photo = jpeg_bytes()
        self._sha = 0

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "api.github.com":
            return self._github(request)
        if request.url.host == "api.telegram.org":
            return self._telegram(request)
        return httpx.Response(404)

    def github_calls(self, method=None):
        return [
            r for r in self.requests
            if r.url.host == "api.github.com" and (method is None or r.method == method)
        ]

    def _github(self, request):
        path = request.url.path
        if path == "/user":
            if "user" in self.fail:
                return httpx.Response(self.fail["user"], json={"message": "Bad credentials"})
            return httpx.Response(200, json={"login": OWNER})

        prefix = f"/repos/{OWNER}/{REPO}/contents/"
        if not path.startswith(prefix):
            return httpx.Response(404, json={"message": "Not Found"})
        file_path = path[len(prefix):]

        if request.method == "GET":
            if "lookup" in self.fail:
                return httpx.Response(self.fail["lookup"], json={"message": "Server Error"})
            if file_path in self.files:
                return httpx.Response(200, json={"path": file_path, "sha": self.files[file_path]})
            return httpx.Response(404, json={"message": "Not Found"})

        if "write" in self.fail:
            return httpx.Response(self.fail["write"], json={"message": "API rate limit exceeded"})
        body = json.loads(request.content)
        self.writes.append((file_path, body))
        self._sha += 1
        created = file_path not in self.files
        self.files[file_path] = f"sha{self._sha}"
        return httpx.Response(
            201 if created else 200,
            json={
                "content": {
                    "path": file_path,
                    "sha": self.files[file_path],
                    "download_url": f"https://raw.githubusercontent.com/{OWNER}/{REPO}/{body['branch']}/{file_path}",
                }
            },
        )

    def _telegram(self, request):
        path = request.url.path
        if path.startswith(f"/file/bot{BOT_TOKEN}/"):
            if "download" in self.fail:
                return httpx.Response(404)
            return httpx.Response(200, content=self.photo)

        method = path.rsplit("/", 1)[-1]
        if method in self.fail:
            return httpx.Response(400, json={"ok": False, "description": "Bad Request: chat not found"})
        body = json.loads(request.content) if request.content else {}
        if method == "getFile":
            self.file_ids.append(body["file_id"])
            return httpx.Response(
                200,
                json={"ok": True, "result": {"file_id": body["file_id"], "file_path": f"photos/{body['file_id']}.jpg"}},
            )
        if method == "sendMessage":
            self.sent.append((body["chat_id"], body["text"]))
            return httpx.Response(200, json={"ok": True, "result": {"message_id": len(self.sent)}})
        if method == "setWebhook":
            self.webhook = body["url"]
            return httpx.Response(200, json={"ok": True, "result": True, "description": "Webhook was set"})
        if method == "getWebhookInfo":
            return httpx.Response(
                200, json={"ok": True, "result": {"url": self.webhook or "", "pending_update_count": 0}}
            )
        return httpx.Response(404, json={"ok": False, "description": "Not Found"})


@pytest.fixture
def platforms():
    return FakePlatforms()


@pytest.fixture
def configured(monkeypatch, tmp_path, platforms):
    monkeypatch.setattr(settings, "github_token", "ghp_test")
    monkeypatch.setattr(settings, "repo_owner", OWNER)
    monkeypatch.setattr(settings, "repo_name", REPO)
    monkeypatch.setattr(settings, "repo_branch", "main")
    monkeypatch.setattr(settings, "telegram_token", BOT_TOKEN)
    monkeypatch.setattr(settings, "webhook_url", PUBLIC_URL)
    monkeypatch.setattr(settings, "github_api_url", "https://api.github.com")
    monkeypatch.setattr(settings, "telegram_api_url", "https://api.telegram.org")
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "staging"))
    # Route every upstream call to the fake platforms
    monkeypatch.setattr(
        deps, "http_client", lambda: httpx.AsyncClient(transport=platforms.transport())
    )
    return tmp_path / "staging"


@pytest.fixture
def api(configured, platforms, monkeypatch):
    # Freeze time so target paths are deterministic (1000 s -> 1000000 ms)
    monkeypatch.setattr("image_relay.services.relay.time.time", lambda: 1000)
    with TestClient(app) as client:
        platforms.startup_requests = list(platforms.requests)
        platforms.requests.clear()
        yield client


def staged_files(staging_dir):
    if not staging_dir.exists():
        return []
    return list(staging_dir.iterdir())
