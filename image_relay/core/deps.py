from typing import Annotated

import httpx
from fastapi import Depends, Request

from .config import settings
from .staging import StagingStore
from ..github.repository import RepositoryClient
from ..services.relay import UploadRelay
from ..telegram.bot import MessagingClient


def http_client() -> httpx.AsyncClient:
    """Create the shared upstream HTTP client using our configured timeout."""
    return httpx.AsyncClient(timeout=settings.http_timeout)


def repository_client(http: httpx.AsyncClient) -> RepositoryClient:
    return RepositoryClient(
        http,
        token=settings.github_token,
        owner=settings.repo_owner,
        name=settings.repo_name,
        api_url=settings.github_api_url,
    )


def messaging_client(http: httpx.AsyncClient) -> MessagingClient:
    return MessagingClient(http, token=settings.telegram_token, api_url=settings.telegram_api_url)


def get_messenger(request: Request) -> MessagingClient:
    return messaging_client(request.app.state.http)


def get_relay(request: Request) -> UploadRelay:
    http = request.app.state.http
    return UploadRelay(
        repository_client(http),
        messaging_client(http),
        StagingStore(settings.upload_dir),
        settings,
    )


MessengerDep = Annotated[MessagingClient, Depends(get_messenger)]
RelayDep = Annotated[UploadRelay, Depends(get_relay)]
