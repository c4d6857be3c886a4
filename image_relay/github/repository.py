"""GitHub contents API: look up, create and update files in one repository."""
import logging
from typing import Optional
from urllib.parse import quote

import httpx

from ..core.errors import ConfigurationError, UpstreamError
from ..core.models import PublishRequest, PublishResult

logger = logging.getLogger(__name__)


class RepositoryClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        token: str,
        owner: str,
        name: str,
        api_url: str = "https://api.github.com",
    ):
        self.http = http
        self.token = token
        self.owner = owner
        self.name = name
        self.api_url = api_url.rstrip("/")

    @property
    def headers(self) -> dict:
        return {
            "Authorization": f"token {self.token}",
            "Accept": "application/vnd.github.v3+json",
        }

    def contents_url(self, path: str) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.name}/contents/{quote(path)}"

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self.http.request(method, url, headers=self.headers, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamError(f"{method} {url} failed: {e}") from e

    @staticmethod
    def _error(resp: httpx.Response) -> UpstreamError:
        try:
            detail = resp.json().get("message") or resp.text
        except ValueError:
            detail = resp.text
        return UpstreamError(f"{resp.status_code} {detail}".strip(), status_code=resp.status_code)

    async def get_revision(self, path: str, branch: str = "main") -> Optional[str]:
        """Return the blob sha stored at `path`, or None when the file does not exist.

        Only a 404 means "absent"; any other failure is raised so that an auth
        or rate-limit problem is never mistaken for a missing file.
        """
        resp = await self._request("GET", self.contents_url(path), params={"ref": branch})
        if resp.status_code == 404:
            return None
        if resp.is_error:
            raise self._error(resp)
        return resp.json().get("sha")

    async def exists(self, path: str, branch: str = "main") -> bool:
        return await self.get_revision(path, branch) is not None

    async def write(self, request: PublishRequest) -> PublishResult:
        """Create the file, or update it when `existing_revision_id` is set."""
        resp = await self._request(
            "PUT", self.contents_url(request.target_path), json=request.to_payload()
        )
        if resp.is_error:
            raise self._error(resp)
        content = resp.json().get("content") or {}
        url = content.get("download_url")
        if not url:
            raise UpstreamError("response did not include a download_url")
        logger.info(
            "%s %s/%s:%s",
            "updated" if request.existing_revision_id else "created",
            self.owner,
            self.name,
            request.target_path,
        )
        return PublishResult(public_url=url)

    async def validate_credential(self) -> str:
        """Check the token against GET /user and return the account login."""
        try:
            resp = await self._request("GET", f"{self.api_url}/user")
        except UpstreamError as e:
            raise ConfigurationError(f"could not validate GitHub token: {e}") from e
        if resp.is_error:
            raise ConfigurationError(f"GitHub token rejected: {self._error(resp)}")
        return resp.json().get("login", "")
