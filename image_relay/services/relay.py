"""Upload relay: turn an HTTP upload or a Telegram update into a commit.

Both ingress paths stage the image on local disk, publish it through the
repository client and remove the staged file afterwards.
"""
import base64
import logging
import time
from io import BytesIO
from pathlib import Path
from typing import Any

from fastapi.concurrency import run_in_threadpool
from PIL import Image
from starlette.datastructures import UploadFile

from ..core.config import Settings
from ..core.errors import UpstreamError, ValidationError
from ..core.models import InboundImage, PublishRequest, PublishResult, SourceKind, Update
from ..core.staging import StagingStore
from ..github.repository import RepositoryClient
from ..telegram.bot import MessagingClient

logger = logging.getLogger(__name__)

START_TEXT = "Send an image to upload to GitHub!"


def _timestamp() -> int:
    """Milliseconds since the epoch, used to name target files."""
    return int(time.time() * 1000)


def _check_image(data: bytes) -> None:
    try:
        with Image.open(BytesIO(data)) as img:
            img.verify()
    except Exception:
        raise ValidationError("Unsupported image type")


def _read(path: Path) -> bytes:
    with open(path, "rb") as fh:
        return fh.read()


class UploadRelay:
    def __init__(
        self,
        repository: RepositoryClient,
        messenger: MessagingClient,
        staging: StagingStore,
        settings: Settings,
    ):
        self.repository = repository
        self.messenger = messenger
        self.staging = staging
        self.settings = settings

    async def publish(self, path: Path, target_path: str) -> PublishResult:
        """Commit the file at `path` to `target_path` and return its download URL.

        An existing file at `target_path` is updated in place with its current
        sha rather than rejected as a conflict.
        """
        data = await run_in_threadpool(_read, path)
        branch = self.settings.repo_branch
        try:
            revision = await self.repository.get_revision(target_path, branch)
            request = PublishRequest(
                repo_owner=self.settings.repo_owner,
                repo_name=self.settings.repo_name,
                target_path=target_path,
                branch=branch,
                commit_message=self.settings.commit_message,
                content_base64=base64.b64encode(data).decode("ascii"),
                existing_revision_id=revision,
            )
            return await self.repository.write(request)
        except UpstreamError as e:
            raise UpstreamError(f"GitHub upload error: {e}", status_code=e.status_code) from e

    async def handle_http_upload(self, file: Any) -> PublishResult:
        """Publish the `image` form value. Text values count as no image at all."""
        if not isinstance(file, UploadFile) or not file.filename:
            raise ValidationError("No image provided")
        data = await file.read()
        await run_in_threadpool(_check_image, data)

        name = Path(file.filename).name
        ts = _timestamp()
        async with self.staging.stage(f"{ts}_{name}", data) as path:
            image = InboundImage(source_kind=SourceKind.HTTP_UPLOAD, path=path, original_name=name)
            result = await self.publish(image.path, f"images/{ts}_{image.original_name}")
        logger.info("http upload %s -> %s", name, result.public_url)
        return result

    async def handle_update(self, update: Update) -> None:
        """Dispatch one Telegram update.

        Photo messages are published and answered with the URL, `/start`
        gets the help text, and everything else is ignored. Errors on the
        photo path are logged and reported to the chat instead of raised.
        """
        message = update.message
        if message is None:
            return
        if message.photo:
            await self._relay_photo(update)
        elif message.text == "/start":
            await self.messenger.send_message(message.chat.id, START_TEXT)

    async def _relay_photo(self, update: Update) -> None:
        message = update.message
        chat_id = message.chat.id
        # Telegram orders sizes ascending; the last one is the original resolution
        photo = message.photo[-1]
        try:
            url = await self.messenger.resolve_file_location(photo.file_id)
            data = await self.messenger.download_bytes(url)
            ts = _timestamp()
            async with self.staging.stage(f"temp_{ts}.jpg", data) as path:
                image = InboundImage(
                    source_kind=SourceKind.MESSAGING_PHOTO, path=path, original_name=f"{ts}.jpg"
                )
                result = await self.publish(image.path, f"images/{image.original_name}")
        except Exception as e:
            logger.exception("update %s: photo upload failed", update.update_id)
            await self._report(chat_id, e)
            return
        try:
            await self.messenger.send_message(chat_id, f"Image URL: {result.public_url}")
        except UpstreamError as e:
            # the commit landed; only the reply is lost
            logger.warning(
                "update %s: published %s but could not reply: %s",
                update.update_id,
                result.public_url,
                e,
            )

    async def _report(self, chat_id: int, error: Exception) -> None:
        try:
            await self.messenger.send_message(chat_id, f"Failed to upload image: {error}")
        except UpstreamError as e:
            logger.warning("could not report failure to chat %s: %s", chat_id, e)
