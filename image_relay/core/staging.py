"""Transient local storage for images on their way to the repository.

Every staged file belongs to exactly one request. `StagingStore.stage` is an
async context manager that removes the file on exit, whatever happened
inside the block; a failed removal is logged and never re-raised.
"""
import logging
import os
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi.concurrency import run_in_threadpool

from .errors import CleanupError

logger = logging.getLogger(__name__)


def _write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as fh:
        fh.write(data)


class StagingStore:
    def __init__(self, root: str):
        self.root = Path(root)

    def entry_path(self, name: str) -> Path:
        # only the extension of the original name survives; the rest is random
        return self.root / f"{uuid.uuid4().hex}{Path(name).suffix[:16]}"

    async def write(self, name: str, data: bytes) -> Path:
        path = self.entry_path(name)
        await run_in_threadpool(_write, path, data)
        return path

    async def discard(self, path: Path) -> None:
        """Delete a staged file. Failures are logged as CleanupError, not raised."""
        try:
            await run_in_threadpool(os.remove, path)
        except FileNotFoundError:
            pass
        except OSError as e:
            err = CleanupError(f"could not remove staged file {path}: {e}")
            logger.warning("%s", err)

    @asynccontextmanager
    async def stage(self, name: str, data: bytes) -> AsyncIterator[Path]:
        path = await self.write(name, data)
        try:
            yield path
        finally:
            await self.discard(path)
