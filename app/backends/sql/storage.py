"""
Filesystem blob store; objects are served back as static files.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from app.backends.base import BlobUploader
from app.core.exceptions import TransportError
from app.schemas.report import PhotoFile

logger = logging.getLogger(__name__)


class LocalBlobUploader(BlobUploader):
    def __init__(self, root: str | Path, public_url: str) -> None:
        self.root = Path(root).resolve()
        self.public_url = public_url.rstrip("/")

    def _target(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if not target.is_relative_to(self.root):
            raise TransportError(f"Invalid object path: {path}")
        return target

    async def upload_image(self, file: PhotoFile, path: str) -> str:
        target = self._target(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(file.content)

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            logger.error("Failed to store %s: %s", path, exc)
            raise TransportError("Failed to upload image") from exc
        logger.info("Stored %s (%d bytes)", path, len(file.content))
        return f"{self.public_url}/{target.relative_to(self.root).as_posix()}"
