"""
Cloud Storage blob uploader for the Firebase provider.
"""

from __future__ import annotations

import asyncio
import logging

from google.api_core.exceptions import GoogleAPIError

from app.backends.base import BlobUploader
from app.backends.firebase.client import FirebaseClient
from app.core.exceptions import TransportError
from app.schemas.report import PhotoFile

logger = logging.getLogger(__name__)


class CloudStorageUploader(BlobUploader):
    def __init__(self, client: FirebaseClient) -> None:
        self._bucket = client.bucket

    async def upload_image(self, file: PhotoFile, path: str) -> str:
        blob = self._bucket.blob(path)

        def _upload() -> str:
            blob.upload_from_string(file.content, content_type=file.content_type)
            blob.make_public()
            return blob.public_url

        try:
            url = await asyncio.to_thread(_upload)
        except GoogleAPIError as exc:
            logger.error("Upload of %s failed: %s", path, exc)
            raise TransportError("Failed to upload image") from exc
        logger.info("Uploaded %s (%d bytes)", path, len(file.content))
        return url
