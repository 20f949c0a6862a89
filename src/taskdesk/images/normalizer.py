"""Resolve request image payloads to stored URLs."""

import asyncio
import logging
from typing import Optional

from taskdesk.engine.errors import UploadError, ValidationError
from taskdesk.images.classifier import InlineImage, InvalidImage, UrlImage, classify
from taskdesk.images.store import ImageStore, ImageStoreError

logger = logging.getLogger(__name__)


class ImageNormalizer:
    """Turns an image field into the URL that gets persisted.

    URLs pass through untouched, inline images are uploaded under
    ``namespace``, empty input means no image. Callers must normalize
    before writing anything.
    """

    def __init__(self, store: ImageStore, namespace: str, timeout_seconds: float = 5.0):
        self.store = store
        self.namespace = namespace
        self.timeout_seconds = timeout_seconds

    async def normalize(self, raw: Optional[str]) -> Optional[str]:
        payload = classify(raw)

        if payload is None:
            return None
        if isinstance(payload, UrlImage):
            return payload.url
        if isinstance(payload, InlineImage):
            return await self._upload(payload)
        if isinstance(payload, InvalidImage):
            raise ValidationError(
                "Image must be a valid URL or base64 image string.", field="image"
            )
        raise TypeError(f"Unhandled image payload: {payload!r}")

    async def _upload(self, image: InlineImage) -> str:
        try:
            return await asyncio.wait_for(
                self.store.upload(image.data_uri, self.namespace),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.warning(
                f"Image upload to {self.namespace} timed out after {self.timeout_seconds}s"
            )
            raise UploadError(f"upload timed out after {self.timeout_seconds}s") from exc
        except ImageStoreError as exc:
            logger.warning(f"Image upload to {self.namespace} failed: {exc.message}")
            raise UploadError(exc.message) from exc
