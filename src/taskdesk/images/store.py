"""Image store clients.

The store takes an inline image and a folder name and returns the public
HTTPS URL of the hosted copy.
"""

import logging
from typing import Any, Optional, Protocol

import httpx
from cloudinary.utils import api_sign_request

from taskdesk.config import Settings, settings as default_settings
from taskdesk.utils.time import utc_now

logger = logging.getLogger(__name__)


class ImageStoreError(Exception):
    """The image store rejected or failed an upload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ImageStore(Protocol):
    async def upload(self, payload: str, namespace: str) -> str:
        """Upload an inline image under a folder; return its secure URL."""
        ...


class CloudinaryImageStore:
    """
    Signed uploads to Cloudinary's REST endpoint.

    Usage:
        store = CloudinaryImageStore(settings)
        url = await store.upload("data:image/png;base64,...", "tasks")
    """

    def __init__(
        self,
        config: Settings = default_settings,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._config = config
        self._client = client

    @property
    def upload_url(self) -> str:
        base_url = self._config.cloudinary_upload_base_url.rstrip("/")
        return f"{base_url}/{self._config.cloudinary_cloud_name}/image/upload"

    async def upload(self, payload: str, namespace: str) -> str:
        if not self._config.image_store_configured:
            raise ImageStoreError("image store not configured")

        params = {"folder": namespace, "timestamp": int(utc_now().timestamp())}
        form = {
            **params,
            "file": payload,
            "api_key": self._config.cloudinary_api_key,
            "signature": api_sign_request(params, self._config.cloudinary_api_secret),
        }

        try:
            if self._client is not None:
                response = await self._client.post(self.upload_url, data=form)
            else:
                timeout = self._config.image_upload_timeout_seconds
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(self.upload_url, data=form)
        except httpx.HTTPError as exc:
            raise ImageStoreError(f"image store unreachable: {exc}") from exc

        data = _json_or_empty(response)
        if response.is_error:
            error = data.get("error") or {}
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ImageStoreError(
                message or f"image store returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        secure_url = data.get("secure_url")
        if not secure_url:
            raise ImageStoreError("image store response missing secure_url")

        logger.info(f"Uploaded image to folder {namespace}: {secure_url}")
        return secure_url


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


_image_store: Optional[ImageStore] = None


def get_image_store() -> ImageStore:
    """Get or create the process-wide image store."""
    global _image_store
    if _image_store is None:
        _image_store = CloudinaryImageStore(default_settings)
    return _image_store
