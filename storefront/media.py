# storefront/media.py
import logging
from typing import Any, Dict, Optional, Protocol

import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from starlette.concurrency import run_in_threadpool

from .models import ImageRef

logger = logging.getLogger(__name__)


class MediaError(Exception):
    pass


class MediaHost(Protocol):
    async def upload(self, content: bytes, filename: str, content_type: str) -> ImageRef: ...
    async def destroy(self, public_id: str) -> None: ...


class CloudinaryMediaHost:
    """
    Image hosting through the Cloudinary SDK. The SDK is blocking, so each
    call runs in the threadpool and concurrent uploads stay concurrent.
    """

    def __init__(self, cloud_name: str, api_key: str, api_secret: str,
                 timeout: float = 60.0, folder: Optional[str] = None):
        self.options: Dict[str, Any] = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
            "timeout": timeout,
        }
        self.folder = folder

    def _upload(self, content: bytes, filename: str) -> dict:
        options = dict(self.options, resource_type="auto")
        if self.folder:
            options["folder"] = self.folder
        try:
            return cloudinary.uploader.upload((filename, content), **options)
        except CloudinaryError as exc:
            raise MediaError(f"Cloudinary upload failed: {exc}") from exc

    def _destroy(self, public_id: str) -> dict:
        try:
            return cloudinary.uploader.destroy(public_id, **self.options)
        except CloudinaryError as exc:
            raise MediaError(f"Cloudinary destroy failed for {public_id}: {exc}") from exc

    async def upload(self, content: bytes, filename: str, content_type: str) -> ImageRef:
        body = await run_in_threadpool(self._upload, content, filename)
        return ImageRef(url=body["secure_url"], public_id=body["public_id"])

    async def destroy(self, public_id: str) -> None:
        body = await run_in_threadpool(self._destroy, public_id)
        if body.get("result") not in ("ok", "not found"):
            raise MediaError(f"Cloudinary destroy failed for {public_id}: {body.get('result')}")
        logger.debug("Deleted %s from Cloudinary", public_id)
