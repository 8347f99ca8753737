"""Image hosting adapters.

The rest of the application only sees the ``ImageStore`` interface. Which
implementation is used is decided once at startup by ``build_image_store``:
Cloudinary when its credentials are configured, otherwise a null store that
reports itself as unconfigured so uploads are skipped.
"""

import time

import httpx
from cloudinary.utils import api_sign_request

from .config import Settings
from .errors import UpstreamError
from .logger import logger

CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"


class ImageStore:
    """Object storage for uploaded images. ``upload`` returns a public URL."""

    is_configured: bool = False

    async def upload(
        self,
        data: bytes,
        filename: str,
        content_type: str | None = None,
        folder: str | None = None,
    ) -> str:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class NullImageStore(ImageStore):
    """Used when no image host is configured."""

    is_configured = False

    async def upload(self, data, filename, content_type=None, folder=None) -> str:
        raise UpstreamError("Image hosting is not configured")


class CloudinaryImageStore(ImageStore):
    """Signed uploads to Cloudinary's REST upload API."""

    is_configured = True

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "inspiration_gallery",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def upload_url(self) -> str:
        # "auto" lets Cloudinary detect the resource type
        return f"{CLOUDINARY_API_BASE}/{self.cloud_name}/auto/upload"

    def sign(self, params: dict) -> str:
        """Cloudinary request signature for the upload params (api_key and file excluded)."""
        return api_sign_request(params, self.api_secret)

    async def upload(self, data, filename, content_type=None, folder=None) -> str:
        params = {
            "folder": folder or self.folder,
            "timestamp": str(int(time.time())),
        }
        form = {**params, "api_key": self.api_key, "signature": self.sign(params)}
        files = {"file": (filename or "upload", data, content_type or "application/octet-stream")}

        try:
            response = await self._client.post(self.upload_url, data=form, files=files)
        except httpx.HTTPError as e:
            logger.error(f"[storage] Cloudinary request failed: {e}")
            raise UpstreamError("Image upload failed", {"reason": str(e)}) from e

        if response.status_code >= 400:
            reason = _error_message(response)
            logger.error(f"[storage] Cloudinary rejected upload ({response.status_code}): {reason}")
            raise UpstreamError("Image upload failed", {"status": response.status_code, "reason": reason})

        try:
            secure_url = response.json().get("secure_url")
        except ValueError as e:
            raise UpstreamError("Image upload returned an unreadable response") from e
        if not secure_url:
            raise UpstreamError("Image upload response did not include a URL")

        logger.info(f"[storage] Image uploaded: {secure_url}")
        return secure_url

    async def close(self) -> None:
        await self._client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("error", {}).get("message", response.text)
    except ValueError:
        return response.text


def build_image_store(settings: Settings) -> ImageStore:
    """Pick the image store implementation for this process."""
    if not settings.cloudinary_configured:
        logger.warning("Cloudinary not configured. Image uploads will be disabled.")
        logger.info(
            "To enable image uploads set CLOUDINARY_CLOUD_NAME, "
            "CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET"
        )
        return NullImageStore()

    logger.info(f"Cloudinary image hosting enabled (cloud={settings.CLOUDINARY_CLOUD_NAME})")
    return CloudinaryImageStore(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        folder=settings.CLOUDINARY_FOLDER,
        timeout=settings.CLOUDINARY_TIMEOUT,
    )
