"""
Media Storage Gateway: pushes local temp files to Cloudinary and deletes
remote objects by URL.

- upload() always removes the local file, whatever the outcome.
- delete() is best-effort: failures are logged and never raised.

The cloudinary SDK is blocking, so every call runs in the default executor.
Credentials are passed per call from StorageConfig; no global cloudinary.config().
"""
import asyncio
import logging
from functools import lru_cache, partial
from urllib.parse import urlparse

import cloudinary.exceptions
import cloudinary.uploader
from pydantic import BaseModel

from vidtube.config import Settings, get_settings
from vidtube.services.temp_files import cleanup_files

logger = logging.getLogger(__name__)


class StorageConfig(BaseModel):
    cloud_name: str
    api_key: str
    api_secret: str
    upload_prefix: str = "https://api.cloudinary.com"
    folder: str = ""
    timeout_seconds: float = 600.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageConfig":
        return cls(
            cloud_name=settings.storage_cloud_name,
            api_key=settings.storage_api_key,
            api_secret=settings.storage_api_secret,
            upload_prefix=settings.storage_upload_prefix,
            folder=settings.storage_folder,
            timeout_seconds=settings.storage_timeout_seconds,
        )

    def options(self) -> dict:
        """Per-call SDK options carrying account credentials."""
        return {
            "cloud_name": self.cloud_name,
            "api_key": self.api_key,
            "api_secret": self.api_secret,
            "upload_prefix": self.upload_prefix,
            "timeout": self.timeout_seconds,
        }


class UploadedMedia(BaseModel):
    url: str
    public_id: str
    resource_type: str = "image"
    duration: float | None = None  # seconds; only probed for video/audio


def resource_type_for_url(url: str) -> str:
    return "video" if "/video/" in url else "image"


def public_id_from_url(url: str | None) -> str | None:
    """
    Derive the public id from a delivery URL, e.g.
    https://res.cloudinary.com/demo/video/upload/v1712/folder/clip.mp4 -> folder/clip
    """
    if not url:
        return None
    path = urlparse(url).path
    if "/upload/" in path:
        tail = path.split("/upload/", 1)[1]
    else:
        tail = path.rsplit("/", 1)[-1]
    parts = [p for p in tail.split("/") if p]
    if parts and parts[0].startswith("v") and parts[0][1:].isdigit():
        parts = parts[1:]
    if not parts:
        return None
    parts[-1] = parts[-1].rsplit(".", 1)[0]
    public_id = "/".join(parts)
    return public_id or None


class MediaStorage:
    def __init__(self, config: StorageConfig):
        self.config = config

    async def upload(self, local_path: str | None) -> UploadedMedia | None:
        """Upload a local file (any resource kind). Returns None on failure; the local file is removed either way."""
        if not local_path:
            return None
        options = self.config.options()
        if self.config.folder:
            options["folder"] = self.config.folder
        loop = asyncio.get_event_loop()
        try:
            result = await loop.run_in_executor(
                None,
                partial(cloudinary.uploader.upload, local_path, resource_type="auto", **options),
            )
            if not isinstance(result, dict):
                raise ValueError(f"unexpected upload response: {result!r}")
            return UploadedMedia(
                url=result.get("secure_url") or result["url"],
                public_id=result["public_id"],
                resource_type=result.get("resource_type", "image"),
                duration=result.get("duration"),
            )
        except (cloudinary.exceptions.Error, OSError, KeyError, TypeError, ValueError) as e:
            logger.error("Remote upload failed for %s: %s", local_path, e)
            return None
        finally:
            cleanup_files(local_path)

    async def delete(self, remote_url: str | None) -> None:
        """Delete a remote object by its URL; image/video kind is inferred from the URL."""
        public_id = public_id_from_url(remote_url)
        if not public_id:
            return
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(
                None,
                partial(
                    cloudinary.uploader.destroy,
                    public_id,
                    resource_type=resource_type_for_url(remote_url),
                    **self.config.options(),
                ),
            )
        except Exception:
            logger.exception("Remote delete failed for %s", remote_url)

    async def delete_many(self, *remote_urls: str | None) -> None:
        """Best-effort removal of several remote objects, e.g. uploads orphaned by a failed write."""
        for url in remote_urls:
            if url:
                logger.info("Removing remote object %s", url)
                await self.delete(url)


@lru_cache
def get_media_storage() -> MediaStorage:
    return MediaStorage(StorageConfig.from_settings(get_settings()))
