"""
Media uploads to Cloudinary.

Signed uploads and deletes go through the Cloudinary SDK. Its calls block,
so they run in Starlette's threadpool. Without credentials the service
returns deterministic development URLs so the rest of the booking flow
keeps working locally.
"""

import time
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import cloudinary.exceptions
import cloudinary.uploader
import structlog
from starlette.concurrency import run_in_threadpool

from api.src.config import Settings
from api.src.errors import ServiceError
from api.src.security import FILE_UPLOAD_RULES, FileUploadRules, ValidationResult, validate_file_upload

logger = structlog.get_logger(__name__)

DEV_MEDIA_BASE = "https://res.cloudinary.com/demo"


@dataclass(frozen=True)
class CloudinaryCredentials:
    cloud_name: str
    api_key: str
    api_secret: str

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["CloudinaryCredentials"]:
        """Read ``CLOUDINARY_URL`` first, then the three separate variables."""
        if settings.cloudinary_url:
            parsed = urlparse(settings.cloudinary_url)
            if parsed.scheme == "cloudinary" and parsed.hostname and parsed.username and parsed.password:
                return cls(parsed.hostname, parsed.username, parsed.password)
            logger.warning("cloudinary_url_invalid")
        if settings.cloudinary_cloud_name and settings.cloudinary_api_key and settings.cloudinary_api_secret:
            return cls(
                settings.cloudinary_cloud_name,
                settings.cloudinary_api_key,
                settings.cloudinary_api_secret,
            )
        return None

    def options(self) -> Dict[str, Any]:
        """Credentials passed on every SDK call."""
        return {
            "cloud_name": self.cloud_name,
            "api_key": self.api_key,
            "api_secret": self.api_secret,
            "secure": True,
        }


class UploadError(ServiceError):
    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message, status_code)


def resource_type_for(content_type: Optional[str], requested: str = "auto") -> str:
    """Map a media type to a Cloudinary resource type (PDFs are stored raw)."""
    if requested == "image" or (content_type or "").startswith("image/"):
        return "image"
    if requested == "pdf" or content_type == "application/pdf":
        return "raw"
    return "auto"


class UploadService:
    """Uploads and deletes media files."""

    def __init__(self, settings: Settings, rules: FileUploadRules = FILE_UPLOAD_RULES):
        self.credentials = CloudinaryCredentials.from_settings(settings)
        self.default_folder = settings.upload_path
        self.rules = rules
        if self.credentials is None:
            logger.warning("cloudinary_disabled", reason="using development fallback URLs")

    @property
    def configured(self) -> bool:
        return self.credentials is not None

    def validate_file(self, file: Any) -> ValidationResult:
        if file is None:
            return ValidationResult(False, "No file provided")
        return validate_file_upload(file, self.rules)

    async def upload(
        self,
        content: bytes,
        filename: Optional[str],
        folder: Optional[str] = None,
        resource_type: str = "auto",
        now: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Upload one file.

        Args:
            content: File bytes
            filename: Original file name; its stem becomes the public id
            folder: Destination folder (defaults to UPLOAD_PATH)
            resource_type: image, raw or auto
            now: Clock override for the development fallback

        Returns:
            Dict with ``url``, ``publicId`` and, when the provider reports
            them, ``format``, ``width`` and ``height``

        Raises:
            UploadError: 400 for an empty file, 502 when the provider fails
        """
        if not content:
            raise UploadError("No file buffer provided", status_code=400)
        folder = folder or self.default_folder
        basename = PurePath(filename or "file").name

        if self.credentials is None:
            ts = int((now if now is not None else time.time()) * 1000)
            url = f"{DEV_MEDIA_BASE}/{folder}/{ts}_{basename}"
            logger.warning("upload_dev_fallback", url=url)
            return {"url": url, "publicId": f"dev_{ts}"}

        try:
            result = await run_in_threadpool(
                cloudinary.uploader.upload,
                content,
                filename=basename,
                folder=folder,
                public_id=PurePath(basename).stem or f"file_{int(time.time())}",
                resource_type=resource_type,
                overwrite=True,
                **self.credentials.options(),
            )
        except cloudinary.exceptions.Error as e:
            logger.error("upload_failed", filename=basename, error=str(e))
            raise UploadError("Upload failed")

        logger.info("file_uploaded", public_id=result.get("public_id"), bytes=len(content))
        return {
            "url": result.get("secure_url") or result.get("url"),
            "publicId": result.get("public_id"),
            "format": result.get("format"),
            "width": result.get("width"),
            "height": result.get("height"),
        }

    async def delete(self, public_id: str, resource_type: str = "image") -> bool:
        """
        Destroy an uploaded file and invalidate CDN caches.

        Returns:
            True when the provider answers "ok" or "not found"
        """
        if not public_id:
            raise UploadError("publicId is required", status_code=400)
        if self.credentials is None:
            logger.warning("delete_dev_skipped", public_id=public_id)
            return True

        try:
            result = await run_in_threadpool(
                cloudinary.uploader.destroy,
                public_id,
                resource_type=resource_type,
                invalidate=True,
                **self.credentials.options(),
            )
        except cloudinary.exceptions.Error as e:
            logger.error("delete_failed", public_id=public_id, error=str(e))
            return False
        return result.get("result") in ("ok", "not found")
