"""
Media CDN gateway (Cloudinary).

Credentials travel with every SDK call instead of through ``cloudinary.config``
so several gateways (or none) can coexist in one process. The SDK is blocking,
so uploads and deletions run in the threadpool.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import BinaryIO, Optional, Union

import cloudinary.uploader
import cloudinary.utils
import structlog
from cloudinary.exceptions import Error as CloudinaryError
from fastapi import Request
from fastapi.concurrency import run_in_threadpool

from app.core.config import Settings
from app.core.errors import UpstreamFailure, ValidationError

log = structlog.get_logger()


@dataclass(frozen=True)
class UploadedAsset:
    public_id: str
    secure_url: str
    bytes: int
    format: Optional[str]
    resource_type: str


class MediaGateway:
    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        *,
        folder: str = "wedding-share",
        allowed_formats: Optional[list[str]] = None,
        max_bytes: int = 100 * 1024 * 1024,
    ):
        self.cloud_name = cloud_name
        self._api_key = api_key
        self._api_secret = api_secret
        self.folder = folder
        self.allowed_formats = [f.lower() for f in (allowed_formats or ["jpg", "jpeg", "png", "gif", "mp4", "mov", "avi"])]
        self.max_bytes = max_bytes

    @classmethod
    def from_settings(cls, settings: Settings) -> "MediaGateway":
        return cls(
            settings.cloudinary_cloud_name,
            settings.cloudinary_api_key,
            settings.cloudinary_api_secret,
            folder=settings.media_folder,
            allowed_formats=settings.media_allowed_formats,
            max_bytes=settings.media_max_bytes,
        )

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self._api_key and self._api_secret)

    def _credentials(self) -> dict:
        if not self.configured:
            raise UpstreamFailure("Media storage is not configured")
        return {
            "cloud_name": self.cloud_name,
            "api_key": self._api_key,
            "api_secret": self._api_secret,
        }

    def check_upload(self, filename: str, size: int) -> None:
        """Reject files whose extension or size the CDN would refuse."""
        extension = os.path.splitext(filename or "")[1].lstrip(".").lower()
        if extension not in self.allowed_formats:
            raise ValidationError(
                f"File type not allowed. Allowed formats: {', '.join(self.allowed_formats)}"
            )
        if size > self.max_bytes:
            raise ValidationError(
                f"File is too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB"
            )

    async def upload(
        self,
        data: Union[bytes, BinaryIO],
        *,
        folder: Optional[str] = None,
        public_id: Optional[str] = None,
        resource_type: str = "auto",
    ) -> UploadedAsset:
        options = {
            "folder": folder or self.folder,
            "resource_type": resource_type,
            "allowed_formats": self.allowed_formats,
            "overwrite": False,
            "invalidate": True,
            **self._credentials(),
        }
        if public_id:
            options["public_id"] = public_id
        try:
            result = await run_in_threadpool(cloudinary.uploader.upload, data, **options)
        except CloudinaryError as exc:
            log.error("media.upload_failed", folder=options["folder"], error=str(exc))
            raise UpstreamFailure("Failed to upload media") from exc

        asset = UploadedAsset(
            public_id=result["public_id"],
            secure_url=result["secure_url"],
            bytes=int(result.get("bytes", 0)),
            format=result.get("format"),
            resource_type=result.get("resource_type", "image"),
        )
        log.info("media.stored", public_id=asset.public_id, bytes=asset.bytes)
        return asset

    async def destroy(self, public_id: str, resource_type: str = "image") -> None:
        try:
            await run_in_threadpool(
                cloudinary.uploader.destroy,
                public_id,
                resource_type=resource_type,
                invalidate=True,
                **self._credentials(),
            )
        except CloudinaryError as exc:
            log.error("media.destroy_failed", public_id=public_id, error=str(exc))
            raise UpstreamFailure("Failed to delete media") from exc
        log.info("media.destroyed", public_id=public_id)

    def optimized_url(
        self,
        public_id: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
        quality: int = 80,
        crop: str = "fill",
        resource_type: str = "image",
    ) -> str:
        options = {"quality": quality, "fetch_format": "auto"}
        if width or height:
            options.update(width=width, height=height, crop=crop)
        url, _ = cloudinary.utils.cloudinary_url(
            public_id,
            secure=True,
            cloud_name=self.cloud_name,
            resource_type=resource_type,
            **options,
        )
        return url

    def thumbnail_url(self, public_id: str, width: int = 300, height: int = 300, resource_type: str = "image") -> str:
        return self.optimized_url(
            public_id, width=width, height=height, quality=70, crop="fill", resource_type=resource_type
        )


def get_media_gateway(request: Request) -> MediaGateway:
    """FastAPI dependency: the process-wide media gateway."""
    return request.app.state.media
