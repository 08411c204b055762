"""
Pass-through client for signed image uploads to Cloudinary
"""

import time
import base64
import asyncio
import hashlib
import logging
from typing import Any, Dict, Iterable, Optional, Tuple

import aiohttp
import pydantic

from .. import errors
from ..misc.logger import enforce_logger
from ..schemas import config
from ..schemas.responses import ImageBatch, ImageFailure, ImageInfo


def sign_parameters(params: Dict[str, Any], secret: str) -> str:
    """
    Create the upload signature: SHA-1 of the sorted, non-empty parameters followed by the secret
    """

    serialized = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, ""))
    return hashlib.sha1((serialized + secret).encode("UTF-8")).hexdigest()


class ImageUploader:
    """
    Upload images to the configured Cloudinary folder without any retries
    """

    def __init__(
            self,
            cloudinary: config.CloudinaryConfig,
            session: aiohttp.ClientSession,
            logger: Optional[logging.Logger] = None
    ):
        if not cloudinary.cloud_name or not cloudinary.api_key or not cloudinary.api_secret:
            raise errors.ConfigurationError("Cloudinary cloud name, API key and API secret must be configured")
        self.config = cloudinary
        self.session = session
        self.logger = enforce_logger(logger, __name__)

    @property
    def upload_url(self) -> str:
        return f"{self.config.base_url}/v1_1/{self.config.cloud_name}/auto/upload"

    async def upload_asset(self, name: str, content_type: Optional[str], content: bytes) -> Dict[str, Any]:
        """
        Upload a single image as data URI and return the complete upload result of Cloudinary

        :raises ValidationError: when the content type is not one of the allowed image types
        :raises TransportError: for network failures or rejected uploads
        """

        if content_type not in self.config.allowed_types:
            raise errors.ValidationError("Invalid file type. Only JPEG, PNG, GIF, and WebP are allowed")

        params = {"folder": self.config.folder, "timestamp": str(int(time.time()))}
        form = dict(params)
        form.update({
            "file": f"data:{content_type};base64,{base64.b64encode(content).decode('ascii')}",
            "api_key": self.config.api_key,
            "signature": sign_parameters(params, self.config.api_secret)
        })

        try:
            async with self.session.post(
                self.upload_url,
                data=form,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout)
            ) as response:
                status = response.status
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise errors.TransportError(f"{type(exc).__name__} during image upload of {name!r}") from exc

        if status != 200 or not isinstance(data, dict) or "error" in data:
            error = data.get("error") if isinstance(data, dict) else None
            message = error.get("message") if isinstance(error, dict) else None
            raise errors.TransportError(f"Cloudinary upload failed: {message or status}", status)

        self.logger.debug(f"Uploaded image {name!r} as {data.get('public_id')!r}")
        return data

    async def upload_image(self, name: str, content_type: Optional[str], content: bytes) -> ImageInfo:
        """
        Upload a single image and return the relevant metadata of the stored asset

        :raises ValidationError: when the content type is not one of the allowed image types
        :raises TransportError: for network failures, rejected uploads or incomplete upload results
        """

        data = await self.upload_asset(name, content_type, content)
        try:
            return ImageInfo(
                file_name=name,
                url=data.get("secure_url") or data.get("url"),
                public_id=data.get("public_id"),
                format=data.get("format"),
                width=data.get("width"),
                height=data.get("height"),
                size=data.get("bytes")
            )
        except pydantic.ValidationError as exc:
            raise errors.TransportError(
                f"Incomplete Cloudinary upload result for {name!r}: {exc.error_count()} invalid field(s)", 200
            ) from exc

    async def upload_images(self, files: Iterable[Tuple[str, Optional[str], bytes]]) -> ImageBatch:
        """
        Upload images one after another, collecting failures per file instead of aborting
        """

        successful = []
        failed = []
        for name, content_type, content in files:
            try:
                successful.append(await self.upload_image(name, content_type, content))
            except errors.RelayError as exc:
                self.logger.info(f"Image upload of {name!r} failed: {exc}")
                failed.append(ImageFailure(file_name=name, error=exc.message))
        return ImageBatch(
            successful=successful,
            failed=failed,
            total_uploaded=len(successful),
            total_failed=len(failed),
            total=len(successful) + len(failed)
        )
