"""
Cloudinary image host client (signed REST uploads and deletes).

Request signing follows Cloudinary's scheme: the parameters being sent (minus file,
api_key and resource type) are sorted, joined as `k=v&k=v`, suffixed with the API
secret and SHA-1 hashed.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from storefront.core.config import Settings, get_settings
from storefront.core.errors import ConfigurationError, IntegrationError

logger = logging.getLogger(__name__)

CLOUDINARY_API = "https://api.cloudinary.com/v1_1"


@dataclass
class UploadResult:
    url: str
    public_id: str
    width: Optional[int]
    height: Optional[int]
    format: str
    bytes: int


def sign_params(params: Dict[str, object], api_secret: str) -> str:
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, ""))
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()


class CloudinaryClient:
    """Upload/destroy images; `transport` lets tests inject an httpx.MockTransport."""

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings or get_settings()
        self._transport = transport

    def _endpoint(self, action: str) -> str:
        s = self.settings
        if not (s.cloudinary_cloud_name and s.cloudinary_api_key and s.cloudinary_api_secret):
            raise ConfigurationError("Cloudinary is not configured")
        return f"{CLOUDINARY_API}/{s.cloudinary_cloud_name}/image/{action}"

    def _signed(self, params: Dict[str, object]) -> Dict[str, object]:
        params = dict(params, timestamp=int(time.time()))
        params["signature"] = sign_params(params, self.settings.cloudinary_api_secret)
        params["api_key"] = self.settings.cloudinary_api_key
        return params

    # PUBLIC_INTERFACE
    def upload(self, content: bytes, filename: str, content_type: str, folder: Optional[str] = None) -> UploadResult:
        """Upload raw image bytes into `folder` (defaults to CLOUDINARY_UPLOAD_FOLDER)."""
        url = self._endpoint("upload")
        data = self._signed({"folder": folder or self.settings.cloudinary_upload_folder})
        try:
            with httpx.Client(timeout=60, transport=self._transport) as client:
                response = client.post(url, data=data, files={"file": (filename, content, content_type)})
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as exc:
            logger.error("Cloudinary upload failed: %s", exc)
            raise IntegrationError("Upload failed") from exc

        return UploadResult(
            url=body["secure_url"],
            public_id=body["public_id"],
            width=body.get("width"),
            height=body.get("height"),
            format=body.get("format", ""),
            bytes=body.get("bytes", len(content)),
        )

    # PUBLIC_INTERFACE
    def destroy(self, public_id: str) -> bool:
        """Delete an image. Failures are logged and reported as False."""
        try:
            url = self._endpoint("destroy")
            with httpx.Client(timeout=30, transport=self._transport) as client:
                response = client.post(url, data=self._signed({"public_id": public_id}))
                response.raise_for_status()
            return True
        except (ConfigurationError, httpx.HTTPError) as exc:
            logger.error("Error deleting from Cloudinary (%s): %s", public_id, exc)
            return False


def get_image_host() -> CloudinaryClient:
    """FastAPI dependency; overridden in tests."""
    return CloudinaryClient()
