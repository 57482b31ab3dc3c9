"""Unsigned Cloudinary upload of a rendered post."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

from dhakadispatch.errors import PublishError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CloudinaryUploader:
    cloud_name: str
    api_key: str
    upload_preset: str
    api_base: str = "https://api.cloudinary.com/v1_1"
    timeout: int = 60

    @property
    def upload_url(self) -> str:
        return f"{self.api_base}/{self.cloud_name}/image/upload"

    def upload(self, data_uri: str) -> str:
        """Upload a data URI and return the hosted `secure_url`."""
        logger.info("Uploading final image to Cloudinary...")
        form = {
            "file": (None, data_uri),
            "api_key": (None, self.api_key),
            "upload_preset": (None, self.upload_preset),
        }
        try:
            resp = requests.post(self.upload_url, files=form, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise PublishError(f"Cloudinary upload failed: {e}") from e
        if not resp.ok:
            raise PublishError("Cloudinary upload failed", resp.status_code, resp.text[:500])
        try:
            secure_url = (resp.json() or {}).get("secure_url")
        except ValueError as e:
            raise PublishError("Cloudinary returned non-JSON body", resp.status_code) from e
        if not secure_url:
            raise PublishError("Cloudinary response missing secure_url", resp.status_code, resp.text[:500])
        logger.info(f"Upload successful: {secure_url}")
        return secure_url
