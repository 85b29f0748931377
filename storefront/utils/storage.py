"""Bunny.net storage zone uploads for product images and site assets."""
import logging
import os
import re
import time
from pathlib import Path
from typing import Tuple, Union
from urllib.parse import quote

import requests

from storefront.config import Settings

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".avif": "image/avif",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
}
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif", ".avif")


class BunnyError(Exception):
    pass


def mime_type_for(filename: str) -> str:
    ext = os.path.splitext(filename)[1].lower()
    return _MIME_TYPES.get(ext, "image/jpeg")


def sanitize_filename(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9.-]", "_", name)


def timestamped_upload_path(original_name: str, subdir: str = "products") -> str:
    """products/<epoch ms>-<sanitised name>, unique enough to avoid overwrites."""
    return f"{subdir}/{int(time.time() * 1000)}-{sanitize_filename(original_name)}"


class BunnyStorage:
    def __init__(self, api_key: str, storage_zone: str, cdn_url: str = None,
                 endpoint: str = "storage.bunnycdn.com", timeout: int = 60):
        self.api_key = api_key
        self.storage_zone = storage_zone
        self.cdn_url = cdn_url.rstrip("/") if cdn_url else None
        self.endpoint = endpoint
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "BunnyStorage":
        if not settings.bunny_configured:
            raise BunnyError(
                "Bunny.net credentials not configured. Check BUNNY_API_KEY and BUNNY_STORAGE_ZONE environment variables."
            )
        return cls(
            settings.BUNNY_API_KEY,
            settings.BUNNY_STORAGE_ZONE,
            settings.BUNNY_CDN_URL,
            settings.BUNNY_STORAGE_ENDPOINT,
        )

    def _storage_url(self, path: str) -> str:
        return f"https://{self.endpoint}/{self.storage_zone}/{path}"

    def public_url(self, path: str) -> str:
        # Public files are served through the pull zone, not the storage endpoint
        if not self.cdn_url:
            raise BunnyError("BUNNY_CDN_URL not configured. Set up a Pull Zone in Bunny.net and configure BUNNY_CDN_URL.")
        encoded = "/".join(quote(segment, safe="") for segment in path.split("/"))
        return f"{self.cdn_url}/{encoded}"

    def upload(self, data: Union[bytes, str, Path], filename: str) -> str:
        """Upload bytes (or a local file) to ``filename`` in the zone and return its CDN URL."""
        if isinstance(data, (str, Path)):
            data = Path(data).read_bytes()
        path = filename.lstrip("/")
        try:
            resp = requests.put(
                self._storage_url(path),
                data=data,
                headers={"AccessKey": self.api_key, "Content-Type": mime_type_for(path)},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise BunnyError(f"Failed to upload to Bunny.net: {e}") from e
        if not resp.ok:
            raise BunnyError(f"Failed to upload to Bunny.net: {resp.status_code} {resp.text}")
        logger.info("Uploaded %s (%d bytes) to Bunny storage zone %s", path, len(data), self.storage_zone)
        return self.public_url(path)

    def delete(self, filename: str) -> None:
        path = filename.lstrip("/")
        try:
            resp = requests.delete(self._storage_url(path), headers={"AccessKey": self.api_key}, timeout=self.timeout)
        except requests.RequestException as e:
            raise BunnyError(f"Failed to delete from Bunny.net: {e}") from e
        if not resp.ok and resp.status_code != 404:
            raise BunnyError(f"Failed to delete from Bunny.net: {resp.status_code} {resp.text}")

    def test_connection(self) -> Tuple[bool, str]:
        """Round-trip a tiny file to check credentials."""
        path = f"test-{int(time.time() * 1000)}.txt"
        try:
            resp = requests.put(
                self._storage_url(path),
                data=b"test",
                headers={"AccessKey": self.api_key, "Content-Type": "text/plain"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return False, f"Connection error: {e}"
        if not resp.ok:
            return False, f"Upload test failed: {resp.status_code} {resp.reason}. {resp.text}"
        try:
            self.delete(path)
        except BunnyError as e:
            logger.warning("Bunny test file %s was not cleaned up: %s", path, e)
        return True, "Bunny.net connection successful! Credentials are valid."
