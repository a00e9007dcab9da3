"""
media/store.py -- Where avatar and cover-image uploads end up.

Two backends behind one MediaStore protocol:

  CloudinaryMediaStore -- signed upload to the Cloudinary REST API with
      requests. Used whenever CLOUDINARY_* credentials are configured.
  LocalMediaStore      -- copies the file under a local directory and returns
      a URL below MEDIA_BASE_URL. Development fallback.

Both raise MediaUploadError on any failure. Neither retries: a retried upload
that actually succeeded the first time would leave a duplicate asset behind.

Usage:
    media = build_media_store(get_settings())
    asset = media.upload(fileobj, "avatar.png")
    asset.url
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Protocol

import requests

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("vidhub.media")

CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/auto/upload"


class MediaUploadError(Exception):
    """The media backend did not accept the file."""


@dataclass(frozen=True)
class MediaAsset:
    url: str
    public_id: str = ""


class MediaStore(Protocol):
    def upload(self, fileobj: BinaryIO, filename: str) -> MediaAsset: ...


# ---------------------------------------------------------------------------
# Cloudinary
# ---------------------------------------------------------------------------


def cloudinary_signature(params: dict[str, str], api_secret: str) -> str:
    """Cloudinary request signature: SHA-1 over the sorted k=v pairs plus the secret."""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()  # noqa: S324 -- mandated by Cloudinary


class CloudinaryMediaStore:
    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "",
        timeout: float = 30.0,
    ) -> None:
        self._url = CLOUDINARY_UPLOAD_URL.format(cloud_name=cloud_name)
        self._api_key = api_key
        self._api_secret = api_secret
        self._folder = folder
        self._timeout = timeout
        self._session = requests.Session()
        self._session.max_redirects = 3

    def upload(self, fileobj: BinaryIO, filename: str) -> MediaAsset:
        params = {"timestamp": str(int(time.time()))}
        if self._folder:
            params["folder"] = self._folder
        data = {
            **params,
            "api_key": self._api_key,
            "signature": cloudinary_signature(params, self._api_secret),
        }
        try:
            resp = self._session.post(
                self._url,
                data=data,
                files={"file": (filename, fileobj)},
                timeout=self._timeout,
            )
            resp.raise_for_status()
            body = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Cloudinary upload failed for %s: %s", filename, e)
            raise MediaUploadError("Media upload failed") from e

        url = body.get("secure_url") or body.get("url")
        if not url:
            logger.warning("Cloudinary response for %s had no URL", filename)
            raise MediaUploadError("Media upload returned no URL")
        return MediaAsset(url=url, public_id=body.get("public_id", ""))

    def close(self) -> None:
        self._session.close()


# ---------------------------------------------------------------------------
# Local disk
# ---------------------------------------------------------------------------


class LocalMediaStore:
    """Stores uploads as <root>/<random>.<ext> and serves them from base_url.

    The caller's filename only contributes its extension. The stored name is
    random so a client cannot overwrite another user's file or escape root.
    """

    def __init__(self, root: Path | str, base_url: str = "/media") -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def upload(self, fileobj: BinaryIO, filename: str) -> MediaAsset:
        suffix = Path(filename).suffix.lower()
        if not suffix[1:].isalnum():
            suffix = ""
        name = f"{secrets.token_hex(16)}{suffix}"
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with open(self.root / name, "wb") as out:
                shutil.copyfileobj(fileobj, out)
        except OSError as e:
            logger.warning("Local media write failed for %s: %s", filename, e)
            raise MediaUploadError("Media upload failed") from e
        return MediaAsset(url=f"{self.base_url}/{name}", public_id=name)

    def close(self) -> None:
        pass


def build_media_store(settings: Settings) -> CloudinaryMediaStore | LocalMediaStore:
    """Pick Cloudinary when it is configured, local disk otherwise."""
    if settings.cloudinary_enabled:
        logger.info("Media storage: Cloudinary (%s)", settings.cloudinary_cloud_name)
        return CloudinaryMediaStore(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            folder=settings.cloudinary_folder,
            timeout=settings.media_upload_timeout_seconds,
        )
    logger.info("Media storage: local directory %s", settings.media_local_dir)
    return LocalMediaStore(settings.media_local_dir, settings.media_base_url)
