"""Unit tests for media/store.py -- Cloudinary and local upload backends.

The Cloudinary client is exercised with requests mocked out; no network.
"""

import hashlib
import io
from unittest.mock import MagicMock, patch

import pytest
import requests

from core.config import Settings
from media.store import (
    CloudinaryMediaStore,
    LocalMediaStore,
    MediaUploadError,
    build_media_store,
    cloudinary_signature,
)


def _response(json_body=None, status_error=None, json_error=None) -> MagicMock:
    resp = MagicMock()
    resp.raise_for_status.side_effect = status_error
    if json_error is not None:
        resp.json.side_effect = json_error
    else:
        resp.json.return_value = json_body or {}
    return resp


class TestCloudinarySignature:
    def test_sorted_params_plus_secret(self):
        expected = hashlib.sha1(b"folder=vidhub&timestamp=1700000000shh").hexdigest()
        assert cloudinary_signature({"timestamp": "1700000000", "folder": "vidhub"}, "shh") == expected


class TestCloudinaryMediaStore:
    def _store(self) -> CloudinaryMediaStore:
        return CloudinaryMediaStore("demo", "key123", "secret", folder="vidhub", timeout=5)

    def test_upload_returns_secure_url(self):
        store = self._store()
        body = {"secure_url": "https://res.cloudinary.com/demo/a.png", "url": "http://x", "public_id": "vidhub/a"}
        with patch.object(store._session, "post", return_value=_response(body)) as post:
            asset = store.upload(io.BytesIO(b"img"), "a.png")
        assert asset.url == "https://res.cloudinary.com/demo/a.png"
        assert asset.public_id == "vidhub/a"
        args, kwargs = post.call_args
        assert args[0] == "https://api.cloudinary.com/v1_1/demo/auto/upload"
        assert kwargs["timeout"] == 5
        assert kwargs["data"]["api_key"] == "key123"
        assert kwargs["data"]["folder"] == "vidhub"
        assert kwargs["data"]["signature"] == cloudinary_signature(
            {"timestamp": kwargs["data"]["timestamp"], "folder": "vidhub"}, "secret"
        )
        assert "secret" not in kwargs["data"].values()

    def test_timeout_raises_upload_error(self):
        store = self._store()
        with patch.object(store._session, "post", side_effect=requests.Timeout("slow")):
            with pytest.raises(MediaUploadError):
                store.upload(io.BytesIO(b"img"), "a.png")

    def test_http_error_raises_upload_error(self):
        store = self._store()
        resp = _response(status_error=requests.HTTPError("401"))
        with patch.object(store._session, "post", return_value=resp):
            with pytest.raises(MediaUploadError):
                store.upload(io.BytesIO(b"img"), "a.png")

    def test_non_json_body_raises_upload_error(self):
        store = self._store()
        with patch.object(store._session, "post", return_value=_response(json_error=ValueError("no json"))):
            with pytest.raises(MediaUploadError):
                store.upload(io.BytesIO(b"img"), "a.png")

    def test_missing_url_raises_upload_error(self):
        store = self._store()
        with patch.object(store._session, "post", return_value=_response({"public_id": "x"})):
            with pytest.raises(MediaUploadError):
                store.upload(io.BytesIO(b"img"), "a.png")


class TestLocalMediaStore:
    def test_writes_file_under_random_name(self, tmp_path):
        store = LocalMediaStore(tmp_path / "media", base_url="/media/")
        asset = store.upload(io.BytesIO(b"hello"), "Avatar.PNG")
        assert asset.url.startswith("/media/")
        assert asset.url.endswith(".png")
        assert (tmp_path / "media" / asset.public_id).read_bytes() == b"hello"

    def test_filename_cannot_escape_root(self, tmp_path):
        store = LocalMediaStore(tmp_path)
        asset = store.upload(io.BytesIO(b"x"), "../../etc/passwd")
        assert "/" not in asset.public_id
        assert (tmp_path / asset.public_id).exists()

    def test_two_uploads_never_collide(self, tmp_path):
        store = LocalMediaStore(tmp_path)
        first = store.upload(io.BytesIO(b"1"), "a.png")
        second = store.upload(io.BytesIO(b"2"), "a.png")
        assert first.url != second.url

    def test_unwritable_root_raises_upload_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(MediaUploadError):
            LocalMediaStore(blocker / "media").upload(io.BytesIO(b"x"), "a.png")


class TestBuildMediaStore:
    def test_local_when_cloudinary_unset(self, tmp_path):
        settings = Settings(debug=True, media_local_dir=str(tmp_path))
        assert isinstance(build_media_store(settings), LocalMediaStore)

    def test_cloudinary_when_configured(self):
        settings = Settings(
            debug=True,
            cloudinary_cloud_name="demo",
            cloudinary_api_key="k",
            cloudinary_api_secret="s",
        )
        assert isinstance(build_media_store(settings), CloudinaryMediaStore)
