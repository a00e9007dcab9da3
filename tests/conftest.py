"""
tests/conftest.py -- Shared test fixtures for VidHub.

This module provides:
  - FakeMediaStore: in-memory media backend with switchable failure modes
  - make_user_store(): isolated named shared-memory SQLite UserStore
  - service: an AuthService wired to test stores, for flow-level tests
  - api_client: TestClient over the real app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool, and the service runs
uploads in a worker pool. Plain :memory: DBs are per-connection and would
present a blank schema to each worker thread.

DEBUG must be set before any core/auth/api import so get_settings()
auto-generates the token secrets instead of raising ValueError.
ALLOWED_HOSTS must include TestClient's "testserver" host, and MEDIA_LOCAL_DIR
points the app's static media mount at a throwaway directory.
"""

from __future__ import annotations

import io
import os
import tempfile
import threading
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from typing import BinaryIO

# CRITICAL: set before any app import -- Settings is read at import time.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver"]')
os.environ.setdefault("MEDIA_LOCAL_DIR", tempfile.mkdtemp(prefix="vidhub-media-"))

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.service import AuthConfig, AuthService, Upload
from auth.store import SessionStore, UserStore
from auth.tokens import TokenConfig, TokenIssuer
from core.config import get_settings
from media.store import LocalMediaStore, MediaAsset, MediaStore, MediaUploadError

ACCESS_SECRET = "a" * 32 + "-access-test-secret"
REFRESH_SECRET = "r" * 32 + "-refresh-test-secret"

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeMediaStore:
    """Records uploads and returns predictable URLs.

    fail_on: filenames whose upload raises MediaUploadError.
    block:   when set, every upload waits on this event (for timeout tests).
    """

    def __init__(self) -> None:
        self.uploads: list[tuple[str, bytes]] = []
        self.fail_on: set[str] = set()
        self.block: threading.Event | None = None

    def upload(self, fileobj: BinaryIO, filename: str) -> MediaAsset:
        if self.block is not None:
            self.block.wait(5)
        if filename in self.fail_on:
            raise MediaUploadError("boom")
        self.uploads.append((filename, fileobj.read()))
        return MediaAsset(url=f"https://media.test/{filename}", public_id=filename)

    def close(self) -> None:
        pass


def upload(filename: str = "avatar.png", content: bytes = b"\x89PNG fake") -> Upload:
    return Upload(fileobj=io.BytesIO(content), filename=filename, size=len(content))


# ---------------------------------------------------------------------------
# Store / service helpers
# ---------------------------------------------------------------------------


def make_user_store() -> UserStore:
    """A fresh, isolated shared-memory database per call."""
    return UserStore(db_url=f"sqlite:///file:test_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")


def make_issuer(access_expire_seconds: int = 3600, refresh_expire_seconds: int = 3600) -> TokenIssuer:
    return TokenIssuer(
        TokenConfig(
            access_secret=ACCESS_SECRET,
            refresh_secret=REFRESH_SECRET,
            access_expire_seconds=access_expire_seconds,
            refresh_expire_seconds=refresh_expire_seconds,
        )
    )


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = make_user_store()
    yield store
    store.close()


@pytest.fixture
def media() -> FakeMediaStore:
    return FakeMediaStore()


@pytest.fixture
def service(user_store: UserStore, media: FakeMediaStore) -> Generator[AuthService, None, None]:
    svc = AuthService(
        users=user_store,
        sessions=SessionStore(user_store.engine),
        issuer=make_issuer(),
        media=media,
        config=AuthConfig(upload_timeout_seconds=1.0, max_upload_bytes=1024),
    )
    yield svc
    svc.close()


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, media: MediaStore):
    """Replace the real lifespan with one that wires test stores into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.media_store = media
        app.state.auth_service = AuthService(
            users=user_store,
            sessions=SessionStore(user_store.engine),
            issuer=make_issuer(),
            media=media,
            config=AuthConfig(upload_timeout_seconds=2.0),
        )
        yield
        app.state.auth_service.close()

    return test_lifespan


def _client(
    media: MediaStore, rate_limited: bool = False
) -> Generator[tuple[TestClient, UserStore, MediaStore], None, None]:
    user_store = make_user_store()
    app.router.lifespan_context = _patch_lifespan(user_store, media)
    limiter.reset()
    limiter.enabled = rate_limited

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client, user_store, media

    limiter.enabled = True
    limiter.reset()
    user_store.close()


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, UserStore, FakeMediaStore], None, None]:
    """Yield (client, user_store, media) with a fresh database for each test.

    Rate limiting is switched off: every request comes from the same
    "testclient" address and would otherwise hit the register limit.
    """
    yield from _client(FakeMediaStore())


@pytest.fixture
def rate_limited_client() -> Generator[tuple[TestClient, UserStore, FakeMediaStore], None, None]:
    """Like api_client, but with the configured rate limits enforced from zero."""
    yield from _client(FakeMediaStore(), rate_limited=True)


@pytest.fixture
def local_media_client() -> Generator[tuple[TestClient, UserStore, LocalMediaStore], None, None]:
    """api_client backed by LocalMediaStore in the directory the app serves."""
    settings = get_settings()
    yield from _client(LocalMediaStore(settings.media_local_dir, settings.media_base_url))
