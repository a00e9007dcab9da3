"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for VidHub happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. access_token_secret -> ACCESS_TOKEN_SECRET).

  @model_validator(mode="after"): Cross-field validation of the two signing
      secrets. Dev mode generates missing keys with a warning, production mode
      refuses to start without them.

Security notes:
  Access and refresh tokens are signed with DIFFERENT keys. A leaked access
  key must not let an attacker mint refresh tokens, and vice versa. The
  validator rejects identical keys.

  Secrets shorter than 32 chars are rejected outright.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/ or media/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("vidhub.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'vidhub.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file (with DEBUG=true).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured".
    access_token_secret: str = ""
    refresh_token_secret: str = ""
    access_token_expire_seconds: int = 3600  # 1 hour
    refresh_token_expire_seconds: int = 10 * 24 * 3600  # 10 days

    # ------------------------------------------------------------------
    # Cookies / HTTP
    # ------------------------------------------------------------------

    secure_cookies: bool = True
    cookie_samesite: str = "lax"
    cors_origins: list[str] = ["http://localhost:3000"]
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    register_rate_limit: str = "5/minute"
    refresh_rate_limit: str = "30/minute"

    # ------------------------------------------------------------------
    # Media storage (Cloudinary when configured, local disk otherwise)
    # ------------------------------------------------------------------

    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_folder: str = "vidhub"
    media_local_dir: str = "public/media"
    media_base_url: str = "/media"
    media_upload_timeout_seconds: float = 30.0
    max_upload_bytes: int = 5 * 1024 * 1024

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_token_secrets(self) -> "Settings":
        """Enforce the signing key policy for both token kinds.

        Dev mode (DEBUG=true): auto-generate missing keys with a warning.
            Sessions will not survive restart -- acceptable for local dev.

        Production mode: refuse to start if either key is missing.

        Both modes: reject keys shorter than 32 characters and reject
            using the same key for access and refresh tokens.
        """
        for field_name in ("access_token_secret", "refresh_token_secret"):
            if getattr(self, field_name):
                continue
            if not self.debug:
                raise ValueError(
                    f"{field_name.upper()} is required in production mode. "
                    "Set it in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
            setattr(self, field_name, secrets.token_hex(32))
            logger.warning("Using auto-generated %s. Sessions will not persist across restarts.", field_name.upper())

        if len(self.access_token_secret) < 32 or len(self.refresh_token_secret) < 32:
            raise ValueError("Token secrets must be at least 32 characters.")
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ.")
        return self

    @property
    def cloudinary_enabled(self) -> bool:
        return bool(self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret)


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
