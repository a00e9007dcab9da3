"""
auth/tokens.py -- Access and refresh JWT issuing and decoding.

Security design decisions:
  JWT: python-jose with HS256. Two token kinds, each signed with its OWN key:
       access  -- short-lived, self-verifying; carries user_id, username,
                  email and full name.
       refresh -- long-lived; carries only user_id. Passing decode is not
                  enough to accept one: the service also cross-checks it
                  against the value held in the SessionStore.

  Every token carries a random jti, so two tokens minted for the same user
  in the same second still differ. Single-use rotation depends on this.

  A "type" claim is checked on decode in addition to the key, so a token of
  one kind is never accepted as the other even if the keys were configured
  identically by mistake.

  Decoding returns None on any failure -- the service turns that into a 401.

Configuration is explicit: TokenIssuer is built from a TokenConfig at startup
and holds no module-level secrets, so keys can be rotated by building a new
issuer without touching unrelated state.

Layer rule: no imports from api/ or media/.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import JWTError, jwt

if TYPE_CHECKING:
    from auth.models import User
    from core.config import Settings

logger = logging.getLogger("vidhub.auth")

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenConfig:
    access_secret: str
    refresh_secret: str
    access_expire_seconds: int = 3600
    refresh_expire_seconds: int = 10 * 24 * 3600
    algorithm: str = "HS256"

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenConfig:
        return cls(
            access_secret=settings.access_token_secret,
            refresh_secret=settings.refresh_token_secret,
            access_expire_seconds=settings.access_token_expire_seconds,
            refresh_expire_seconds=settings.refresh_token_expire_seconds,
        )


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenIssuer:
    """Mints and verifies the two token kinds.

    Usage:
        issuer = TokenIssuer(TokenConfig.from_settings(get_settings()))
        pair = issuer.issue_pair(user)
        claims = issuer.decode_refresh_token(pair.refresh_token)
    """

    def __init__(self, config: TokenConfig) -> None:
        self.config = config

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue_access_token(self, user: User) -> str:
        claims = {
            "sub": user.username,
            "user_id": user.id,
            "email": user.email,
            "full_name": user.full_name,
        }
        return self._encode(claims, ACCESS, self.config.access_secret, self.config.access_expire_seconds)

    def issue_refresh_token(self, user: User) -> str:
        return self._encode(
            {"user_id": user.id},
            REFRESH,
            self.config.refresh_secret,
            self.config.refresh_expire_seconds,
        )

    def issue_pair(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(user),
            refresh_token=self.issue_refresh_token(user),
        )

    # ------------------------------------------------------------------
    # Decode
    # ------------------------------------------------------------------

    def decode_access_token(self, token: str) -> dict | None:
        """Verify signature, expiry and kind of an access token. None on any failure."""
        return self._decode(token, ACCESS, self.config.access_secret)

    def decode_refresh_token(self, token: str) -> dict | None:
        """Verify signature, expiry and kind of a refresh token. None on any failure.

        This is only the self-verification half. The caller must still compare
        the token with the one stored for the user.
        """
        return self._decode(token, REFRESH, self.config.refresh_secret)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _encode(self, claims: dict, kind: str, key: str, ttl_seconds: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "type": kind,
            "jti": secrets.token_hex(16),
            "iat": now,
            "exp": now + timedelta(seconds=ttl_seconds),
        }
        return jwt.encode(payload, key, algorithm=self.config.algorithm)

    def _decode(self, token: str, kind: str, key: str) -> dict | None:
        if not token:
            return None
        try:
            payload = jwt.decode(token, key, algorithms=[self.config.algorithm])
        except JWTError:
            return None
        if payload.get("type") != kind or not isinstance(payload.get("user_id"), int):
            logger.debug("Rejected %s token with unexpected claims", kind)
            return None
        return payload
