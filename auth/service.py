"""
auth/service.py -- The account flows: register, login, logout, refresh.

AuthService is the only stateful control logic in the project. It validates
input, talks to the stores, the token issuer and the media backend, and
returns a FlowResult: the payload plus the cookie directives the API boundary
must apply. It never touches an HTTP response itself.

Every failure is raised as an auth.errors.AuthError subclass. Nothing is
swallowed and nothing is retried.

Session lifecycle of one user:

    NO_SESSION --login--> ACTIVE --refresh--> ACTIVE' --logout--> NO_SESSION

Refresh tokens are single use. A successful refresh swaps the stored token
for a new one atomically (SessionStore.rotate_refresh_token), so replaying
the old token fails even if the replay races the legitimate refresh.

A crash between issuing a pair and storing the refresh token leaves the
caller holding a token the store does not know. That token then fails the
cross-check on its next use -- a clean 401, no corrupted state.
"""

from __future__ import annotations

import hmac
import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO

from sqlalchemy.exc import IntegrityError

from auth.directives import ACCESS_COOKIE, REFRESH_COOKIE, ClearCookie, Directive, FlowResult, SetCookie
from auth.errors import (
    ConflictError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
    UpstreamError,
    ValidationError,
)
from auth.models import User, UserProfile
from auth.passwords import hash_password, password_too_long, verify_password
from auth.store import SessionStore, UserStore
from auth.tokens import TokenIssuer, TokenPair
from media.store import MediaStore, MediaUploadError

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("vidhub.auth")


@dataclass(frozen=True)
class AuthConfig:
    upload_timeout_seconds: float = 30.0
    max_upload_bytes: int = 5 * 1024 * 1024
    secure_cookies: bool = True
    cookie_samesite: str = "lax"
    access_cookie_max_age: int = 3600
    refresh_cookie_max_age: int = 10 * 24 * 3600

    @classmethod
    def from_settings(cls, settings: Settings) -> AuthConfig:
        return cls(
            upload_timeout_seconds=settings.media_upload_timeout_seconds,
            max_upload_bytes=settings.max_upload_bytes,
            secure_cookies=settings.secure_cookies,
            cookie_samesite=settings.cookie_samesite,
            access_cookie_max_age=settings.access_token_expire_seconds,
            refresh_cookie_max_age=settings.refresh_token_expire_seconds,
        )


@dataclass(frozen=True)
class Upload:
    """A file handed over by the transport layer, not yet stored anywhere."""

    fileobj: BinaryIO
    filename: str
    size: int | None = None


@dataclass(frozen=True)
class LoginResult:
    user: UserProfile
    access_token: str
    refresh_token: str


def normalize(value: str | None) -> str:
    return (value or "").strip().lower()


class AuthService:
    """Coordinates credentials, tokens, sessions and media for the account flows.

    Usage:
        service = AuthService(users, SessionStore(users.engine), issuer, media, AuthConfig())
        result = service.login(username="ada", email=None, password="p@ss")
        result.value.access_token, result.directives
    """

    def __init__(
        self,
        users: UserStore,
        sessions: SessionStore,
        issuer: TokenIssuer,
        media: MediaStore,
        config: AuthConfig | None = None,
    ) -> None:
        self.users = users
        self.sessions = sessions
        self.issuer = issuer
        self.media = media
        self.config = config or AuthConfig()
        self._uploads = ThreadPoolExecutor(max_workers=4, thread_name_prefix="media-upload")

    def close(self) -> None:
        self._uploads.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Register
    # ------------------------------------------------------------------

    def register(
        self,
        full_name: str | None,
        username: str | None,
        email: str | None,
        password: str | None,
        avatar: Upload | None,
        cover: Upload | None = None,
    ) -> FlowResult[UserProfile]:
        """Create an account. Sets no cookies -- the client logs in afterwards."""
        if any(not (field or "").strip() for field in (full_name, username, email, password)):
            raise ValidationError("All fields are required")
        if password_too_long(password):
            raise ValidationError("Password must be at most 72 bytes")

        username = normalize(username)
        email = normalize(email)
        if self.users.find_by_username_or_email(username=username, email=email) is not None:
            raise ConflictError("User with this username or email already exists")

        if avatar is None:
            raise ValidationError("Avatar file is required")
        for upload in (avatar, cover):
            if upload is not None and upload.size is not None and upload.size > self.config.max_upload_bytes:
                raise ValidationError(f"{upload.filename or 'File'} is too large")

        avatar_url = self._upload(avatar)
        cover_url = self._upload(cover) if cover is not None else ""

        user = User(
            username=username,
            email=email,
            full_name=full_name.strip(),
            hashed_password=hash_password(password),
            avatar=avatar_url,
            cover_image=cover_url,
        )
        try:
            user_id = self.users.create_user(user)
        except IntegrityError as exc:
            # Lost a race with a concurrent registration for the same name/email.
            raise ConflictError("User with this username or email already exists") from exc

        created = self.users.get_by_id(user_id)
        if created is None:
            logger.error("User %s vanished right after insert", user_id)
            raise InternalError("Something went wrong while registering the user")
        logger.info("Registered user id=%s username=%s", created.id, created.username)
        return FlowResult(created.to_profile())

    def _upload(self, upload: Upload) -> str:
        future = self._uploads.submit(self.media.upload, upload.fileobj, upload.filename)
        try:
            return future.result(timeout=self.config.upload_timeout_seconds).url
        except FuturesTimeoutError as exc:
            future.cancel()
            logger.warning("Media upload of %s timed out", upload.filename)
            raise UpstreamError("Media upload timed out") from exc
        except MediaUploadError as exc:
            raise UpstreamError("Media upload failed") from exc

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    def login(self, username: str | None, email: str | None, password: str) -> FlowResult[LoginResult]:
        username = normalize(username)
        email = normalize(email)
        if not username and not email:
            raise ValidationError("Username or email is required")

        user = self.users.find_by_username_or_email(username=username, email=email)
        if user is None:
            raise NotFoundError("User does not exist")
        if not verify_password(password or "", user.hashed_password or ""):
            logger.info("Failed login for user id=%s", user.id)
            raise UnauthorizedError("Invalid user credentials")

        pair = self.issuer.issue_pair(user)
        self.sessions.set_refresh_token(user.id, pair.refresh_token)
        logger.info("User id=%s logged in", user.id)
        return FlowResult(
            LoginResult(user.to_profile(), pair.access_token, pair.refresh_token),
            self._set_session_cookies(pair),
        )

    def logout(self, user_id: int) -> FlowResult[None]:
        """End the session. Safe to call when there is no session."""
        self.sessions.clear_refresh_token(user_id)
        logger.info("User id=%s logged out", user_id)
        return FlowResult(None, self._clear_session_cookies())

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh_access_token(self, presented: str | None) -> FlowResult[TokenPair]:
        """Trade a live refresh token for a new access/refresh pair.

        No failure path here writes to the SessionStore. Every failure tells
        the boundary to drop both cookies so the client re-authenticates.
        """
        if not presented:
            raise self._refresh_denied("Unauthorized request")

        claims = self.issuer.decode_refresh_token(presented)
        if claims is None:
            raise self._refresh_denied("Invalid refresh token")

        user = self.users.get_by_id(claims["user_id"])
        if user is None:
            raise self._refresh_denied("Invalid refresh token")

        stored = self.sessions.get_refresh_token(user.id)
        if stored is None or not hmac.compare_digest(stored.encode(), presented.encode()):
            logger.warning("Rejected stale refresh token for user id=%s", user.id)
            raise self._refresh_denied("Refresh token is expired or used")

        pair = self.issuer.issue_pair(user)
        if not self.sessions.rotate_refresh_token(user.id, presented, pair.refresh_token):
            logger.warning("Lost refresh rotation race for user id=%s", user.id)
            raise self._refresh_denied("Refresh token is expired or used")
        return FlowResult(pair, self._set_session_cookies(pair))

    def _refresh_denied(self, message: str) -> UnauthorizedError:
        return UnauthorizedError(message, self._clear_session_cookies())

    # ------------------------------------------------------------------
    # Access tokens
    # ------------------------------------------------------------------

    def current_user(self, access_token: str | None) -> User:
        """Resolve an access token to its user. Any failure is a 401."""
        claims = self.issuer.decode_access_token(access_token or "")
        if claims is None:
            raise UnauthorizedError("Invalid access token")
        user = self.users.get_by_id(claims["user_id"])
        if user is None:
            raise UnauthorizedError("Invalid access token")
        return user

    # ------------------------------------------------------------------
    # Cookie directives
    # ------------------------------------------------------------------

    def _set_session_cookies(self, pair: TokenPair) -> list[Directive]:
        flags = {"secure": self.config.secure_cookies, "samesite": self.config.cookie_samesite}
        return [
            SetCookie(ACCESS_COOKIE, pair.access_token, self.config.access_cookie_max_age, **flags),
            SetCookie(REFRESH_COOKIE, pair.refresh_token, self.config.refresh_cookie_max_age, **flags),
        ]

    def _clear_session_cookies(self) -> list[Directive]:
        flags = {"secure": self.config.secure_cookies, "samesite": self.config.cookie_samesite}
        return [ClearCookie(ACCESS_COOKIE, **flags), ClearCookie(REFRESH_COOKIE, **flags)]
