"""
auth/models.py -- Domain dataclasses for account entities.

Pattern: Data class (pure data container, zero logic beyond the sanitizing
projection). Stores and the service do the work.

Layer rule: no imports from api/, core/, or media/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account as stored in the database.

    username and email are always stored trimmed and lowercase so uniqueness
    is case-insensitive. cover_image is "" when the user did not upload one.

    hashed_password and refresh_token never leave the server -- anything
    handed to a caller goes through to_profile() first.
    """

    username: str
    email: str
    full_name: str
    avatar: str
    id: int | None = None
    hashed_password: str | None = None
    cover_image: str = ""
    refresh_token: str | None = None  # the single live refresh token, None = no session
    created_at: str | None = None
    updated_at: str | None = None

    def to_profile(self) -> UserProfile:
        return UserProfile(
            id=self.id,
            username=self.username,
            email=self.email,
            full_name=self.full_name,
            avatar=self.avatar,
            cover_image=self.cover_image,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass(frozen=True)
class UserProfile:
    """The sanitized view of a User. Has no password or token fields at all."""

    id: int | None
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str
    created_at: str | None
    updated_at: str | None
