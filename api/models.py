"""
API request and response models for the VidHub account endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Field names on the wire are camelCase (userName, fullName, accessToken) to
match the cookies and the web client; Python attributes stay snake_case.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import UserProfile

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/users/login. One of userName/email is required.

    The service (not Pydantic) trims the identifiers and enforces "at least one
    of", so a missing identifier surfaces as the same 400 envelope as every
    other validation failure. The password is never stripped.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=320)
    password: str = Field(default="", max_length=255)


class RefreshRequest(BaseModel):
    """Optional body for POST /api/v1/users/refresh-token (cookie wins when both are sent)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    refresh_token: Optional[str] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of an account. Never carries the password hash or tokens."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    user_name: str
    email: str
    full_name: str
    avatar: str
    cover_image: str
    created_at: str
    updated_at: str

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "UserResponse":
        return cls(
            id=profile.id,
            user_name=profile.username,
            email=profile.email,
            full_name=profile.full_name,
            avatar=profile.avatar,
            cover_image=profile.cover_image,
            created_at=profile.created_at or "",
            updated_at=profile.updated_at or "",
        )


class TokenPairResponse(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    access_token: str
    refresh_token: str


class LoginData(TokenPairResponse):
    user: UserResponse


class ApiResponse(BaseModel):
    """Success envelope shared by every endpoint."""

    model_config = ConfigDict(frozen=True)

    status: int = 200
    data: Any = None
    message: str = "Success"


class ErrorResponse(BaseModel):
    """Error envelope returned on 4xx/5xx responses. No stack, no internals."""

    model_config = ConfigDict(frozen=True)

    status: int
    message: str


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
