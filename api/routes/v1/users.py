"""
api/routes/v1/users.py -- Account and session REST endpoints.

Routes:
  POST /api/v1/users/register        -- multipart form + avatar/cover files; 201
  POST /api/v1/users/login           -- username or email + password; sets cookies
  POST /api/v1/users/logout          -- clears stored refresh token and cookies
  POST /api/v1/users/refresh-token   -- rotates the refresh token; sets cookies
  GET  /api/v1/users/current-user    -- the authenticated account

Every handler is thin: parse input, call one AuthService flow, wrap the result
in the ApiResponse envelope, apply the flow's cookie directives. Failures are
AuthError exceptions handled centrally in api/main.py.

Security:
  login, register and refresh-token are rate limited per client IP.
  login and refresh-token responses carry Cache-Control: no-store because
  they contain tokens in the body.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from api.cookies import apply_directives
from api.limiter import limiter
from api.models import ApiResponse, LoginData, LoginRequest, RefreshRequest, TokenPairResponse, UserResponse
from auth.dependencies import get_auth_service, get_current_user
from auth.directives import REFRESH_COOKIE, Directive
from auth.models import User
from auth.service import AuthService, Upload
from core.config import get_settings

# Auth policy:
# - POST /users/register:       public, rate limited
# - POST /users/login:          public, rate limited
# - POST /users/refresh-token:  public (the refresh token IS the credential), rate limited
# - POST /users/logout:         requires access token (get_current_user)
# - GET  /users/current-user:   requires access token (get_current_user)
router = APIRouter()


def _envelope(
    data,
    message: str,
    status_code: int = 200,
    directives: list[Directive] | None = None,
    no_store: bool = False,
) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=ApiResponse(status=status_code, data=data, message=message).model_dump(),
    )
    apply_directives(resp, directives or [])
    if no_store:
        resp.headers["Cache-Control"] = "no-store"
    return resp


def _to_upload(file: UploadFile | None) -> Upload | None:
    """Browsers submit an empty part for an untouched file input -- treat it as absent."""
    if file is None or not file.filename:
        return None
    return Upload(fileobj=file.file, filename=file.filename, size=file.size)


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/users/register", status_code=201)
@limiter.limit(lambda: get_settings().register_rate_limit)
def register(
    request: Request,
    full_name: str = Form(default="", alias="fullName"),
    user_name: str = Form(default="", alias="userName"),
    email: str = Form(default=""),
    password: str = Form(default=""),
    avatar: Optional[UploadFile] = File(default=None),
    cover_image: Optional[UploadFile] = File(default=None, alias="coverImage"),
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Create an account from form fields plus an avatar (required) and cover image (optional)."""
    result = service.register(
        full_name=full_name,
        username=user_name,
        email=email,
        password=password,
        avatar=_to_upload(avatar),
        cover=_to_upload(cover_image),
    )
    data = UserResponse.from_profile(result.value).model_dump(by_alias=True)
    return _envelope(data, "User registered successfully", status_code=201)


@router.post("/users/login")
@limiter.limit(lambda: get_settings().login_rate_limit)
def login(request: Request, body: LoginRequest, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    """Authenticate with username or email plus password; set both session cookies."""
    result = service.login(username=body.user_name, email=body.email, password=body.password)
    data = LoginData(
        user=UserResponse.from_profile(result.value.user),
        access_token=result.value.access_token,
        refresh_token=result.value.refresh_token,
    ).model_dump(by_alias=True)
    return _envelope(data, "User logged in successfully", directives=result.directives, no_store=True)


@router.post("/users/refresh-token")
@limiter.limit(lambda: get_settings().refresh_rate_limit)
def refresh_token(
    request: Request,
    body: Optional[RefreshRequest] = None,
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Exchange the current refresh token (cookie or body) for a new token pair."""
    presented = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    result = service.refresh_access_token(presented)
    data = TokenPairResponse(
        access_token=result.value.access_token,
        refresh_token=result.value.refresh_token,
    ).model_dump(by_alias=True)
    return _envelope(data, "Access token refreshed", directives=result.directives, no_store=True)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/users/logout")
def logout(
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Drop the stored refresh token and clear both cookies."""
    result = service.logout(current_user.id)
    return _envelope({}, "User logged out", directives=result.directives)


@router.get("/users/current-user")
def current_user(current_user: User = Depends(get_current_user)) -> JSONResponse:
    data = UserResponse.from_profile(current_user.to_profile()).model_dump(by_alias=True)
    return _envelope(data, "Current user fetched successfully")
