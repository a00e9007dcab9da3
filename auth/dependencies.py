"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The access token is looked up in priority order:
  1. "accessToken" cookie -- set by the login and refresh flows.
  2. Authorization: Bearer <token> header -- API and mobile clients.

Both converge on AuthService.current_user(), which raises UnauthorizedError
on any failure; the exception handler in api/main.py turns that into 401.

Layer rule: no imports from api/ or media/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.directives import ACCESS_COOKIE
from auth.models import User
from auth.service import AuthService


def _access_token_from(request: Request) -> str | None:
    token: str | None = request.cookies.get(ACCESS_COOKIE)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
    return token or None


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_current_user(request: Request) -> User:
    """Require a valid access token. Raises UnauthorizedError otherwise.

    Use as a FastAPI dependency:
        @router.post("/users/logout")
        def route(user: User = Depends(get_current_user)): ...
    """
    return get_auth_service(request).current_user(_access_token_from(request))
