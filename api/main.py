"""
api/main.py -- FastAPI application entry point for VidHub accounts.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins;
                              credentials allowed so session cookies flow
  3. SlowAPIMiddleware     -- app-wide limits; per-route limits run in the
                              @limiter.limit wrappers in api/routes/v1/users.py

Lifespan builds the stores, the token issuer, the media backend and the
AuthService into app.state on startup and closes them on shutdown.

Without Cloudinary, uploaded media is served from MEDIA_LOCAL_DIR as static
files under MEDIA_BASE_URL.

Every response body is one of two envelopes:
  success: {"status": <int>, "data": <any>, "message": <str>}
  error:   {"status": <int>, "message": <str>}
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.cookies import apply_directives
from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.v1.users import router as users_router
from auth.errors import AuthError
from auth.service import AuthConfig, AuthService
from auth.store import SessionStore, UserStore
from auth.tokens import TokenConfig, TokenIssuer
from core.config import get_settings
from media.store import build_media_store

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("vidhub.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build and tear down the account services.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. Signing keys and lifetimes are read from Settings exactly once
    here and handed to the issuer and service as explicit config objects.
    """
    logger.info("VidHub API starting up")
    settings = get_settings()
    app.state.user_store = UserStore(settings.database_url)
    app.state.media_store = build_media_store(settings)
    app.state.auth_service = AuthService(
        users=app.state.user_store,
        sessions=SessionStore(app.state.user_store.engine),
        issuer=TokenIssuer(TokenConfig.from_settings(settings)),
        media=app.state.media_store,
        config=AuthConfig.from_settings(settings),
    )
    logger.info("Auth initialized (secure_cookies=%s)", settings.secure_cookies)

    yield

    app.state.auth_service.close()
    app.state.media_store.close()
    app.state.user_store.close()
    logger.info("VidHub API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="VidHub Accounts API",
    description="Registration, login, logout and session-token rotation.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(users_router, prefix="/api/v1", tags=["Users"])

# Local media backend: uploads land in MEDIA_LOCAL_DIR and are served under
# MEDIA_BASE_URL. Skipped for Cloudinary, whose URLs are absolute.
_media_prefix = _settings.media_base_url.rstrip("/")
if not _settings.cloudinary_enabled and _media_prefix.startswith("/"):
    Path(_settings.media_local_dir).mkdir(parents=True, exist_ok=True)
    app.mount(
        _media_prefix,
        StaticFiles(directory=_settings.media_local_dir),
        name="media",
    )


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so clients can parse
# errors uniformly.
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(status=status_code, message=message).model_dump(),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map a flow fault to its status and apply any cookie directives it carries."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    response = _error(exc.status_code, exc.message)
    apply_directives(response, exc.directives)
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 when a rate limit is exceeded; Retry-After in seconds."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, "Too many requests.")
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are validation faults like any other: 400."""
    fields = ", ".join(".".join(str(p) for p in err.get("loc", ())[1:]) or "body" for err in exc.errors())
    return _error(400, f"Invalid request: {fields}" if fields else "Invalid request.")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=__version__)
