"""
auth/errors.py -- Fault taxonomy for the account flows.

Every flow in auth/service.py signals failure by raising one of these. Each
class carries the HTTP status the API boundary maps it to, so the service
never imports FastAPI. Messages are safe to show to the caller; internal
detail goes to the log, never into the message.

directives lets a fault carry transport side effects (e.g. a failed refresh
clears both session cookies so the client must log in again).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from auth.directives import Directive


class AuthError(Exception):
    status_code: int = 500

    def __init__(self, message: str, directives: Sequence[Directive] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.directives = list(directives)


class ValidationError(AuthError):
    """Missing or malformed input."""

    status_code = 400


class ConflictError(AuthError):
    """Username or email already taken."""

    status_code = 409


class NotFoundError(AuthError):
    status_code = 404


class UnauthorizedError(AuthError):
    """Bad password, or an invalid, expired, revoked or reused token."""

    status_code = 401


class UpstreamError(AuthError):
    """A collaborator outside the process (media storage) failed or timed out."""

    status_code = 500


class InternalError(AuthError):
    status_code = 500
