"""
auth/directives.py -- Transport directives returned by the account flows.

The service decides WHICH cookies change; the API boundary (api/cookies.py)
decides HOW to write them onto a response. Keeping cookie writes out of the
service lets the flows be tested without an HTTP harness.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar, Union

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"

T = TypeVar("T")


@dataclass(frozen=True)
class SetCookie:
    name: str
    value: str
    max_age: int
    httponly: bool = True
    secure: bool = True
    samesite: str = "lax"


@dataclass(frozen=True)
class ClearCookie:
    name: str
    httponly: bool = True
    secure: bool = True
    samesite: str = "lax"


Directive = Union[SetCookie, ClearCookie]


@dataclass
class FlowResult(Generic[T]):
    """Return value of every flow: the payload plus the cookie changes to apply."""

    value: T
    directives: list[Directive] = field(default_factory=list)
