"""
api/cookies.py -- Apply the service's transport directives to a response.

httponly=True: JS cannot read the session cookies (XSS mitigation).
secure: only sent over HTTPS; on by default (SECURE_COOKIES).
samesite: "lax" by default -- not sent on cross-site POST (CSRF mitigation).
max_age: matches the token lifetime so cookie and JWT expire together.

Deletion must repeat the path/secure/samesite attributes the cookie was set
with, otherwise some browsers keep the original.
"""

from __future__ import annotations

from collections.abc import Iterable

from starlette.responses import Response

from auth.directives import ClearCookie, Directive, SetCookie


def apply_directives(response: Response, directives: Iterable[Directive]) -> None:
    for directive in directives:
        if isinstance(directive, SetCookie):
            response.set_cookie(
                directive.name,
                value=directive.value,
                max_age=directive.max_age,
                httponly=directive.httponly,
                secure=directive.secure,
                samesite=directive.samesite,
            )
        elif isinstance(directive, ClearCookie):
            response.delete_cookie(
                directive.name,
                httponly=directive.httponly,
                secure=directive.secure,
                samesite=directive.samesite,
            )
