"""
auth/passwords.py -- Password hashing and verification (bcrypt, direct usage).

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

bcrypt.checkpw does the constant-time comparison and reads the per-hash salt
out of the stored hash. Never compare hashes by hand.
"""

from __future__ import annotations

import bcrypt

# bcrypt only looks at the first 72 bytes of its input; newer releases raise
# instead of truncating. Registration rejects anything longer.
MAX_PASSWORD_BYTES = 72


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A mismatch is a normal False, not an error. A malformed stored hash or an
    over-long password is also False.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def password_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES
