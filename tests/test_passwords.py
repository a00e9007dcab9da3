"""Unit tests for auth/passwords.py -- bcrypt hashing and verification.

Pure functions, no fixtures. bcrypt is slow by design, so each test hashes at
most a couple of times.
"""

import pytest

from auth.passwords import hash_password, password_too_long, verify_password


class TestVerifyPassword:
    @pytest.mark.parametrize("plain", ["p@ss", "", "pässwörd-密码-🔑", " leading and trailing "])
    def test_matches_own_hash(self, plain):
        assert verify_password(plain, hash_password(plain)) is True

    def test_mismatch_is_false_not_error(self):
        hashed = hash_password("correct horse")
        assert verify_password("battery staple", hashed) is False

    def test_whitespace_is_significant(self):
        assert verify_password("p@ss ", hash_password("p@ss")) is False

    def test_malformed_hash_is_false(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False

    def test_hash_is_salted(self):
        # Same input, different salt -> different hash, both verify.
        first, second = hash_password("same"), hash_password("same")
        assert first != second
        assert verify_password("same", first) and verify_password("same", second)

    def test_hash_never_contains_plaintext(self):
        assert "sup3rsecret" not in hash_password("sup3rsecret")


class TestPasswordTooLong:
    def test_72_bytes_is_allowed(self):
        assert password_too_long("x" * 72) is False

    def test_73_bytes_is_rejected(self):
        assert password_too_long("x" * 73) is True

    def test_counts_bytes_not_characters(self):
        # "é" is two bytes in UTF-8: 37 characters -> 74 bytes.
        assert password_too_long("é" * 37) is True
