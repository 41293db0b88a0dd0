"""Unit tests for auth/passwords.py -- bcrypt hashing and verification.

Covers:
- verify() accepts the original password and rejects any other
- Two hashes of the same password differ (random salt)
- Malformed or missing digests return False instead of raising
- The configured cost factor is encoded in the digest
"""

import pytest

from auth.passwords import PasswordHasher


@pytest.fixture(scope="module")
def fast_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


def test_round_trip(fast_hasher: PasswordHasher) -> None:
    digest = fast_hasher.hash("Abcdef1!")
    assert fast_hasher.verify("Abcdef1!", digest)


def test_wrong_password_rejected(fast_hasher: PasswordHasher) -> None:
    digest = fast_hasher.hash("Abcdef1!")
    assert not fast_hasher.verify("Abcdef1?", digest)
    assert not fast_hasher.verify("", digest)


def test_hashes_are_salted(fast_hasher: PasswordHasher) -> None:
    first = fast_hasher.hash("same-password-1!")
    second = fast_hasher.hash("same-password-1!")
    assert first != second
    assert fast_hasher.verify("same-password-1!", first)
    assert fast_hasher.verify("same-password-1!", second)


def test_digest_is_not_the_plaintext(fast_hasher: PasswordHasher) -> None:
    digest = fast_hasher.hash("Abcdef1!")
    assert "Abcdef1!" not in digest


def test_cost_factor_in_digest() -> None:
    """bcrypt digests look like $2b$<cost>$..., so the rounds are visible."""
    digest = PasswordHasher(rounds=5).hash("Abcdef1!")
    assert digest.split("$")[2] == "05"


@pytest.mark.parametrize("digest", ["", None, "not-a-bcrypt-hash", "$2b$04$tooshort"])
def test_malformed_digest_returns_false(fast_hasher: PasswordHasher, digest) -> None:
    assert fast_hasher.verify("Abcdef1!", digest) is False


def test_long_password_does_not_raise(fast_hasher: PasswordHasher) -> None:
    """Input past bcrypt's 72-byte limit hashes and verifies instead of raising."""
    long_pw = "x1!" * 40
    digest = fast_hasher.hash(long_pw)
    assert fast_hasher.verify(long_pw, digest)


def test_verify_dummy_returns_none(fast_hasher: PasswordHasher) -> None:
    assert fast_hasher.verify_dummy("anything") is None
