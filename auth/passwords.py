"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error. Direct bcrypt usage has no compatibility shim.

The cost factor comes from Settings.bcrypt_rounds (default 10). Hashing is
intentionally slow; the login and registration rate limiters run before any
hashing so an attacker cannot use this cost against the server cheaply.

Timing equalization [C1]: verify_dummy() runs one full bcrypt check against a
precomputed hash. The login path calls it when the email is unknown so the
response time does not reveal whether an account exists.
"""

from __future__ import annotations

import bcrypt

# bcrypt only reads the first 72 bytes of a password. bcrypt 5.x raises on
# longer input instead of truncating, so truncate here to keep one behaviour.
_MAX_PASSWORD_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_MAX_PASSWORD_BYTES]


class PasswordHasher:
    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds
        # Computed once so the first unknown-email login is not measurably
        # slower than later ones.
        self._dummy_hash = self.hash("gatekeeper_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a salted bcrypt digest of plain.

        Each call draws a fresh salt, so hashing the same password twice gives
        two different digests.
        """
        return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, digest: str | None) -> bool:
        """Return True if plain matches digest. Malformed or missing digests return False."""
        if not digest:
            return False
        try:
            return bcrypt.checkpw(_encode(plain), digest.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def verify_dummy(self, plain: str) -> None:
        """Spend one bcrypt verification without a real account [C1]."""
        self.verify(plain, self._dummy_hash)
