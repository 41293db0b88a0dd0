"""
auth/validators.py -- Credential format and strength checks.

Pure functions: no I/O, no exceptions. Anything that is not a string is simply
invalid, so callers can pass raw request values straight through.
"""

from __future__ import annotations

import re

_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_DIGIT_RE = re.compile(r"\d")

SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'
MIN_PASSWORD_LENGTH = 8


def is_valid_email(value: object) -> bool:
    """Return True if value has the shape local@domain.tld.

    The local part and the domain may not contain whitespace or '@', and the
    domain must contain at least one dot with something on either side.
    """
    if not isinstance(value, str):
        return False
    return _EMAIL_RE.fullmatch(value) is not None


def is_strong_password(value: object) -> bool:
    """Return True if value is at least 8 characters with a digit and a special character.

    There is deliberately no upper/lowercase requirement.
    """
    if not isinstance(value, str) or len(value) < MIN_PASSWORD_LENGTH:
        return False
    if not _DIGIT_RE.search(value):
        return False
    return any(ch in SPECIAL_CHARACTERS for ch in value)
