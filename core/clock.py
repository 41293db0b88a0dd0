"""
core/clock.py -- Wall-clock abstraction.

Token expiry depends on the current time. TokenService takes a Clock instead
of calling time.time() so the time source is explicit at the call site.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> float:
        """Return the current time as UNIX seconds."""
        ...


class SystemClock:
    """Clock backed by the system's real time."""

    def now(self) -> float:
        return time.time()
