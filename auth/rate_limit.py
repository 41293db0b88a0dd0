"""
auth/rate_limit.py -- Per-client fixed-window limits on the credential endpoints.

Two instances guard signup and login (see build_limiters()):
  login         5 attempts / 15 minutes / IP
  registration  3 attempts / 60 minutes / IP

Counting is done by the `limits` package, the backend slowapi itself is built
on: a FixedWindowRateLimiter strategy over MemoryStorage. The window opens on
the first attempt from a key and the storage expires it on its own, so there
is nothing to sweep. Keys come from slowapi's get_remote_address, same as the
shared slowapi Limiter would use.

The limiters run as route dependencies rather than @limiter.limit()
decorators, so a rejected request never reaches the handler -- no body
parsing, no store lookup, no bcrypt work -- and the 429 carries the
endpoint-specific message in the usual {"message": ...} envelope.

Deployment constraint: MemoryStorage is process-local. Behind several worker
processes each worker counts independently. Point the limiters at a shared
limits storage (redis://, memcached://) to keep the limits exact.
"""

from __future__ import annotations

import logging
import math
import time

from limits import RateLimitItem, RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from auth.errors import RateLimitError
from core.config import Settings

logger = logging.getLogger("gatekeeper.ratelimit")

LOGIN_LIMIT_MESSAGE = "Too many login attempts, please try again later"
REGISTRATION_LIMIT_MESSAGE = "Too many registration attempts, please try again later"


class AttemptLimiter:
    """One named limit (e.g. 5 per 900 seconds), counted per client key.

    Rejected attempts still count, so hammering a blocked key does not reopen
    the window early.
    """

    def __init__(self, name: str, limit: int, window_seconds: int, message: str, storage: Storage | None = None) -> None:
        self.name = name
        self.message = message
        self.item: RateLimitItem = RateLimitItemPerSecond(limit, window_seconds)
        self.storage = storage or MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self.storage)

    @property
    def limit(self) -> int:
        return self.item.amount

    @property
    def window_seconds(self) -> int:
        return self.item.get_expiry()

    def hit(self, key: str) -> None:
        """Record one attempt for key. Raises RateLimitError when over the limit."""
        if self._strategy.hit(self.item, self.name, key):
            return
        reset_time, _ = self._strategy.get_window_stats(self.item, self.name, key)
        retry_after = max(1, math.ceil(reset_time - time.time()))
        logger.warning("Rate limit '%s' exceeded for %s (retry in %ds)", self.name, key, retry_after)
        raise RateLimitError(self.message, retry_after=retry_after)

    def remaining(self, key: str) -> int:
        """Return how many more attempts key may make in its current window."""
        return self._strategy.get_window_stats(self.item, self.name, key).remaining

    def reset(self, key: str | None = None) -> None:
        """Forget one key's window, or every window when key is None."""
        if key is None:
            self.storage.reset()
        else:
            self._strategy.clear(self.item, self.name, key)

    def check(self, request: Request) -> None:
        """FastAPI-friendly entry point: hit() keyed by the client IP."""
        self.hit(get_remote_address(request))


def build_limiters(settings: Settings) -> tuple[AttemptLimiter, AttemptLimiter]:
    """Return (login_limiter, registration_limiter) configured from settings."""
    login = AttemptLimiter(
        "login",
        limit=settings.login_rate_limit_max,
        window_seconds=settings.login_rate_limit_window_seconds,
        message=LOGIN_LIMIT_MESSAGE,
    )
    registration = AttemptLimiter(
        "registration",
        limit=settings.registration_rate_limit_max,
        window_seconds=settings.registration_rate_limit_window_seconds,
        message=REGISTRATION_LIMIT_MESSAGE,
    )
    return login, registration
