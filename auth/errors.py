"""
auth/errors.py -- Error taxonomy for the auth pipeline.

Every expected failure is an AuthServiceError subclass carrying the HTTP status
and the client-facing message. api/main.py registers one exception handler
that renders them as {"message": ...}; anything that is NOT an
AuthServiceError falls through to the generic 500 handler, which never leaks
internal detail outside development mode.

Layer rule: no imports from api/. The status codes are plain ints so this
module does not depend on FastAPI.
"""

from __future__ import annotations

from typing import Any


class AuthServiceError(Exception):
    """Base class for failures that map to a specific HTTP response."""

    status_code: int = 500

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        # Additional body fields, e.g. {"valid": False} for GET /validate.
        self.extra = extra

    def to_body(self) -> dict[str, Any]:
        return {"message": self.message, **self.extra}


class ValidationError(AuthServiceError):
    """Malformed input, weak password, duplicate field, invalid role."""

    status_code = 400


class AuthenticationError(AuthServiceError):
    """Missing, invalid or expired token; bad credentials."""

    status_code = 401


class AuthorizationError(AuthServiceError):
    """Authenticated, but the role is not permitted."""

    status_code = 403


class NotFoundError(AuthServiceError):
    status_code = 404


class RateLimitError(AuthServiceError):
    """Too many attempts from one client within the current window."""

    status_code = 429

    def __init__(self, message: str, retry_after: int) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class InternalError(AuthServiceError):
    """A store fault the service noticed itself. Rendered as a generic 500."""

    status_code = 500


class DuplicateUserError(Exception):
    """Raised by UserStore when a UNIQUE constraint rejects an insert or update.

    field is "email" or "username" -- whichever collided. The service turns
    this into the same ValidationError its own pre-check would have produced.
    """

    def __init__(self, field: str) -> None:
        super().__init__(f"duplicate {field}")
        self.field = field
