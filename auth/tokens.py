"""
auth/tokens.py -- Session token issuance, verification and cookie transport.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with Settings.secret_key and
       carry the user id and issued-at / expiry timestamps. They are stateless:
       nothing is persisted, validity is the signature plus the expiry.

  Expiry: checked against the injected Clock rather than by python-jose, so
       the same time source drives issuance, verification and the tests. The
       signature is always verified first -- an expired token with a bad
       signature is reported as invalid, not expired.

  Transport: the token travels in an httpOnly, SameSite=Strict cookie (Secure
       outside development mode) or in an Authorization: Bearer header. The
       header wins when both are present.

Layer rule: no imports from api/. Import from core/ is allowed -- core/ is the
kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging

from jose import JWTError, jwt
from starlette.requests import Request
from starlette.responses import Response

from core.clock import Clock, SystemClock
from core.config import Settings

logger = logging.getLogger("gatekeeper.auth")

_ALGORITHM = "HS256"


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenExpired(TokenError):
    pass


class TokenInvalid(TokenError):
    """Malformed token, bad signature, or missing claims."""


class TokenService:
    """Issues and verifies signed, time-limited session tokens.

    Usage:
        tokens = TokenService(get_settings())
        token = tokens.issue(user.id)
        tokens.set_cookie(response, token)
        user_id = tokens.verify(token)   # raises TokenExpired / TokenInvalid
    """

    def __init__(self, settings: Settings, clock: Clock | None = None) -> None:
        self._secret_key = settings.secret_key
        self.ttl = settings.token_expire_seconds
        self.cookie_name = settings.cookie_name
        self.secure = settings.secure_cookies
        self.clock: Clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Encode / decode
    # ------------------------------------------------------------------

    def issue(self, user_id: int) -> str:
        """Return a signed token for user_id that expires ttl seconds from now."""
        issued_at = int(self.clock.now())
        payload = {
            "sub": str(user_id),
            "user_id": user_id,
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> int:
        """Return the user id carried by token.

        Raises:
            TokenInvalid: the token is malformed, its signature does not match,
                or required claims are missing.
            TokenExpired: the signature is good but exp has been reached.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            logger.debug("Rejected token: %s", exc)
            raise TokenInvalid(str(exc)) from exc

        user_id = payload.get("user_id")
        expires_at = payload.get("exp")
        if not isinstance(user_id, int) or not isinstance(expires_at, (int, float)):
            raise TokenInvalid("missing claims")
        if self.clock.now() >= expires_at:
            raise TokenExpired("token expired")
        return user_id

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def set_cookie(self, response: Response, token: str) -> None:
        """Write the token as the session cookie.

        httponly=True: JS cannot read the cookie (XSS mitigation).
        samesite="strict": never sent on cross-site requests (CSRF mitigation).
        secure: HTTPS only, except in development mode.
        max_age: matches the token TTL so both expire together.
        """
        response.set_cookie(
            self.cookie_name,
            value=token,
            max_age=self.ttl,
            path="/",
            httponly=True,
            samesite="strict",
            secure=self.secure,
        )

    def clear_cookie(self, response: Response) -> None:
        """Overwrite the session cookie with an empty, already-expired value."""
        response.set_cookie(
            self.cookie_name,
            value="",
            max_age=0,
            path="/",
            httponly=True,
            samesite="strict",
            secure=self.secure,
        )

    def extract_token(self, request: Request) -> str | None:
        """Return the raw token from the Bearer header, else the session cookie."""
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
            if token:
                return token
        return request.cookies.get(self.cookie_name) or None
