"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and RBAC.

The request pipeline for a protected route is an explicit chain of
dependencies, each of which either returns a value for the next step or
short-circuits by raising an AuthServiceError:

    protect_route        token -> verified user id -> User -> AuthContext
    authorize_roles(..)  AuthContext -> same AuthContext, or 403

Token lookup order (TokenService.extract_token):
  1. Authorization: Bearer <token> header -- API clients.
  2. Session cookie ("jwt") -- set by signup / login.

login_rate_limit / registration_rate_limit run the per-IP counters before the
route body is touched.

Collaborators are read from request.app.state, where the app lifespan put
them: token_service, user_store, login_limiter, registration_limiter.

Layer rule: no imports from api/. auth/dependencies.py may import from
fastapi because this module is part of the FastAPI dependency system.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from fastapi import Depends, Request

from auth.errors import AuthenticationError, AuthorizationError, NotFoundError
from auth.models import ROLES, AuthContext
from auth.store import UserStore
from auth.tokens import TokenExpired, TokenInvalid, TokenService

MSG_NO_TOKEN = "Not authorized, no token"
MSG_TOKEN_EXPIRED = "Token expired"
MSG_TOKEN_FAILED = "Not authorized, token failed"
MSG_NOT_AUTHORIZED = "Not authorized"


def protect_route(request: Request) -> AuthContext:
    """Require a valid session. Returns the AuthContext for downstream steps.

    Raises:
        AuthenticationError: no token, expired token, or invalid token.
        NotFoundError: the token is valid but its user no longer exists.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(ctx: AuthContext = Depends(protect_route)): ...
    """
    tokens: TokenService = request.app.state.token_service
    user_store: UserStore = request.app.state.user_store

    token = tokens.extract_token(request)
    if not token:
        raise AuthenticationError(MSG_NO_TOKEN)

    try:
        user_id = tokens.verify(token)
    except TokenExpired as exc:
        raise AuthenticationError(MSG_TOKEN_EXPIRED) from exc
    except TokenInvalid as exc:
        raise AuthenticationError(MSG_TOKEN_FAILED) from exc

    user = user_store.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return AuthContext(user=user, token=token)


def check_roles(ctx: AuthContext | None, allowed: Iterable[str]) -> AuthContext:
    """Pure role gate: return ctx unchanged if its role is in allowed."""
    if ctx is None:
        raise AuthenticationError(MSG_NOT_AUTHORIZED)
    if ctx.role not in allowed:
        raise AuthorizationError(f"Role ({ctx.role}) is not authorized to access this resource")
    return ctx


def authorize_roles(*roles: str) -> Callable[..., AuthContext]:
    """Build a dependency admitting only the given roles.

    Use as a FastAPI dependency:
        @router.get("/admin")
        def route(ctx: AuthContext = Depends(authorize_roles("admin"))): ...

    Unknown role names fail here, at import time, rather than silently locking
    everyone out of the route.
    """
    unknown = set(roles) - set(ROLES)
    if not roles or unknown:
        raise ValueError(f"authorize_roles() needs roles from {ROLES}, got {roles!r}")
    allowed = frozenset(roles)

    def dependency(ctx: AuthContext = Depends(protect_route)) -> AuthContext:
        return check_roles(ctx, allowed)

    return dependency


def login_rate_limit(request: Request) -> None:
    """Count one login attempt for the client IP; 429 once over the limit."""
    request.app.state.login_limiter.check(request)


def registration_rate_limit(request: Request) -> None:
    """Count one signup attempt for the client IP; 429 once over the limit."""
    request.app.state.registration_limiter.check(request)
