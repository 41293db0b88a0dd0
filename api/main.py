"""
api/main.py -- FastAPI application entry point for Gatekeeper.

Run with:      python main.py serve
               uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware   -- credentialed CORS for the configured browser origins
  2. log_requests     -- one log line per request with latency and client IP

Lifespan builds every collaborator once from the Settings singleton and hands
it to the others explicitly (see wire_services()). Route handlers find them on
app.state; nothing reads configuration on its own.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import HealthResponse, PublicResponse
from api.routes.auth import router as auth_router
from api.routes.users import router as users_router
from auth.errors import AuthServiceError, RateLimitError
from auth.models import ROLE_ADMIN
from auth.passwords import PasswordHasher
from auth.rate_limit import build_limiters
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenService
from core.clock import Clock, SystemClock
from core.config import Settings, get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("gatekeeper.api")


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def wire_services(app: FastAPI, settings: Settings, user_store: UserStore, clock: Clock) -> None:
    """Build the auth collaborators and attach them to app.state.

    Order matters: the service needs the store, the hasher and the token
    service; the limiters only need settings.
    """
    token_service = TokenService(settings, clock)
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    login_limiter, registration_limiter = build_limiters(settings)

    app.state.settings = settings
    app.state.clock = clock
    app.state.user_store = user_store
    app.state.token_service = token_service
    app.state.auth_service = AuthService(user_store, hasher, token_service)
    app.state.login_limiter = login_limiter
    app.state.registration_limiter = registration_limiter


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    logger.info("Gatekeeper API starting up")
    settings = get_settings()
    user_store = UserStore(settings.database_url)
    wire_services(app, settings, user_store, SystemClock())
    logger.info("Auth initialized (debug=%s, token_ttl=%ss)", settings.debug, settings.token_expire_seconds)
    if user_store.count_by_role(ROLE_ADMIN) == 0:
        logger.warning("No admin account exists -- create one with: python main.py create-admin")

    yield

    app.state.user_store.close()
    logger.info("Gatekeeper API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Gatekeeper API",
    description="Signup, login, session cookies and role-gated access.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Wall-clock time before and after call_next gives the latency.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(users_router, prefix="/api", tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every error body is {"message": str}. The validate endpoint adds
# "valid": false through AuthServiceError.extra.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthServiceError)
async def auth_error_handler(request: Request, exc: AuthServiceError) -> JSONResponse:
    """Render an expected failure with its own status and message."""
    response = JSONResponse(status_code=exc.status_code, content=exc.to_body())
    if isinstance(exc, RateLimitError):
        response.headers["Retry-After"] = str(exc.retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON, wrong types, oversize fields or a bad path parameter -- a plain 400."""
    locations = {err["loc"][0] for err in exc.errors() if err.get("loc")}
    message = "Invalid request body" if locations <= {"body"} else "Invalid request"
    return JSONResponse(status_code=400, content={"message": message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework-raised HTTP errors (unknown route, wrong method) in the same envelope."""
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"message": message}, headers=exc.headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    Security note: the traceback is logged server-side only. The client gets a
    generic message; the exception text is added only in development mode.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    content = {"message": "Internal server error"}
    settings: Settings | None = getattr(request.app.state, "settings", None)
    if settings is not None and settings.debug:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# ---------------------------------------------------------------------------
# Public endpoints
#
# Defined directly in main.py (not in a router) so they are always reachable
# regardless of router registration state. Never rate limited.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=__version__)


@app.get("/api/public", tags=["Health"])
async def public() -> PublicResponse:
    return PublicResponse(
        message="Welcome to the public API! This endpoint is accessible to everyone.",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
