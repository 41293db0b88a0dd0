"""
api/routes/auth.py -- Signup, login, session and profile endpoints.

Routes:
  POST /api/auth/signup     -- create identity (role=user); sets session cookie
  POST /api/auth/login      -- password login; sets session cookie
  POST /api/auth/logout     -- clears session cookie
  GET  /api/auth/profile    -- current identity (requires auth)
  PUT  /api/auth/profile    -- change own email and/or password (requires auth)
  GET  /api/auth/validate   -- token introspection; {valid: bool, ...}

Security:
  [H2] signup and login are rate-limited per client IP; the limiter runs as a
       dependency, so rejected requests never reach hashing or the store.
  [C1] AuthService.login() equalizes timing between unknown email and wrong
       password. Both return the same "Invalid credentials" message.
  [M5] Cache-Control: no-store on responses that set a session cookie.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import LoginRequest, MessageResponse, ProfileUpdate, SignupRequest, UserResponse, ValidateResponse
from auth.dependencies import login_rate_limit, protect_route, registration_rate_limit
from auth.errors import AuthenticationError, NotFoundError
from auth.models import AuthContext, User
from auth.service import AuthService
from auth.tokens import TokenService

# Auth policy:
# - POST /api/auth/signup:    public, registration limiter
# - POST /api/auth/login:     public, login limiter
# - POST /api/auth/logout:    public -- clearing a cookie needs no prior auth
# - GET  /api/auth/profile:   requires auth (protect_route)
# - PUT  /api/auth/profile:   requires auth (protect_route)
# - GET  /api/auth/validate:  soft auth -- failures answer {valid: false}
router = APIRouter()


def _session_response(request: Request, user: User, token: str, status_code: int) -> JSONResponse:
    """Build a user response carrying a fresh session cookie."""
    tokens: TokenService = request.app.state.token_service
    resp = JSONResponse(status_code=status_code, content=UserResponse.from_user(user).model_dump())
    tokens.set_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/auth/signup",
    response_model=UserResponse,
    status_code=201,
    dependencies=[Depends(registration_rate_limit)],
)
def signup(request: Request, body: SignupRequest) -> JSONResponse:
    """Register a new identity and start a session.

    The role is always "user" -- SignupRequest has no role field and the
    service hard-codes it.
    """
    service: AuthService = request.app.state.auth_service
    user, token = service.signup(body.username, body.email, body.password)
    return _session_response(request, user, token, status_code=201)


@router.post("/auth/login", response_model=UserResponse, dependencies=[Depends(login_rate_limit)])
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; set the session cookie."""
    service: AuthService = request.app.state.auth_service
    user, token = service.login(body.email, body.password)
    return _session_response(request, user, token, status_code=200)


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request) -> JSONResponse:
    """Clear the session cookie. Always succeeds, with or without a session."""
    tokens: TokenService = request.app.state.token_service
    resp = JSONResponse(content={"message": "Logged out successfully"})
    tokens.clear_cookie(resp)
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/profile", response_model=UserResponse)
def get_profile(ctx: AuthContext = Depends(protect_route)) -> UserResponse:
    """Return the identity protect_route already loaded -- no second lookup."""
    return UserResponse.from_user(ctx.user)


@router.put("/auth/profile", response_model=UserResponse)
def update_profile(
    request: Request,
    body: ProfileUpdate,
    ctx: AuthContext = Depends(protect_route),
) -> UserResponse:
    """Change the caller's email and/or password. Omitted fields stay as they are."""
    service: AuthService = request.app.state.auth_service
    updated = service.update_profile(ctx.user, email=body.email, password=body.password)
    return UserResponse.from_user(updated)


@router.get("/auth/validate", response_model=ValidateResponse)
def validate_token(request: Request) -> ValidateResponse:
    """Report whether the presented token is usable.

    Runs the same checks as protect_route, but every failure -- missing,
    expired or invalid token, or a deleted user -- is reported as 401 with
    valid=false and the specific reason.
    """
    try:
        ctx = protect_route(request)
    except (AuthenticationError, NotFoundError) as exc:
        raise AuthenticationError(exc.message, valid=False) from exc
    return ValidateResponse(valid=True, user=UserResponse.from_user(ctx.user))
