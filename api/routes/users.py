"""
api/routes/users.py -- Role-gated endpoints and user administration.

Routes:
  GET /api/users/public        -- anyone
  GET /api/users/protected     -- any authenticated user
  GET /api/users/moderator     -- moderator, admin
  GET /api/users/admin         -- admin
  GET /api/users               -- list all users (admin)
  GET /api/users/{user_id}     -- one user (admin)
  PUT /api/users/{user_id}/role -- change a user's role (admin)

The fixed paths are registered before /users/{user_id} so "public",
"protected", etc. are never parsed as ids.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import GatedResponse, MessageResponse, RoleUpdate, RoleUpdateResponse, UserResponse, UserSummary
from auth.dependencies import authorize_roles, protect_route
from auth.models import ROLE_ADMIN, ROLE_MODERATOR, AuthContext
from auth.service import AuthService

router = APIRouter()

require_moderator = authorize_roles(ROLE_MODERATOR, ROLE_ADMIN)
require_admin = authorize_roles(ROLE_ADMIN)


# ---------------------------------------------------------------------------
# Demo gated endpoints
# ---------------------------------------------------------------------------


@router.get("/users/public", response_model=MessageResponse)
def public_endpoint() -> MessageResponse:
    return MessageResponse(message="This is a public endpoint accessible by everyone")


@router.get("/users/protected", response_model=GatedResponse)
def protected_endpoint(ctx: AuthContext = Depends(protect_route)) -> GatedResponse:
    return GatedResponse(
        message="This is a protected endpoint for authenticated users only",
        user=UserSummary.from_user(ctx.user),
    )


@router.get("/users/moderator", response_model=GatedResponse)
def moderator_endpoint(ctx: AuthContext = Depends(require_moderator)) -> GatedResponse:
    return GatedResponse(
        message="This is a moderator endpoint, accessible by moderators and admins only",
        user=UserSummary.from_user(ctx.user),
    )


@router.get("/users/admin", response_model=GatedResponse)
def admin_endpoint(ctx: AuthContext = Depends(require_admin)) -> GatedResponse:
    return GatedResponse(
        message="This is an admin endpoint, accessible by admins only",
        user=UserSummary.from_user(ctx.user),
    )


# ---------------------------------------------------------------------------
# User administration (admin only)
# ---------------------------------------------------------------------------


@router.get("/users", response_model=list[UserResponse])
def list_users(request: Request, ctx: AuthContext = Depends(require_admin)) -> list[UserResponse]:
    """List all user accounts. Admin only."""
    service: AuthService = request.app.state.auth_service
    return [UserResponse.from_user(u) for u in service.list_users()]


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(request: Request, user_id: int, ctx: AuthContext = Depends(require_admin)) -> UserResponse:
    """Return one user account. Admin only; 404 if it does not exist."""
    service: AuthService = request.app.state.auth_service
    return UserResponse.from_user(service.get_user(user_id))


@router.put("/users/{user_id}/role", response_model=RoleUpdateResponse)
def update_role(
    request: Request,
    user_id: int,
    body: RoleUpdate,
    ctx: AuthContext = Depends(require_admin),
) -> RoleUpdateResponse:
    """Set a user's role to user, moderator or admin. Admin only."""
    service: AuthService = request.app.state.auth_service
    updated = service.set_role(ctx.user, user_id, body.role)
    return RoleUpdateResponse(
        message=f"User role updated to {updated.role} successfully",
        user=UserResponse.from_user(updated),
    )
