"""
API request and response models for Gatekeeper REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request fields are Optional on purpose: "field missing" and "field empty" are
business-rule failures answered by AuthService with a specific 400 message,
not schema failures.
Strings are passed through unstripped -- whitespace in a password is part of
the password.

No response model declares a password field, so a password hash cannot be
serialized even by accident.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User

# Inputs longer than this are rejected before bcrypt sees them.
_MAX_FIELD = 255


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /api/auth/signup.

    There is no role field; extra keys (including "role") are ignored, so a
    client cannot register itself as moderator or admin.
    """

    model_config = ConfigDict(extra="ignore")

    username: Optional[str] = Field(default=None, max_length=_MAX_FIELD)
    email: Optional[str] = Field(default=None, max_length=_MAX_FIELD)
    password: Optional[str] = Field(default=None, max_length=_MAX_FIELD)


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    email: Optional[str] = Field(default=None, max_length=_MAX_FIELD)
    password: Optional[str] = Field(default=None, max_length=_MAX_FIELD)


class ProfileUpdate(BaseModel):
    """Request body for PUT /api/auth/profile. At least one field is required."""

    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = Field(default=None, max_length=_MAX_FIELD)
    password: Optional[str] = Field(default=None, max_length=_MAX_FIELD)


class RoleUpdate(BaseModel):
    """Request body for PUT /api/users/{user_id}/role."""

    role: Optional[str] = Field(default=None, max_length=30)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of an identity."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    role: str
    profile_pic: str = ""
    created_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        """Factory Method -- the mapping lives here, next to the output model."""
        return cls(**user.public())


class UserSummary(BaseModel):
    """Minimal identity echoed by the demo gated endpoints."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    role: str

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(id=user.id, username=user.username, role=user.role)


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class GatedResponse(BaseModel):
    """Response for GET /api/users/protected, /moderator and /admin."""

    model_config = ConfigDict(frozen=True)

    message: str
    user: UserSummary


class ValidateResponse(BaseModel):
    """Response for GET /api/auth/validate when the token is good."""

    model_config = ConfigDict(frozen=True)

    valid: bool = True
    user: UserResponse


class RoleUpdateResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    user: UserResponse


class PublicResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    timestamp: str


class HealthResponse(BaseModel):
    """Response for GET /health."""

    status: str = "ok"
    service: str = "auth-service"
    version: str
