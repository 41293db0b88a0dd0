"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, almost no logic). Stores and the
service do the work; these only own domain shape.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

ROLE_USER = "user"
ROLE_MODERATOR = "moderator"
ROLE_ADMIN = "admin"

# Ordered least to most privileged. Membership checks only -- there is no
# implicit hierarchy; routes list every role they admit.
ROLES: tuple[str, ...] = (ROLE_USER, ROLE_MODERATOR, ROLE_ADMIN)


@dataclass
class User:
    """A registered identity.

    hashed_password is the bcrypt digest. It stays on the dataclass so the
    service can verify logins, but public() -- the only mapping that reaches a
    response -- never includes it.

    profile_pic is a reference (URL) produced by the external avatar upload
    collaborator; this service only stores and returns it.
    """

    username: str
    email: str
    role: str = ROLE_USER
    id: int | None = None
    hashed_password: str | None = None
    profile_pic: str = ""
    created_at: str | None = None

    def public(self) -> dict[str, Any]:
        """Return the non-secret fields of this identity."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "profile_pic": self.profile_pic,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class AuthContext:
    """The request-scoped result of a successful protect_route() check.

    Frozen: each dependency in the chain receives it and either passes it on
    unchanged or short-circuits by raising -- nothing mutates it.
    """

    user: User
    token: str

    @property
    def role(self) -> str:
        return self.user.role
