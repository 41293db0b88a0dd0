"""
auth/service.py -- Orchestration for signup, login, profile and role management.

AuthService ties the collaborators together:

    validators  -> format / strength checks         (auth/validators.py)
    hasher      -> bcrypt hash / verify             (auth/passwords.py)
    store       -> identity records                 (auth/store.py)
    tokens      -> session token issuance           (auth/tokens.py)

Every expected failure is raised as an AuthServiceError subclass with the
exact client-facing message. Anything else (store unavailable, driver errors)
propagates untouched to the generic 500 handler in api/main.py.

The service is framework-free: it never sees a Request or a Response. Routes
read the body, call the service, and let TokenService write the cookie.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging

from auth.errors import AuthenticationError, DuplicateUserError, InternalError, NotFoundError, ValidationError
from auth.models import ROLE_ADMIN, ROLE_USER, ROLES, User
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenService
from auth.validators import is_strong_password, is_valid_email

logger = logging.getLogger("gatekeeper.auth")

MSG_MISSING_SIGNUP_FIELDS = "Please fill all required fields"
MSG_MISSING_LOGIN_FIELDS = "Please provide email and password"
MSG_INVALID_EMAIL = "Please provide a valid email address"
MSG_WEAK_PASSWORD = (
    "Password must be at least 8 characters long and include at least one number and one special character"
)
MSG_EMAIL_TAKEN = "Email already in use"
MSG_USERNAME_TAKEN = "Username already taken"
MSG_INVALID_CREDENTIALS = "Invalid credentials"
MSG_NOTHING_TO_UPDATE = "Nothing to update"
MSG_INVALID_ROLE = "Invalid role. Must be 'user', 'moderator', or 'admin'"
MSG_USER_NOT_FOUND = "User not found"
MSG_LAST_ADMIN = "Cannot demote the last admin"

_DUPLICATE_MESSAGES = {"email": MSG_EMAIL_TAKEN, "username": MSG_USERNAME_TAKEN}


class AuthService:
    def __init__(self, store: UserStore, hasher: PasswordHasher, tokens: TokenService) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens

    # ------------------------------------------------------------------
    # Signup / login
    # ------------------------------------------------------------------

    def signup(self, username: str | None, email: str | None, password: str | None) -> tuple[User, str]:
        """Register a new identity and return it with a fresh session token.

        The role is always "user". Clients cannot choose a role at signup; only
        an admin can change it afterwards via set_role().

        Duplicate detection runs twice: a lookup first (for the precise
        message) and the store's UNIQUE constraint on insert (for the race
        where a concurrent signup lands in between).
        """
        if not username or not email or not password:
            raise ValidationError(MSG_MISSING_SIGNUP_FIELDS)
        if not is_valid_email(email):
            raise ValidationError(MSG_INVALID_EMAIL)
        if not is_strong_password(password):
            raise ValidationError(MSG_WEAK_PASSWORD)

        for existing in self.store.find_by_email_or_username(email, username):
            if existing.email == email:
                raise ValidationError(MSG_EMAIL_TAKEN)
            if existing.username == username:
                raise ValidationError(MSG_USERNAME_TAKEN)

        user = User(
            username=username,
            email=email,
            role=ROLE_USER,
            hashed_password=self.hasher.hash(password),
        )
        try:
            user_id = self.store.create_user(user)
        except DuplicateUserError as exc:
            logger.info("Signup lost a uniqueness race on %s", exc.field)
            raise ValidationError(_DUPLICATE_MESSAGES[exc.field]) from exc

        created = self._require(user_id)
        logger.info("New user registered (id=%s, username=%s)", created.id, created.username)
        return created, self.tokens.issue(created.id)

    def login(self, email: str | None, password: str | None) -> tuple[User, str]:
        """Authenticate by email and password and return the user with a fresh token.

        Unknown email and wrong password produce the same message, and both run
        exactly one bcrypt verification, so neither the body nor the timing
        reveals whether the account exists [C1].
        """
        if not email or not password:
            raise ValidationError(MSG_MISSING_LOGIN_FIELDS)

        user = self.store.get_by_email(email)
        if user is None:
            self.hasher.verify_dummy(password)
            logger.info("Failed login for unknown email")
            raise AuthenticationError(MSG_INVALID_CREDENTIALS)
        if not self.hasher.verify(password, user.hashed_password):
            logger.info("Failed login for user id=%s", user.id)
            raise AuthenticationError(MSG_INVALID_CREDENTIALS)

        logger.info("User id=%s logged in", user.id)
        return user, self.tokens.issue(user.id)

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def update_profile(self, user: User, email: str | None = None, password: str | None = None) -> User:
        """Change the caller's email and/or password. Fields left as None are untouched."""
        if not email and not password:
            raise ValidationError(MSG_NOTHING_TO_UPDATE)

        updates: dict = {}
        if email:
            if not is_valid_email(email):
                raise ValidationError(MSG_INVALID_EMAIL)
            existing = self.store.get_by_email(email)
            if existing is not None and existing.id != user.id:
                raise ValidationError(MSG_EMAIL_TAKEN)
            updates["email"] = email
        if password:
            if not is_strong_password(password):
                raise ValidationError(MSG_WEAK_PASSWORD)
            updates["hashed_password"] = self.hasher.hash(password)

        try:
            updated = self.store.update_user(user.id, **updates)
        except DuplicateUserError as exc:
            raise ValidationError(_DUPLICATE_MESSAGES[exc.field]) from exc
        if not updated:
            raise NotFoundError(MSG_USER_NOT_FOUND)

        logger.info("User id=%s updated profile fields: %s", user.id, ", ".join(sorted(updates)))
        return self._require(user.id)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def list_users(self) -> list[User]:
        return self.store.list_users()

    def get_user(self, user_id: int) -> User:
        user = self.store.get_by_id(user_id)
        if user is None:
            raise NotFoundError(MSG_USER_NOT_FOUND)
        return user

    def set_role(self, actor: User, user_id: int, role: str | None) -> User:
        """Change another identity's role. Callers must already be admin-gated.

        Demoting the only remaining admin is refused -- it would leave no
        account able to manage roles.
        """
        if not role or role not in ROLES:
            raise ValidationError(MSG_INVALID_ROLE)

        target = self.get_user(user_id)
        if target.role == ROLE_ADMIN and role != ROLE_ADMIN:
            # Count and write in one statement; see UserStore.demote_admin.
            if not self.store.demote_admin(target.id, role):
                raise ValidationError(MSG_LAST_ADMIN)
        else:
            self.store.update_user(target.id, role=role)
        logger.info("User id=%s changed role of user id=%s from %s to %s", actor.id, target.id, target.role, role)
        return self._require(target.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require(self, user_id: int) -> User:
        user = self.store.get_by_id(user_id)
        if user is None:
            # The row was written a moment ago; losing it is a store fault.
            logger.error("User id=%s missing immediately after write", user_id)
            raise InternalError("Internal server error")
        return user
