"""
auth/store.py -- SQLAlchemy Core persistence layer for identities.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Route and service code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Uniqueness:
  username and email carry UNIQUE constraints. The service checks for
  duplicates before inserting so it can return a precise message, but that
  check-then-insert is not atomic -- two concurrent signups can both pass it.
  The constraint is the authoritative guard: a collision surfaces here as
  DuplicateUserError, which the service maps to the same 400 response.

DB path: auth/gatekeeper.db by default (Settings.database_url).

Layer rule: no imports from api/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import DuplicateUserError
from auth.models import ROLE_ADMIN, ROLE_USER, User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default=ROLE_USER),
    Column("profile_pic", Text, nullable=False, server_default=""),
    Column("created_at", String(32), nullable=False),
)

# Mutable columns. Anything else passed to update_user() is a programming error.
_UPDATABLE = frozenset({"email", "hashed_password", "role", "profile_pic"})


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///gatekeeper.db")
        uid = store.create_user(User(username="alice", email="alice@x.com", hashed_password=digest))
        user = store.get_by_email("alice@x.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and "mode=memory" not in db_url and ":memory:" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises DuplicateUserError if the email or username is already taken.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=user.username,
                        email=user.email,
                        hashed_password=user.hashed_password,
                        role=user.role,
                        profile_pic=user.profile_pic or "",
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise DuplicateUserError(_collided_field(exc)) from exc

    def update_user(self, user_id: int, **fields) -> bool:
        """Update mutable fields on an existing user.

        Accepted fields: email, hashed_password, role, profile_pic. Only the
        supplied fields change.

        Returns True if a row was updated, False if user_id was not found.
        Raises DuplicateUserError if a new email collides with another user.
        """
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)!r}")
        if not fields:
            return self.get_by_id(user_id) is not None
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateUserError(_collided_field(exc)) from exc
        return result.rowcount > 0

    def demote_admin(self, user_id: int, role: str) -> bool:
        """Move an admin to a lesser role unless they are the last admin.

        The admin count is a subquery of the UPDATE itself, so the check and
        the write are one statement. Two admins demoting each other at the
        same time cannot both succeed on SQLite, which serializes writers.
        On PostgreSQL run this under SERIALIZABLE for the same guarantee.

        Returns True if the row changed; False if it was the last admin, is
        no longer an admin, or does not exist.
        """
        other = _users.alias("other")
        admin_count = select(func.count()).select_from(other).where(other.c.role == ROLE_ADMIN).scalar_subquery()
        stmt = (
            _users.update()
            .where(_users.c.id == user_id, _users.c.role == ROLE_ADMIN, admin_count > 1)
            .values(role=role)
        )
        with self.engine.connect() as conn:
            result = conn.execute(stmt)
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_email_or_username(self, email: str, username: str) -> list[User]:
        """Return every user whose email OR username matches -- at most two rows.

        Signup uses this to decide which duplicate message to return.
        """
        with self.engine.connect() as conn:
            rows = conn.execute(
                _users.select().where(or_(_users.c.email == email, _users.c.username == username))
            ).fetchall()
        return [_row_to_user(r) for r in rows]

    def list_users(self) -> list[User]:
        """Return all users ordered by id. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_by_role(self, role: str) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users).where(_users.c.role == role)).scalar()
        return result or 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _collided_field(exc: IntegrityError) -> str:
    """Name the column behind a UNIQUE violation from the driver message.

    SQLite reports "UNIQUE constraint failed: users.email"; PostgreSQL names
    the constraint or key, which also contains the column name.
    """
    detail = str(exc.orig).lower()
    return "username" if "username" in detail else "email"


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=row.hashed_password,
        role=row.role,
        profile_pic=row.profile_pic or "",
        created_at=row.created_at,
    )
