"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts and sessions.

Pattern: Repository + Data Mapper.
UserStore is the repository for identities; _row_to_user is the mapper.
SessionStore is a second, narrow repository over the same users table that
only ever touches the refresh_token column. Route and service code never
touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  username and email carry UNIQUE constraints. The service checks for
  duplicates first for a friendly error, but the constraint is what actually
  guarantees uniqueness when two registrations race.

Concurrency:
  Every SessionStore write is a single-row UPDATE, which the database applies
  atomically -- the last writer wins and no half-written value is visible.
  rotate_refresh_token() is a compare-and-swap (UPDATE ... WHERE
  refresh_token = :expected) so two concurrent refreshes presenting the same
  token cannot both succeed.

Layer rule: no imports from api/, core/, or media/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, or_, select
from sqlalchemy.engine import Engine

from auth.models import User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),  # stored lowercase
    Column("email", String(320), nullable=False, unique=True),  # stored lowercase
    Column("full_name", String(255), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("avatar", Text, nullable=False),
    Column("cover_image", Text, nullable=False, server_default=""),
    Column("refresh_token", Text),  # NULL = no active session
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked by token writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Identity repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///vidhub.db")
        user_id = store.create_user(User(username="ada", email="ada@example.com", ...))
        user = store.get_by_id(user_id)
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the username or email already
        exists. The service turns that into a ConflictError.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    username=user.username,
                    email=user.email,
                    full_name=user.full_name,
                    hashed_password=user.hashed_password,
                    avatar=user.avatar,
                    cover_image=user.cover_image or "",
                    refresh_token=None,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_username_or_email(self, username: str | None = None, email: str | None = None) -> User | None:
        """Return the first user whose username OR email matches.

        Both values are compared as given -- callers pass them already
        normalized (trimmed, lowercase). Empty/None values are skipped; with
        nothing to match on the result is None.
        """
        conditions = []
        if username:
            conditions.append(_users.c.username == username)
        if email:
            conditions.append(_users.c.email == email)
        if not conditions:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(or_(*conditions)).order_by(_users.c.id).limit(1)).fetchone()
        return _row_to_user(row) if row is not None else None

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Session repository
# ---------------------------------------------------------------------------


class SessionStore:
    """The single rotating refresh-token slot of each user.

    Shares the UserStore engine but exposes nothing except the token column.
    Writes skip every identity-level rule; changing the token never re-checks
    the password, names, or media fields.

    All operations are idempotent: setting the same value twice, clearing an
    empty slot, or touching an unknown user id are all no-ops beyond the first.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def set_refresh_token(self, user_id: int, token: str) -> None:
        """Overwrite the stored token; the previous one stops being valid."""
        with self.engine.connect() as conn:
            conn.execute(
                _users.update().where(_users.c.id == user_id).values(refresh_token=token, updated_at=_now_iso())
            )
            conn.commit()

    def get_refresh_token(self, user_id: int) -> str | None:
        """Return the live refresh token, or None when there is no session."""
        with self.engine.connect() as conn:
            value = conn.execute(select(_users.c.refresh_token).where(_users.c.id == user_id)).scalar()
        return value or None

    def clear_refresh_token(self, user_id: int) -> None:
        """Set the slot to an explicit NULL."""
        with self.engine.connect() as conn:
            conn.execute(
                _users.update().where(_users.c.id == user_id).values(refresh_token=None, updated_at=_now_iso())
            )
            conn.commit()

    def rotate_refresh_token(self, user_id: int, expected: str, new: str) -> bool:
        """Replace expected with new in one atomic step.

        Returns False (and writes nothing) when the stored token is no longer
        expected -- someone else rotated or cleared it first.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where((_users.c.id == user_id) & (_users.c.refresh_token == expected))
                .values(refresh_token=new, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        full_name=row.full_name,
        hashed_password=row.hashed_password,
        avatar=row.avatar,
        cover_image=row.cover_image or "",
        refresh_token=row.refresh_token,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
