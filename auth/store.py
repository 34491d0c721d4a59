"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper.
Route and authenticator code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Username uniqueness is enforced case-insensitively by a unique index on
  lower(username). The authenticator already normalizes before every call,
  but the index is what closes the race between two concurrent
  registrations of the same name: the second insert raises IntegrityError.

  email is UNIQUE as well. SQLite and PostgreSQL both treat NULLs as
  distinct, so any number of users may leave email unset.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Index, MetaData, String, Table, create_engine, event, func, select
from sqlalchemy.engine import Engine

from auth.models import User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("username", String(100), nullable=False),
    Column("password", String(255), nullable=False),  # "<keyHex>.<saltHex>"
    Column("email", String(255), unique=True),
    Column("first_name", String(255)),
    Column("last_name", String(255)),
    Column("profile_image_url", String(1024)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

Index("users_username_unique", func.lower(_users.c.username), unique=True)

_PROFILE_FIELDS = frozenset({"email", "first_name", "last_name", "profile_image_url"})


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. In-memory databases ignore the pragma.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def make_engine(db_url: str) -> Engine:
    """Create an engine with the SQLite tweaks both auth stores need."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore()
        created = store.insert(User(username="alice", password_hash=hash_password("secret")))
        user = store.find_by_normalized_username("alice")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    def find_by_normalized_username(self, username: str) -> User | None:
        """Look up a user by username, ignoring case. Returns None if not found.

        The caller is expected to pass the normalized form already; lower()
        on both sides keeps the lookup correct for rows written by other tools.
        """
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where(func.lower(_users.c.username) == username.lower())
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: str) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def insert(self, user: User) -> User:
        """Insert a new user and return the stored record (with id and timestamps).

        Raises sqlalchemy.exc.IntegrityError if the username (in any case) or
        email already exists. The authenticator maps that to ConflictError.
        """
        now = _now_iso()
        user_id = str(uuid.uuid4())
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=user_id,
                    username=user.username,
                    password=user.password_hash,
                    email=user.email,
                    first_name=user.first_name,
                    last_name=user.last_name,
                    profile_image_url=user.profile_image_url,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        created = self.get_by_id(user_id)
        if created is None:
            raise RuntimeError("user row missing immediately after insert")
        return created

    def update_profile(self, user_id: str, **fields) -> bool:
        """Update profile fields (email, first_name, last_name, profile_image_url).

        Username and password are not accepted here. Unknown keys raise
        ValueError rather than being silently ignored.

        Returns True if a row was updated, False if user_id was not found.
        """
        unknown = set(fields) - _PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unknown profile fields: {sorted(unknown)!r}")
        if not fields:
            return False
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(updated_at=_now_iso(), **fields)
            )
            conn.commit()
        return result.rowcount > 0

    def delete_user(self, user_id: str) -> bool:
        """Permanently delete a user. Sessions pointing at it stop resolving immediately."""
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        password_hash=row.password,
        email=row.email,
        first_name=row.first_name,
        last_name=row.last_name,
        profile_image_url=row.profile_image_url,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
