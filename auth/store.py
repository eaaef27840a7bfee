"""
auth/store.py -- SQLAlchemy Core persistence layer for principals.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_principal
is the mapper. Services and routes never touch SQL directly.

The store is the single source of truth and the only shared mutable resource.
Every write is a single UPDATE/INSERT/DELETE statement, so concurrent requests
need no locking in Python. Two logins racing for the same account resolve
last-write-wins on refresh_token_hash; refresh rotation and the
last-super-admin guard put their precondition in the statement's WHERE clause.

Security:
  All queries use bound parameters. No f-strings in SQL.
  list_all() returns sanitized principals -- the secret columns are not
  even selected.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError

from auth.errors import Conflict
from auth.models import Principal, Role

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(50), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("role", String(20), nullable=False, server_default=Role.USER.value),
    Column("refresh_token_hash", Text),  # NULL = no active session
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    # Ids are never handed out twice, so a deleted account's unexpired
    # tokens cannot resolve to a later account.
    sqlite_autoincrement=True,
)

_PUBLIC_COLUMNS = [c for c in _users.c if c.name not in ("password_hash", "refresh_token_hash")]


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _not_last_super_admin():
    """WHERE clause: the row is not a super_admin, or another super_admin remains.

    Evaluated inside the UPDATE/DELETE statement itself, so the count and the
    write cannot interleave with a concurrent demotion or deletion. The alias
    keeps the subquery from correlating to the outer statement's table.
    """
    counted = _users.alias("counted")
    remaining = (
        select(func.count())
        .select_from(counted)
        .where(counted.c.role == Role.SUPER_ADMIN.value)
        .scalar_subquery()
    )
    return or_(_users.c.role != Role.SUPER_ADMIN.value, remaining > 1)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for Principal records.

    Usage:
        store = UserStore("sqlite:///:memory:")
        uid = store.create("alice", "alice@x.com", hasher.hash("Valid1!pass")).id
        principal = store.find_by_email("alice@x.com")
        store.close()
    """

    def __init__(self, db_url: str = "sqlite:///backoffice_auth.db") -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by the health check."""
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
        except OperationalError:
            return False
        return True

    def has_users(self) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return (result or 0) > 0

    def find_by_email(self, email: str) -> Principal | None:
        """Look up a principal by email (case-insensitive). Includes secret fields."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == _normalize_email(email))).fetchone()
        return _row_to_principal(row) if row is not None else None

    def find_by_username(self, username: str) -> Principal | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_principal(row) if row is not None else None

    def find_by_id(self, user_id: int) -> Principal | None:
        """Look up a principal by primary key. Includes secret fields."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_principal(row) if row is not None else None

    def list_all(self) -> list[Principal]:
        """Return every principal ordered by id, without secret fields."""
        with self.engine.connect() as conn:
            rows = conn.execute(select(*_PUBLIC_COLUMNS).order_by(_users.c.id)).fetchall()
        return [_row_to_principal(r) for r in rows]

    def count_by_role(self, role: Role) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(_users).where(_users.c.role == Role(role).value)
            ).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, username: str, email: str, password_hash: str, role: Role = Role.USER) -> Principal:
        """Insert a new principal and return it (with its assigned id).

        Raises Conflict if the email or username is taken. The pre-check gives
        a precise message; the UNIQUE constraints catch the race where two
        requests pass the pre-check together.
        """
        email = _normalize_email(email)
        with self.engine.connect() as conn:
            existing = conn.execute(
                select(_users.c.email, _users.c.username).where(
                    or_(_users.c.email == email, _users.c.username == username)
                )
            ).fetchone()
            if existing is not None:
                if existing.email == email:
                    raise Conflict("Email already exists.")
                raise Conflict("Username already exists.")

            now = _now_iso()
            try:
                result = conn.execute(
                    _users.insert().values(
                        username=username,
                        email=email,
                        password_hash=password_hash,
                        role=Role(role).value,
                        refresh_token_hash=None,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
            except IntegrityError as exc:
                raise Conflict("Email or username already exists.") from exc
            user_id = result.inserted_primary_key[0]

        return Principal(
            id=user_id,
            username=username,
            email=email,
            role=Role(role),
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )

    def update_refresh_token_hash(
        self,
        user_id: int,
        token_hash: str | None,
        expected_hash: str | None = None,
    ) -> bool:
        """Overwrite (or clear, with None) the single stored refresh-token hash.

        With expected_hash, the write is a compare-and-swap: it only lands if
        the stored hash is still expected_hash. Of two rotations racing on the
        same refresh token, exactly one succeeds.

        Returns True if a row was updated, False if user_id was not found or
        the stored hash had already changed.
        """
        conditions = [] if expected_hash is None else [_users.c.refresh_token_hash == expected_hash]
        return self._update(user_id, *conditions, refresh_token_hash=token_hash)

    def update_role(self, user_id: int, role: Role, keep_last_super_admin: bool = False) -> bool:
        """Change a principal's role. Returns False if user_id was not found.

        With keep_last_super_admin, also returns False (and changes nothing)
        when the target is the only remaining super_admin.
        """
        conditions = [_not_last_super_admin()] if keep_last_super_admin else []
        return self._update(user_id, *conditions, role=Role(role).value)

    def delete(self, user_id: int, keep_last_super_admin: bool = False) -> bool:
        """Permanently delete a principal. Returns True if deleted.

        Returns False if not found or, with keep_last_super_admin, if the
        target is the only remaining super_admin. Authorization is the
        caller's job.
        """
        stmt = _users.delete().where(_users.c.id == user_id)
        if keep_last_super_admin:
            stmt = stmt.where(_not_last_super_admin())
        with self.engine.connect() as conn:
            result = conn.execute(stmt)
            conn.commit()
        return result.rowcount > 0

    def _update(self, user_id: int, *conditions, **fields) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id, *conditions)
                .values(updated_at=_now_iso(), **fields)
            )
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_principal(row) -> Principal:
    # Rows from list_all() do not carry the secret columns.
    mapping = row._mapping
    return Principal(
        id=row.id,
        username=row.username,
        email=row.email,
        role=Role(row.role),
        password_hash=mapping.get("password_hash"),
        refresh_token_hash=mapping.get("refresh_token_hash"),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
