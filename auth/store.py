"""
auth/store.py -- Credential store: persistence for User records.

Pattern: Repository + Data Mapper (same as notes/store.py).
UserStore is the capability interface; SqlUserStore and InMemoryUserStore are
the two repositories that implement it; _row_to_user is the mapper. Services
and routes depend only on UserStore and never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is enforced by the UNIQUE constraint on users.email, not
  by a SELECT-then-INSERT check. Two concurrent registrations for the same
  email race on the INSERT; the database lets exactly one through and the
  other surfaces as DuplicateIdentity.

Delete policy: deleting a missing user raises NotFound (notes/store.py
follows the same rule for notes).

Layer rule: no imports from api/ or notes/.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import User
from core.db import users as _users
from core.errors import DuplicateIdentity, NotFound, StoreUnavailable

logger = logging.getLogger("notesafe.store")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class UserStore(Protocol):
    """What AuthService needs from a credential store."""

    def create_user(self, email: str, password_hash: str) -> int: ...

    def get_by_email(self, email: str) -> User: ...

    def get_by_id(self, user_id: int) -> User: ...

    def user_exists(self, user_id: int) -> bool: ...

    def delete_user(self, user_id: int) -> None: ...


# ---------------------------------------------------------------------------
# SQLAlchemy Core implementation
# ---------------------------------------------------------------------------


class SqlUserStore:
    """Relational UserStore.

    Usage:
        engine = create_db_engine("sqlite:///notesafe.db")
        store = SqlUserStore(engine)
        user_id = store.create_user("a@x.com", hasher.hash("secret"))
        user = store.get_by_email("a@x.com")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create_user(self, email: str, password_hash: str) -> int:
        """Insert a new user and return its assigned database ID.

        Raises DuplicateIdentity if the email is already registered.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        email=email,
                        password_hash=password_hash,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise DuplicateIdentity("A user with that email already exists.", {"email": email}) from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailable("users.create", exc) from exc

    def get_by_email(self, email: str) -> User:
        """Look up a user by exact email (case-sensitive). Raises NotFound if absent."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        except SQLAlchemyError as exc:
            raise StoreUnavailable("users.get_by_email", exc) from exc
        if row is None:
            raise NotFound("User not found.")
        return _row_to_user(row)

    def get_by_id(self, user_id: int) -> User:
        """Look up a user by primary key. Raises NotFound if absent."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        except SQLAlchemyError as exc:
            raise StoreUnavailable("users.get_by_id", exc) from exc
        if row is None:
            raise NotFound("User not found.", {"user_id": user_id})
        return _row_to_user(row)

    def user_exists(self, user_id: int) -> bool:
        try:
            with self.engine.connect() as conn:
                count = conn.execute(
                    select(func.count()).select_from(_users).where(_users.c.id == user_id)
                ).scalar()
        except SQLAlchemyError as exc:
            raise StoreUnavailable("users.exists", exc) from exc
        return (count or 0) > 0

    def delete_user(self, user_id: int) -> None:
        """Permanently delete a user and, through ON DELETE CASCADE, their notes.

        Raises NotFound if no user has that id. Tokens already issued to the
        user stay valid until they expire; note queries for a deleted user
        simply match nothing.
        """
        try:
            with self.engine.begin() as conn:
                result = conn.execute(_users.delete().where(_users.c.id == user_id))
        except SQLAlchemyError as exc:
            raise StoreUnavailable("users.delete", exc) from exc
        if result.rowcount == 0:
            raise NotFound("User not found.", {"user_id": user_id})


# ---------------------------------------------------------------------------
# In-memory implementation (tests, throwaway instances)
# ---------------------------------------------------------------------------


class InMemoryUserStore:
    """Dict-backed UserStore with the same contract as SqlUserStore.

    The lock only guards dict access. Password hashing happens in AuthService
    before create_user() is called, so the lock is never held across bcrypt.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[int, User] = {}
        self._ids_by_email: dict[str, int] = {}
        self._next_id = 1

    def create_user(self, email: str, password_hash: str) -> int:
        with self._lock:
            if email in self._ids_by_email:
                raise DuplicateIdentity("A user with that email already exists.", {"email": email})
            user_id = self._next_id
            self._next_id += 1
            self._users[user_id] = User(
                id=user_id,
                email=email,
                password_hash=password_hash,
                created_at=_now_iso(),
            )
            self._ids_by_email[email] = user_id
            return user_id

    def get_by_email(self, email: str) -> User:
        with self._lock:
            user_id = self._ids_by_email.get(email)
            if user_id is None:
                raise NotFound("User not found.")
            return self._users[user_id]

    def get_by_id(self, user_id: int) -> User:
        with self._lock:
            user = self._users.get(user_id)
        if user is None:
            raise NotFound("User not found.", {"user_id": user_id})
        return user

    def user_exists(self, user_id: int) -> bool:
        with self._lock:
            return user_id in self._users

    def delete_user(self, user_id: int) -> None:
        with self._lock:
            user = self._users.pop(user_id, None)
            if user is None:
                raise NotFound("User not found.", {"user_id": user_id})
            del self._ids_by_email[user.email]


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )
