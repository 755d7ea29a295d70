"""
notes/store.py -- Owner-scoped persistence for notes.

Pattern: Repository + Data Mapper (same as auth/store.py). NoteStore is the
capability interface, SqlNoteStore and InMemoryNoteStore implement it, and
_row_to_note is the mapper.

Ownership guard:
  Every method takes the caller's RequestIdentity as its first argument.
  Reads, updates, and deletes filter on BOTH the note id and
  identity.user_id in the same WHERE clause. A note that exists but belongs
  to someone else matches no row and raises the same NotFound as a note
  that does not exist at all, so callers cannot probe for other users' ids.

  create_note() stamps owner_id from the identity. There is no parameter
  through which a caller could choose a different owner.

Atomicity:
  delete_note() returns the removed note, so it reads then deletes. Both run
  inside engine.begin(); a failure or cancellation between them rolls the
  pair back together. update_note() does the same for update-then-read.

Security: all queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import RequestIdentity
from core.db import notes as _notes
from core.errors import NotFound, StoreUnavailable
from notes.models import Note

logger = logging.getLogger("notesafe.notes")

_NOT_FOUND = "Note not found."

# Largest value a SQLite INTEGER (signed 64-bit) can hold. No row has an id
# outside 1..MAX_NOTE_ID.
MAX_NOTE_ID = 2**63 - 1


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _check_id(note_id: int) -> None:
    if not 1 <= note_id <= MAX_NOTE_ID:
        raise NotFound(_NOT_FOUND, {"note_id": note_id})


def _owned(note_id: int, identity: RequestIdentity):
    """WHERE clause matching one note only if the caller owns it."""
    return (_notes.c.id == note_id) & (_notes.c.owner_id == identity.user_id)


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class NoteStore(Protocol):
    def create_note(self, identity: RequestIdentity, title: str, content: str) -> Note: ...

    def get_note(self, identity: RequestIdentity, note_id: int) -> Note: ...

    def update_note(self, identity: RequestIdentity, note_id: int, title: str, content: str) -> Note: ...

    def delete_note(self, identity: RequestIdentity, note_id: int) -> Note: ...

    def list_notes(self, identity: RequestIdentity) -> list[Note]: ...


# ---------------------------------------------------------------------------
# SQLAlchemy Core implementation
# ---------------------------------------------------------------------------


class SqlNoteStore:
    """Relational NoteStore.

    Usage:
        store = SqlNoteStore(engine)
        note = store.create_note(identity, "title", "body")
        store.get_note(identity, note.id)
        store.delete_note(identity, note.id)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create_note(self, identity: RequestIdentity, title: str, content: str) -> Note:
        """Insert a note owned by the caller and return it with id and created_at set.

        Raises NotFound if the caller's account no longer exists (the token
        outlived a deleted user and the owner foreign key rejects the row).
        """
        created_at = _now_iso()
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    _notes.insert().values(
                        owner_id=identity.user_id,
                        title=title,
                        content=content,
                        created_at=created_at,
                    )
                )
                note_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise NotFound("Owner not found.", {"user_id": identity.user_id}) from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailable("notes.create", exc) from exc
        return Note(
            id=note_id,
            owner_id=identity.user_id,
            title=title,
            content=content,
            created_at=created_at,
        )

    def get_note(self, identity: RequestIdentity, note_id: int) -> Note:
        _check_id(note_id)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_notes.select().where(_owned(note_id, identity))).fetchone()
        except SQLAlchemyError as exc:
            raise StoreUnavailable("notes.get", exc) from exc
        if row is None:
            raise NotFound(_NOT_FOUND, {"note_id": note_id})
        return _row_to_note(row)

    def update_note(self, identity: RequestIdentity, note_id: int, title: str, content: str) -> Note:
        _check_id(note_id)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(_notes.update().where(_owned(note_id, identity)).values(title=title, content=content))
                if result.rowcount == 0:
                    raise NotFound(_NOT_FOUND, {"note_id": note_id})
                row = conn.execute(_notes.select().where(_owned(note_id, identity))).fetchone()
        except SQLAlchemyError as exc:
            raise StoreUnavailable("notes.update", exc) from exc
        return _row_to_note(row)

    def delete_note(self, identity: RequestIdentity, note_id: int) -> Note:
        """Remove the caller's note and return what was removed."""
        _check_id(note_id)
        try:
            with self.engine.begin() as conn:
                row = conn.execute(_notes.select().where(_owned(note_id, identity))).fetchone()
                if row is None:
                    raise NotFound(_NOT_FOUND, {"note_id": note_id})
                conn.execute(_notes.delete().where(_owned(note_id, identity)))
        except SQLAlchemyError as exc:
            raise StoreUnavailable("notes.delete", exc) from exc
        return _row_to_note(row)

    def list_notes(self, identity: RequestIdentity) -> list[Note]:
        """Return the caller's notes, oldest first."""
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(
                    _notes.select().where(_notes.c.owner_id == identity.user_id).order_by(_notes.c.id)
                ).fetchall()
        except SQLAlchemyError as exc:
            raise StoreUnavailable("notes.list", exc) from exc
        return [_row_to_note(r) for r in rows]


# ---------------------------------------------------------------------------
# In-memory implementation (tests, throwaway instances)
# ---------------------------------------------------------------------------


class InMemoryNoteStore:
    """Dict-backed NoteStore with the same ownership contract as SqlNoteStore.

    Notes are copied on the way in and out so callers cannot mutate stored
    state through a returned object.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._notes: dict[int, Note] = {}
        self._next_id = 1

    def _owned(self, identity: RequestIdentity, note_id: int) -> Note:
        # Caller holds the lock.
        note = self._notes.get(note_id)
        if note is None or note.owner_id != identity.user_id:
            raise NotFound(_NOT_FOUND, {"note_id": note_id})
        return note

    def create_note(self, identity: RequestIdentity, title: str, content: str) -> Note:
        with self._lock:
            note = Note(
                id=self._next_id,
                owner_id=identity.user_id,
                title=title,
                content=content,
                created_at=_now_iso(),
            )
            self._next_id += 1
            self._notes[note.id] = note
            return replace(note)

    def get_note(self, identity: RequestIdentity, note_id: int) -> Note:
        with self._lock:
            return replace(self._owned(identity, note_id))

    def update_note(self, identity: RequestIdentity, note_id: int, title: str, content: str) -> Note:
        with self._lock:
            updated = replace(self._owned(identity, note_id), title=title, content=content)
            self._notes[note_id] = updated
            return replace(updated)

    def delete_note(self, identity: RequestIdentity, note_id: int) -> Note:
        with self._lock:
            note = self._owned(identity, note_id)
            del self._notes[note_id]
            return note

    def list_notes(self, identity: RequestIdentity) -> list[Note]:
        with self._lock:
            owned = [n for n in self._notes.values() if n.owner_id == identity.user_id]
        return [replace(n) for n in sorted(owned, key=lambda n: n.id)]


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_note(row) -> Note:
    return Note(
        id=row.id,
        owner_id=row.owner_id,
        title=row.title,
        content=row.content,
        created_at=row.created_at,
    )
