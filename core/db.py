"""
core/db.py -- Shared SQLAlchemy Core schema and engine factory.

Both stores (auth/store.py and notes/store.py) bind to one engine because the
notes table carries a foreign key into users. The schema lives here, in the
kernel, so neither store has to import the other.

Uses SQLAlchemy Core (not ORM) so the dataclasses in auth/models.py and
notes/models.py stay the authoritative domain representation. Swapping SQLite
for PostgreSQL is a connection string change.

Security: all queries built against these tables use bound parameters.
"""

from __future__ import annotations

import logging

from sqlalchemy import Column, ForeignKey, Index, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("notesafe.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),  # case-sensitive, as submitted
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

notes = Table(
    "notes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("title", String(255), nullable=False, server_default=""),
    Column("content", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Index("ix_notes_owner_id", "owner_id"),
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. foreign_keys is OFF by default in SQLite, and
    ON DELETE CASCADE on notes.owner_id depends on it.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(db_url: str) -> Engine:
    """Create an engine for db_url and make sure the schema exists.

    check_same_thread=False is required for SQLite because FastAPI runs sync
    route handlers in a thread pool and pooled connections move between
    threads.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    metadata.create_all(engine)
    return engine


def ping(engine: Engine) -> bool:
    """Return True if a trivial query succeeds. Used by GET /health."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database ping failed")
        return False
    return True
