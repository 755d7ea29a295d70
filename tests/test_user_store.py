"""
tests/test_user_store.py -- Unit tests for auth/store.py.

Both UserStore implementations run the same contract tests through a
parametrized fixture. SQL-only behavior (concurrent duplicate registration,
cascade to notes, store failures) has its own class.

Covers:
  - create_user assigns increasing ids; lookups by email and id
  - email lookup is exact and case-sensitive
  - duplicate email raises DuplicateIdentity
  - get/delete of a missing user raises NotFound
  - concurrent registrations of one email: exactly one wins
  - deleting a user cascades to their notes
  - database errors surface as StoreUnavailable with an op tag
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from auth.models import RequestIdentity
from auth.store import InMemoryUserStore, SqlUserStore
from core.db import create_db_engine
from core.errors import DuplicateIdentity, NotFound, StoreUnavailable
from notes.store import SqlNoteStore


@pytest.fixture(params=["sql", "memory"])
def store(request):
    """A fresh, empty UserStore of each kind."""
    if request.param == "sql":
        engine = create_db_engine("sqlite:///:memory:")
        yield SqlUserStore(engine)
        engine.dispose()
    else:
        yield InMemoryUserStore()


class TestUserStoreContract:
    def test_create_assigns_increasing_ids(self, store) -> None:
        first = store.create_user("a@x.com", "hash-a")
        second = store.create_user("b@x.com", "hash-b")
        assert first == 1, f"First id should be 1, got {first}"
        assert second > first

    def test_get_by_email(self, store) -> None:
        user_id = store.create_user("a@x.com", "hash-a")
        user = store.get_by_email("a@x.com")
        assert user.id == user_id
        assert user.email == "a@x.com"
        assert user.password_hash == "hash-a"
        assert user.created_at, "created_at must be stamped on insert"

    def test_get_by_id(self, store) -> None:
        user_id = store.create_user("a@x.com", "hash-a")
        assert store.get_by_id(user_id).email == "a@x.com"

    def test_email_lookup_is_case_sensitive(self, store) -> None:
        store.create_user("Alice@x.com", "hash-a")
        with pytest.raises(NotFound):
            store.get_by_email("alice@x.com")

    def test_case_variants_are_distinct_accounts(self, store) -> None:
        a = store.create_user("Alice@x.com", "hash-a")
        b = store.create_user("alice@x.com", "hash-b")
        assert a != b

    def test_duplicate_email_rejected(self, store) -> None:
        store.create_user("a@x.com", "hash-a")
        with pytest.raises(DuplicateIdentity):
            store.create_user("a@x.com", "hash-other")
        assert store.get_by_email("a@x.com").password_hash == "hash-a", "Original row must be untouched"

    def test_missing_email(self, store) -> None:
        with pytest.raises(NotFound):
            store.get_by_email("nobody@x.com")

    def test_missing_id(self, store) -> None:
        with pytest.raises(NotFound):
            store.get_by_id(999)

    def test_user_exists(self, store) -> None:
        user_id = store.create_user("a@x.com", "hash-a")
        assert store.user_exists(user_id) is True
        assert store.user_exists(user_id + 1) is False

    def test_delete_user(self, store) -> None:
        user_id = store.create_user("a@x.com", "hash-a")
        store.delete_user(user_id)
        assert store.user_exists(user_id) is False
        with pytest.raises(NotFound):
            store.get_by_email("a@x.com")

    def test_delete_frees_email(self, store) -> None:
        user_id = store.create_user("a@x.com", "hash-a")
        store.delete_user(user_id)
        assert store.create_user("a@x.com", "hash-b") != user_id

    def test_delete_missing_user(self, store) -> None:
        with pytest.raises(NotFound):
            store.delete_user(42)


class TestSqlUserStore:
    def test_concurrent_duplicate_registration(self, tmp_path: Path) -> None:
        """Eight threads race to register one email; exactly one succeeds."""
        engine = create_db_engine(f"sqlite:///{tmp_path / 'race.db'}")
        store = SqlUserStore(engine)

        def attempt(i: int):
            try:
                return store.create_user("race@x.com", f"hash-{i}")
            except DuplicateIdentity as exc:
                return exc

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(attempt, range(8)))
        engine.dispose()

        winners = [o for o in outcomes if isinstance(o, int)]
        losers = [o for o in outcomes if isinstance(o, DuplicateIdentity)]
        assert len(winners) == 1, f"Expected exactly one winner, got {outcomes}"
        assert len(losers) == 7

    def test_delete_cascades_to_notes(self) -> None:
        engine = create_db_engine("sqlite:///:memory:")
        users = SqlUserStore(engine)
        notes = SqlNoteStore(engine)
        user_id = users.create_user("a@x.com", "hash-a")
        other_id = users.create_user("b@x.com", "hash-b")
        owner = RequestIdentity(user_id=user_id)
        other = RequestIdentity(user_id=other_id)
        notes.create_note(owner, "t1", "c1")
        notes.create_note(owner, "t2", "c2")
        notes.create_note(other, "t3", "c3")

        users.delete_user(user_id)

        assert notes.list_notes(owner) == [], "Deleted user's notes must be gone"
        assert len(notes.list_notes(other)) == 1, "Other users' notes must survive"
        engine.dispose()

    def test_store_failure_is_tagged(self) -> None:
        engine = create_db_engine("sqlite:///:memory:")
        store = SqlUserStore(engine)
        with engine.begin() as conn:
            conn.exec_driver_sql("DROP TABLE notes")
            conn.exec_driver_sql("DROP TABLE users")
        with pytest.raises(StoreUnavailable) as exc_info:
            store.get_by_email("a@x.com")
        assert exc_info.value.op == "users.get_by_email"
        engine.dispose()
