"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in notes/models.py -- dataclasses own domain shape; stores and services do
the work.

Layer rule: no imports from api/ or notes/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    email is stored exactly as submitted and compared case-sensitively, so
    "A@x.com" and "a@x.com" are distinct accounts.

    password_hash is a bcrypt digest. The plaintext password never reaches
    this class.
    """

    email: str
    password_hash: str
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class RequestIdentity:
    """The caller resolved from a verified bearer token.

    Created once per request by the identity dependency and passed explicitly
    to handlers and from handlers into every NoteStore call. Frozen so a
    handler cannot rewrite whose data it is touching.
    """

    user_id: int


@dataclass(frozen=True)
class LoginResult:
    """What a successful login hands back to the route layer."""

    user: User
    token: str
    expires_in: int
