"""
notes/models.py -- Domain dataclass for notes.

Pure data container with zero logic. Ownership rules live in notes/store.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Note:
    """A note owned by exactly one user.

    owner_id is always stamped from the caller's RequestIdentity on create;
    it is never taken from client input.

    id is None before the record is written to the database.
    """

    owner_id: int
    title: str
    content: str
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
