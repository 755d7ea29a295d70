"""
API request and response models for NoteSafe REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
notes/models.py, which own the internal domain representation. Route handlers
map between the two.

Separation of concerns: domain dataclasses = domain truth; api/ models = API contract.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User
from notes.models import Note

# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    Empty strings pass schema validation on purpose: AuthService owns the
    "required" rule and reports it as ValidationFailed before touching the
    store. Whitespace is not stripped -- it is significant in passwords.
    """

    email: str = Field(max_length=255)
    password: str = Field(max_length=255)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: str = Field(max_length=255)
    password: str = Field(max_length=255)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of an account. Never carries the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, email=user.email)


class LoginResponse(BaseModel):
    """Response body for a successful login."""

    model_config = ConfigDict(frozen=True)

    email: str
    token: str
    token_type: str = "bearer"
    expires_in: int


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


class NoteWrite(BaseModel):
    """Request body for POST /api/v1/notes and PUT /api/v1/notes/{id}.

    Unknown fields are dropped (pydantic's default extra="ignore"), so an
    owner_id or user_id in the payload never reaches the store.
    """

    title: str = Field(default="", max_length=255)
    content: str = Field(min_length=1, max_length=100_000)


class NoteResponse(BaseModel):
    """A single note as returned to its owner."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    content: str
    created_at: str

    @classmethod
    def from_note(cls, note: Note) -> "NoteResponse":
        """Factory Method -- the mapping lives next to the output model."""
        return cls(
            id=note.id,
            title=note.title,
            content=note.content,
            created_at=note.created_at,
        )


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
