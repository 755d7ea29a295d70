"""
api/routes/v1/notes.py -- Owner-scoped note CRUD routes.

Routes:
  POST   /notes             -- create a note owned by the caller
  GET    /notes             -- list the caller's notes
  GET    /notes/{note_id}   -- one note
  PUT    /notes/{note_id}   -- replace title and content
  DELETE /notes/{note_id}   -- remove a note; returns what was removed

Auth: get_request_identity is a router-level dependency, so every route here
rejects a missing or invalid bearer token with 401 before the handler (and
the store) is reached. Each handler also takes the identity as a parameter
and passes it to the store explicitly; the store filters every query by it.

A note owned by another user answers 404, exactly like a missing note. An
id outside 1..MAX_NOTE_ID is rejected as invalid input (400) before the
store is reached.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Path, Request

from api.models import NoteResponse, NoteWrite
from auth.dependencies import get_request_identity
from auth.models import RequestIdentity
from notes.store import MAX_NOTE_ID, NoteStore

logger = logging.getLogger("notesafe.notes")

router = APIRouter(dependencies=[Depends(get_request_identity)])


@router.post("/notes", response_model=NoteResponse, status_code=201)
def create_note(
    request: Request,
    body: NoteWrite,
    identity: RequestIdentity = Depends(get_request_identity),
) -> NoteResponse:
    store: NoteStore = request.app.state.note_store
    note = store.create_note(identity, body.title, body.content)
    logger.info("Note created (note_id=%d, user_id=%d)", note.id, identity.user_id)
    return NoteResponse.from_note(note)


@router.get("/notes", response_model=list[NoteResponse])
def list_notes(
    request: Request,
    identity: RequestIdentity = Depends(get_request_identity),
) -> list[NoteResponse]:
    """Return every note the caller owns, oldest first."""
    store: NoteStore = request.app.state.note_store
    return [NoteResponse.from_note(n) for n in store.list_notes(identity)]


@router.get("/notes/{note_id}", response_model=NoteResponse)
def get_note(
    request: Request,
    note_id: int = Path(ge=1, le=MAX_NOTE_ID),
    identity: RequestIdentity = Depends(get_request_identity),
) -> NoteResponse:
    store: NoteStore = request.app.state.note_store
    return NoteResponse.from_note(store.get_note(identity, note_id))


@router.put("/notes/{note_id}", response_model=NoteResponse)
def update_note(
    request: Request,
    body: NoteWrite,
    note_id: int = Path(ge=1, le=MAX_NOTE_ID),
    identity: RequestIdentity = Depends(get_request_identity),
) -> NoteResponse:
    store: NoteStore = request.app.state.note_store
    note = store.update_note(identity, note_id, body.title, body.content)
    logger.info("Note updated (note_id=%d, user_id=%d)", note_id, identity.user_id)
    return NoteResponse.from_note(note)


@router.delete("/notes/{note_id}", response_model=NoteResponse)
def delete_note(
    request: Request,
    note_id: int = Path(ge=1, le=MAX_NOTE_ID),
    identity: RequestIdentity = Depends(get_request_identity),
) -> NoteResponse:
    store: NoteStore = request.app.state.note_store
    note = store.delete_note(identity, note_id)
    logger.info("Note deleted (note_id=%d, user_id=%d)", note_id, identity.user_id)
    return NoteResponse.from_note(note)
