"""Note service — create, single-read retrieve and token-authorized delete."""

from __future__ import annotations

import logging
from datetime import timedelta

from app.adapters.base import NoteStorage
from app.config import settings
from app.exceptions import (
    NoteExpired,
    NoteIdCollision,
    NoteNotFound,
    NoteValidationError,
)
from app.models.note import Note
from app.schemas.note import DeleteResult, NoteCreate, NoteCreated, NoteData
from app.utils.clock import Clock, utcnow
from app.utils.ids import is_valid_delete_token, is_valid_id, new_delete_token, new_id
from app.utils.timing import ResponseFloor

logger = logging.getLogger(__name__)


def note_url(note_id: str) -> str:
    return f"/note/{note_id}"


def _response_floor(min_seconds: float | None) -> ResponseFloor:
    if min_seconds is None:
        min_seconds = settings.min_response_ms / 1000
    return ResponseFloor(min_seconds)


async def create_note(
    storage: NoteStorage, data: NoteCreate, *, clock: Clock = utcnow
) -> NoteCreated:
    attempts = max(settings.create_attempts, 1)
    for attempt in range(1, attempts + 1):
        now = clock()
        note = Note(
            id=new_id(),
            message=data.message,
            iv=data.iv,
            salt=data.salt or None,
            delete_token=new_delete_token(),
            expires_at=now + timedelta(milliseconds=data.expiry),
            created_at=now,
        )
        try:
            await storage.insert(note)
        except NoteIdCollision:
            logger.warning("Note id collision on attempt %d/%d", attempt, attempts)
            continue
        logger.info("Note created: %s (%d chars, expires %s)", note.id, len(note.message), note.expires_at)
        return NoteCreated(id=note.id, url=note_url(note.id), delete_token=note.delete_token)

    raise NoteIdCollision()


async def retrieve_note(
    storage: NoteStorage,
    note_id: str,
    *,
    clock: Clock = utcnow,
    min_seconds: float | None = None,
) -> NoteData:
    """Return the ciphertext and delete token, or raise.

    An expired note is deleted on the spot and reported as expired
    rather than missing.
    """
    async with _response_floor(min_seconds):
        if not is_valid_id(note_id):
            raise NoteValidationError("Invalid note ID format")

        note = await storage.get(note_id)
        if note is None:
            raise NoteNotFound()

        now = clock()
        if note.expires_at <= now:
            if await storage.delete_if_expired(note_id, now):
                logger.info("Lazily expired note %s", note_id)
            raise NoteExpired()

        return NoteData(
            id=note.id,
            message=note.message,
            iv=note.iv,
            salt=note.salt,
            delete_token=note.delete_token,
        )


async def delete_note(
    storage: NoteStorage,
    note_id: str,
    delete_token: str | None,
    *,
    min_seconds: float | None = None,
) -> DeleteResult:
    """Atomic delete by id and token.

    A wrong token and a missing note produce the same error so neither
    content nor timing reveals whether the id exists.
    """
    async with _response_floor(min_seconds):
        if not is_valid_id(note_id):
            raise NoteValidationError("Invalid note ID format")
        if not delete_token:
            raise NoteValidationError("Delete token is required")
        if not is_valid_delete_token(delete_token):
            raise NoteValidationError("Invalid delete token length")

        if not await storage.delete_with_token(note_id, delete_token):
            raise NoteNotFound("Note not found or invalid delete token")

        logger.info("Deleted note: %s", note_id)
        return DeleteResult(success=True)
