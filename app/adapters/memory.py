"""In-memory note storage for tests and local experiments.

Several ``InMemoryNoteStorage`` instances can share one
``MemoryNoteBackend`` to stand in for separate sessions or processes
contending for the same rows and sweep lock.
"""

from __future__ import annotations

import asyncio
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from app.adapters.base import NoteStorage
from app.exceptions import NoteIdCollision
from app.models.note import Note


@dataclass
class MemoryNoteBackend:
    notes: dict[str, Note] = field(default_factory=dict)
    locks: dict[str, tuple[str, datetime]] = field(default_factory=dict)  # name -> (holder, stale at)
    mutex: asyncio.Lock = field(default_factory=asyncio.Lock)


class InMemoryNoteStorage(NoteStorage):
    def __init__(self, backend: MemoryNoteBackend | None = None):
        self.backend = backend or MemoryNoteBackend()
        self._lock_holder: str | None = None

    async def insert(self, note: Note) -> None:
        async with self.backend.mutex:
            if note.id in self.backend.notes:
                raise NoteIdCollision()
            self.backend.notes[note.id] = note

    async def get(self, note_id: str) -> Note | None:
        async with self.backend.mutex:
            return self.backend.notes.get(note_id)

    async def delete_with_token(self, note_id: str, delete_token: str) -> bool:
        async with self.backend.mutex:
            note = self.backend.notes.get(note_id)
            if note is None or not secrets.compare_digest(note.delete_token, delete_token):
                return False
            del self.backend.notes[note_id]
            return True

    async def delete_if_expired(self, note_id: str, now: datetime) -> bool:
        async with self.backend.mutex:
            note = self.backend.notes.get(note_id)
            if note is None or note.expires_at > now:
                return False
            del self.backend.notes[note_id]
            return True

    async def delete_expired_batch(self, now: datetime, limit: int) -> int:
        async with self.backend.mutex:
            expired = [nid for nid, n in self.backend.notes.items() if n.expires_at <= now][:limit]
            for note_id in expired:
                del self.backend.notes[note_id]
            return len(expired)

    async def try_acquire_sweep_lock(
        self, name: str, now: datetime, stale_after: timedelta
    ) -> bool:
        async with self.backend.mutex:
            current = self.backend.locks.get(name)
            if current is not None and current[1] > now:
                return False
            holder = secrets.token_hex(16)
            self.backend.locks[name] = (holder, now + stale_after)
            self._lock_holder = holder
            return True

    async def release_sweep_lock(self, name: str) -> None:
        async with self.backend.mutex:
            current = self.backend.locks.get(name)
            if current is not None and current[0] == self._lock_holder:
                del self.backend.locks[name]
            self._lock_holder = None
