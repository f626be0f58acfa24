"""Abstract base class for note storage backends.

Swap the relational backend for another store by implementing this
interface. Every mutating call is a single atomic conditional statement;
callers never read-then-delete.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from app.models.note import Note


class NoteStorage(ABC):
    """Contract that any note store must satisfy."""

    @abstractmethod
    async def insert(self, note: Note) -> None:
        """Insert one row. Raise ``NoteIdCollision`` if the id is taken."""

    @abstractmethod
    async def get(self, note_id: str) -> Note | None:
        """Return the note regardless of expiry, or None."""

    @abstractmethod
    async def delete_with_token(self, note_id: str, delete_token: str) -> bool:
        """Delete where id and token both match. True if a row went away."""

    @abstractmethod
    async def delete_if_expired(self, note_id: str, now: datetime) -> bool:
        """Delete the note only if ``expires_at <= now``."""

    @abstractmethod
    async def delete_expired_batch(self, now: datetime, limit: int) -> int:
        """Delete up to ``limit`` expired notes and return how many went."""

    @abstractmethod
    async def try_acquire_sweep_lock(
        self, name: str, now: datetime, stale_after: timedelta
    ) -> bool:
        """Non-blocking claim of the named sweep lock."""

    @abstractmethod
    async def release_sweep_lock(self, name: str) -> None:
        """Release a lock taken by this storage instance."""

    async def set_statement_timeout(self, seconds: float | None) -> None:
        """Bound each statement on this session; None resets. Optional."""

    async def discard(self) -> None:
        """Drop the underlying connection instead of returning it. Optional."""
