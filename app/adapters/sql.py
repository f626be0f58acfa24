"""Relational note storage over an SQLAlchemy ``AsyncSession``.

PostgreSQL gets session-scoped advisory locks and server-side statement
timeouts; other dialects (SQLite) fall back to a claim row in
``sweep_locks`` with a stale deadline.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from sqlalchemy import delete, insert, select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.base import NoteStorage
from app.exceptions import NoteIdCollision, StorageUnavailable
from app.models.note import Note
from app.models.sweep_lock import SweepLock

logger = logging.getLogger(__name__)

_NO_SYNC = {"synchronize_session": False}


class SqlNoteStorage(NoteStorage):
    def __init__(self, session: AsyncSession, dialect: str | None = None):
        self.session = session
        self.dialect = dialect or session.bind.dialect.name
        self._lock_holder: str | None = None

    @property
    def is_postgres(self) -> bool:
        return self.dialect == "postgresql"

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        """Translate backend failures into a generic storage error."""
        try:
            yield
        except (NoteIdCollision, StorageUnavailable):
            raise
        except (SQLAlchemyError, OSError) as exc:
            logger.exception("Storage operation %s failed", operation)
            try:
                await self.session.rollback()
            except (SQLAlchemyError, OSError):
                logger.warning("Rollback after failed %s also failed", operation)
            raise StorageUnavailable() from exc

    # ── Request path ────────────────────────────────────────────────

    async def insert(self, note: Note) -> None:
        async with self._guard("insert"):
            try:
                await self.session.execute(
                    insert(Note).values(
                        id=note.id,
                        message=note.message,
                        iv=note.iv,
                        salt=note.salt,
                        delete_token=note.delete_token,
                        expires_at=note.expires_at,
                        created_at=note.created_at,
                    )
                )
                await self.session.commit()
            except IntegrityError as exc:
                await self.session.rollback()
                raise NoteIdCollision() from exc

    async def get(self, note_id: str) -> Note | None:
        async with self._guard("get"):
            result = await self.session.execute(select(Note).where(Note.id == note_id))
            note = result.scalar_one_or_none()
            # End the read transaction so it holds no locks past the lookup
            await self.session.commit()
            return note

    async def delete_with_token(self, note_id: str, delete_token: str) -> bool:
        stmt = delete(Note).where(Note.id == note_id, Note.delete_token == delete_token)
        return await self._delete("delete_with_token", stmt) > 0

    async def delete_if_expired(self, note_id: str, now: datetime) -> bool:
        stmt = delete(Note).where(Note.id == note_id, Note.expires_at <= now)
        return await self._delete("delete_if_expired", stmt) > 0

    async def delete_expired_batch(self, now: datetime, limit: int) -> int:
        ids = select(Note.id).where(Note.expires_at <= now).limit(limit)
        if self.is_postgres:
            # Leave rows a concurrent request is deleting to that request
            ids = ids.with_for_update(skip_locked=True)
        return await self._delete("delete_expired_batch", delete(Note).where(Note.id.in_(ids)))

    async def _delete(self, operation: str, stmt) -> int:
        async with self._guard(operation):
            result = await self.session.execute(stmt.execution_options(**_NO_SYNC))
            await self.session.commit()
            return result.rowcount or 0

    # ── Sweep coordination ──────────────────────────────────────────

    async def try_acquire_sweep_lock(
        self, name: str, now: datetime, stale_after: timedelta
    ) -> bool:
        async with self._guard("acquire_sweep_lock"):
            if self.is_postgres:
                result = await self.session.execute(
                    text("SELECT pg_try_advisory_lock(hashtext(:name))"), {"name": name}
                )
                acquired = bool(result.scalar())
                await self.session.commit()
                return acquired

            holder = secrets.token_hex(16)
            deadline = now + stale_after
            # Take over a stale claim left by a crashed sweeper
            claim = (
                update(SweepLock)
                .where(SweepLock.name == name, SweepLock.expires_at <= now)
                .values(holder=holder, expires_at=deadline)
                .execution_options(**_NO_SYNC)
            )
            result = await self.session.execute(claim)
            if not result.rowcount:
                try:
                    await self.session.execute(
                        insert(SweepLock).values(name=name, holder=holder, expires_at=deadline)
                    )
                except IntegrityError:
                    await self.session.rollback()
                    return False
            await self.session.commit()
            self._lock_holder = holder
            return True

    async def release_sweep_lock(self, name: str) -> None:
        async with self._guard("release_sweep_lock"):
            # A timed-out batch may have left a transaction open
            await self.session.rollback()
            if self.is_postgres:
                result = await self.session.execute(
                    text("SELECT pg_advisory_unlock(hashtext(:name))"), {"name": name}
                )
                released = bool(result.scalar())
                await self.session.commit()
                if not released:
                    raise StorageUnavailable(f"Sweep lock {name!r} was not held at release")
                return

            if self._lock_holder is None:
                return
            await self.session.execute(
                delete(SweepLock)
                .where(SweepLock.name == name, SweepLock.holder == self._lock_holder)
                .execution_options(**_NO_SYNC)
            )
            await self.session.commit()
            self._lock_holder = None

    async def set_statement_timeout(self, seconds: float | None) -> None:
        if not self.is_postgres:
            return
        async with self._guard("set_statement_timeout"):
            if seconds is None:
                await self.session.execute(text("RESET statement_timeout"))
            else:
                await self.session.execute(
                    text("SELECT set_config('statement_timeout', :value, false)"),
                    {"value": str(int(seconds * 1000))},
                )
            # Session-level settings set inside a rolled-back transaction revert
            await self.session.commit()

    async def discard(self) -> None:
        conn = await self.session.connection()
        await conn.invalidate()
