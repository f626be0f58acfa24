"""Sweep service — batch deletion of expired notes under a cross-process lock.

The sweep is garbage collection only: a failed or skipped run leaves
expired notes in place until the next run, and ``retrieve_note`` still
expires them individually on access.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import timedelta

from app.adapters.base import NoteStorage
from app.adapters.sql import SqlNoteStorage
from app.config import settings
from app.database import sweep_session
from app.schemas.sweep import SweepMetrics
from app.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)

StorageOpener = Callable[[], AbstractAsyncContextManager[NoteStorage]]


@asynccontextmanager
async def open_sweep_storage() -> AsyncIterator[NoteStorage]:
    async with sweep_session() as session:
        yield SqlNoteStorage(session)


async def run_sweep(
    open_storage: StorageOpener | None = None,
    *,
    batch_size: int | None = None,
    timeout: float | None = None,
    lock_name: str | None = None,
    clock: Clock = utcnow,
) -> SweepMetrics:
    """Run one sweep. Never raises; every failure lands in ``errors``."""
    metrics = SweepMetrics()
    open_storage = open_storage or open_sweep_storage
    try:
        async with open_storage() as storage:
            await _locked_sweep(
                storage,
                metrics,
                batch_size=batch_size or settings.sweep_batch_size,
                timeout=timeout or settings.sweep_timeout_seconds,
                lock_name=lock_name or settings.sweep_lock_name,
                clock=clock,
            )
    except Exception as exc:
        logger.exception("Sweep storage session failed")
        metrics.errors.append(_client_safe("Storage session error", exc))

    if metrics.deleted_count:
        logger.info("Sweep deleted %d expired notes", metrics.deleted_count)
    return metrics


async def _locked_sweep(
    storage: NoteStorage,
    metrics: SweepMetrics,
    *,
    batch_size: int,
    timeout: float,
    lock_name: str,
    clock: Clock,
) -> None:
    try:
        acquired = await storage.try_acquire_sweep_lock(
            lock_name, clock(), timedelta(seconds=settings.sweep_lock_stale_seconds)
        )
    except Exception as exc:
        logger.exception("Failed to acquire sweep lock")
        metrics.errors.append(_client_safe("Failed to acquire sweep lock", exc))
        return

    if not acquired:
        logger.info("Sweep lock %r held elsewhere, skipping", lock_name)
        metrics.success = True
        metrics.skipped = True
        return

    try:
        await storage.set_statement_timeout(timeout)
        await asyncio.wait_for(_delete_batches(storage, metrics, batch_size, clock), timeout)
        metrics.success = True
    except asyncio.TimeoutError:
        logger.error("Sweep timed out after %.0fs (%d deleted)", timeout, metrics.deleted_count)
        metrics.errors.append(f"Sweep timed out after {timeout:.0f}s")
    except Exception as exc:
        logger.exception("Sweep failed")
        metrics.errors.append(_client_safe("Sweep failed", exc))
    finally:
        await _release(storage, metrics, lock_name)


async def _delete_batches(
    storage: NoteStorage, metrics: SweepMetrics, batch_size: int, clock: Clock
) -> None:
    while True:
        deleted = await storage.delete_expired_batch(clock(), batch_size)
        metrics.deleted_count += deleted
        if deleted < batch_size:
            break


async def _release(storage: NoteStorage, metrics: SweepMetrics, lock_name: str) -> None:
    try:
        await storage.release_sweep_lock(lock_name)
    except Exception as exc:
        logger.exception("Failed to release sweep lock")
        metrics.errors.append(_client_safe("Failed to release sweep lock", exc))
        try:
            # A session-scoped lock dies with its connection
            await storage.discard()
        except Exception as discard_exc:
            logger.exception("Failed to discard sweep connection")
            metrics.errors.append(_client_safe("Failed to discard connection", discard_exc))
        return

    try:
        await storage.set_statement_timeout(None)
    except Exception as exc:
        logger.exception("Failed to reset statement timeout")
        metrics.errors.append(_client_safe("Failed to reset statement timeout", exc))


def _client_safe(label: str, exc: BaseException) -> str:
    # Metrics are returned by POST /api/cleanup; driver text stays in the log
    return f"{label}: {type(exc).__name__}"
