"""
Authoritative in-memory view of one workshop's queue.

The store is the only object that mutates queue entries and the queue
status. Callers take ``store.lock`` for the whole of a mutating operation;
positions and verification codes are cross-entry invariants and cannot be
kept with per-entry locking.

Mutations are committed in memory first and then written through the
repository as one batch with bounded retry. A write that finally fails, or
is cancelled, is undone with ``rollback(checkpoint)`` before the error
reaches the caller.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from workshop_queue.config import settings
from workshop_queue.errors import PersistenceError
from workshop_queue.logging_context import get_queue_logger
from workshop_queue.schemas.queue_schema import (
    ACTIVE_STATUSES,
    OperatingHours,
    QueueEntry,
    QueueEntryStatus,
    QueueStatus,
)
from workshop_queue.tools.cache import ReadCache
from workshop_queue.tools.persistence import QueueRepository

logger = get_queue_logger(__name__)


@dataclass(frozen=True)
class StoreCheckpoint:
    """Deep copy of the store taken before a mutation."""

    entries: dict[str, QueueEntry]
    status: QueueStatus


class QueueStore:
    def __init__(
        self,
        repository: QueueRepository,
        cache: Optional[ReadCache] = None,
        cache_prefix: str = "queue:",
        default_hours: Optional[OperatingHours] = None,
        average_service_minutes: int = settings.queue.average_service_minutes,
        persist_max_attempts: int = settings.queue.persist_max_attempts,
        persist_retry_delay_ms: int = settings.queue.persist_retry_delay_ms,
    ) -> None:
        self._repository = repository
        self._cache = cache
        self.cache_prefix = cache_prefix
        self._entries: dict[str, QueueEntry] = {}
        self._status = QueueStatus(operating_hours=dict(default_hours or {}))
        self._average_service_minutes = average_service_minutes
        self._persist_max_attempts = persist_max_attempts
        self._persist_retry_delay_ms = persist_retry_delay_ms
        self.lock = asyncio.Lock()

    # ------------------------------------------------------------------ #
    # Loading
    # ------------------------------------------------------------------ #

    async def load(self, now: datetime) -> None:
        """Replace the in-memory view with the repository contents.

        A workshop with no stored status gets the default one, which is
        written back immediately.
        """
        entries, status = await self._repository.load()
        self._entries = {
            e.id: e for e in sorted(entries, key=lambda e: (e.joined_at, e.position))
        }
        if status is None:
            status = self._status.model_copy(deep=True)
            status.last_updated = now
            self._status = status
            self.refresh_count()
            await self.persist(status=True)
        else:
            self._status = status
        self.invalidate_reads()
        logger.info("Queue loaded: %d entries, %d active", len(self._entries), self._status.current_count)

    # ------------------------------------------------------------------ #
    # Reads (return copies)
    # ------------------------------------------------------------------ #

    def snapshot(self) -> list[QueueEntry]:
        return [e.model_copy(deep=True) for e in self._entries.values()]

    def status_snapshot(self) -> QueueStatus:
        return self._status.model_copy(deep=True)

    def get_copy(self, entry_id: str) -> Optional[QueueEntry]:
        entry = self._entries.get(entry_id)
        return entry.model_copy(deep=True) if entry else None

    # ------------------------------------------------------------------ #
    # Internal views for operations holding the lock
    # ------------------------------------------------------------------ #

    def get(self, entry_id: str) -> Optional[QueueEntry]:
        return self._entries.get(entry_id)

    def entries(self) -> list[QueueEntry]:
        return list(self._entries.values())

    @property
    def status(self) -> QueueStatus:
        return self._status

    def waiting_line(self) -> list[QueueEntry]:
        """Waiting entries, oldest first (join time, then position)."""
        waiting = [e for e in self._entries.values() if e.status == QueueEntryStatus.WAITING]
        return sorted(waiting, key=lambda e: (e.joined_at, e.position))

    def active_count(self) -> int:
        return sum(1 for e in self._entries.values() if e.status in ACTIVE_STATUSES)

    def live_codes(self, now: datetime) -> set[str]:
        """Verification codes of every entry whose ticket has not expired."""
        return {e.verification_code for e in self._entries.values() if not e.is_expired(now)}

    # ------------------------------------------------------------------ #
    # Mutations (caller holds the lock)
    # ------------------------------------------------------------------ #

    def add(self, entry: QueueEntry) -> None:
        self._entries[entry.id] = entry

    def renumber(self) -> list[QueueEntry]:
        """Densely renumber the waiting line from 1. Returns entries whose position changed."""
        changed = []
        for index, entry in enumerate(self.waiting_line(), start=1):
            if entry.position != index:
                entry.position = index
                changed.append(entry)
        return changed

    def refresh_count(self) -> None:
        count = self.active_count()
        self._status.current_count = count
        self._status.average_wait_time = count * self._average_service_minutes

    def touch_status(self, now: datetime) -> None:
        self._status.last_updated = now

    def set_open(self, is_open: bool) -> None:
        self._status.is_open = is_open

    def set_operating_hours(self, hours: OperatingHours) -> None:
        self._status.operating_hours = dict(hours)

    def checkpoint(self) -> StoreCheckpoint:
        return StoreCheckpoint(
            entries={k: v.model_copy(deep=True) for k, v in self._entries.items()},
            status=self._status.model_copy(deep=True),
        )

    def rollback(self, checkpoint: StoreCheckpoint) -> None:
        self._entries = {k: v.model_copy(deep=True) for k, v in checkpoint.entries.items()}
        self._status = checkpoint.status.model_copy(deep=True)
        self.invalidate_reads()
        logger.warning("Queue state rolled back to checkpoint")

    def invalidate_reads(self) -> None:
        if self._cache is not None:
            self._cache.invalidate(self.cache_prefix)

    # ------------------------------------------------------------------ #
    # Durable writes
    # ------------------------------------------------------------------ #

    async def persist(self, entries: Iterable[QueueEntry] = (), status: bool = False) -> None:
        """Write entries (and optionally the status) as one batch, with retry and backoff.

        Raises:
            PersistenceError: If the last attempt still fails.
        """
        batch = list({e.id: e for e in entries}.values())
        last_error: Optional[Exception] = None

        for attempt in range(self._persist_max_attempts):
            try:
                await self._repository.save_batch(batch, self._status if status else None)
                return
            except Exception as exc:
                last_error = exc
                if attempt < self._persist_max_attempts - 1:
                    delay = self._persist_retry_delay_ms * (2 ** attempt) / 1000
                    logger.warning(
                        "Queue write failed (attempt %d/%d): %s; retrying in %.2fs",
                        attempt + 1, self._persist_max_attempts, exc, delay,
                    )
                    await asyncio.sleep(delay)

        raise PersistenceError(
            f"Queue write failed after {self._persist_max_attempts} attempts: {last_error}"
        ) from last_error

    async def commit(
        self, checkpoint: StoreCheckpoint, entries: Iterable[QueueEntry] = (), status: bool = True
    ) -> None:
        """Publish an in-memory change: drop cached reads, persist, undo on failure or cancellation."""
        self.invalidate_reads()
        try:
            await self.persist(entries, status=status)
        except (PersistenceError, asyncio.CancelledError):
            self.rollback(checkpoint)
            raise
