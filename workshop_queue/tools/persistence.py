"""
In-memory queue repository.

In production, this would be the document database mirror of the queue
(one collection of queue entries plus a status document per workshop).
Every engine operation is written as one batch: the touched entries and,
optionally, the status document land together or not at all. The engine
expects read-after-write consistency from whatever backs it.
"""

import asyncio
from typing import Iterable, Optional, Protocol

from workshop_queue.logging_context import get_queue_logger
from workshop_queue.schemas.queue_schema import QueueEntry, QueueStatus

logger = get_queue_logger(__name__)


class QueueRepository(Protocol):
    """Durable mirror of one workshop's queue."""

    async def load(self) -> tuple[list[QueueEntry], Optional[QueueStatus]]: ...

    async def save_batch(
        self, entries: Iterable[QueueEntry], status: Optional[QueueStatus] = None
    ) -> None:
        """Write entries and the status atomically. A failed batch writes nothing."""
        ...


class InMemoryQueueRepository:
    """Dict-backed repository with failure injection for tests and demos."""

    def __init__(self) -> None:
        self._entries: dict[str, QueueEntry] = {}
        self._status: Optional[QueueStatus] = None
        self._failures_remaining = 0
        self._fail_after_entries = False
        self.save_calls = 0

    def fail_next(self, count: int = 1, after_entries: bool = False) -> None:
        """Make the next ``count`` batches raise ``ConnectionError``.

        With ``after_entries`` the failure happens once the entries are
        staged, just before the status document would be written.
        """
        self._failures_remaining = count
        self._fail_after_entries = after_entries

    def _maybe_fail(self, stage_is_after_entries: bool) -> None:
        if self._failures_remaining > 0 and self._fail_after_entries == stage_is_after_entries:
            self._failures_remaining -= 1
            raise ConnectionError("document store unavailable")

    async def load(self) -> tuple[list[QueueEntry], Optional[QueueStatus]]:
        await asyncio.sleep(0)
        entries = [e.model_copy(deep=True) for e in self._entries.values()]
        status = self._status.model_copy(deep=True) if self._status else None
        return entries, status

    async def save_batch(
        self, entries: Iterable[QueueEntry], status: Optional[QueueStatus] = None
    ) -> None:
        await asyncio.sleep(0)
        self.save_calls += 1
        self._maybe_fail(stage_is_after_entries=False)

        staged = dict(self._entries)
        for entry in entries:
            staged[entry.id] = entry.model_copy(deep=True)
        self._maybe_fail(stage_is_after_entries=True)

        self._entries = staged
        if status is not None:
            self._status = status.model_copy(deep=True)
        logger.debug("Batch saved (%d entries total, status=%s)", len(staged), status is not None)

    def get_entry(self, entry_id: str) -> Optional[QueueEntry]:
        """Inspect the durable copy of an entry."""
        return self._entries.get(entry_id)

    def get_status(self) -> Optional[QueueStatus]:
        return self._status
