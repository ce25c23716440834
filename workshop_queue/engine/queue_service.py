"""
Queue state machine: admission, calling, service and cancellation.

Every mutating operation runs under the workshop store lock, commits to
memory, invalidates read caches and persists through the repository.
Events are published only after the write has succeeded, so subscribers
never observe a state that was later rolled back.

Usage:
    ctx = build_workshop("main", directory=directory)
    service = QueueService(ctx)
    await service.refresh()
    entry_id = await service.add_to_queue(QueueJoinRequest(...))
    called = await service.call_next("tech_1")
"""

import asyncio
import math
import uuid
from datetime import datetime
from typing import Iterable, Optional

from workshop_queue.engine.clock import minutes_between
from workshop_queue.engine.context import WorkshopContext
from workshop_queue.engine.filters import apply_filter
from workshop_queue.engine.statistics import compute_statistics
from workshop_queue.engine.transitions import EntryTrigger, InvalidTransitionError, apply_trigger
from workshop_queue.errors import (
    NotFoundError,
    PersistenceError,
    ValidationError,
    WorkOrderCreationError,
)
from workshop_queue.logging_context import get_queue_logger, new_operation_id
from workshop_queue.schemas.queue_schema import (
    ACTIVE_STATUSES,
    QueueEntry,
    QueueEntryStatus,
    QueueEvent,
    QueueEventType,
    QueueFilter,
    QueueJoinRequest,
    QueueStatistics,
    QueueStatus,
    ServiceType,
)
from workshop_queue.utils import display_name, normalize_plate

logger = get_queue_logger(__name__)

MAX_MILEAGE_KM = 1_000_000
FALLBACK_TECHNICIAN_NAME = "Assigned technician"


class QueueService:
    """Orchestrates queue entry lifecycles for one workshop."""

    def __init__(self, ctx: WorkshopContext) -> None:
        self._ctx = ctx
        self._store = ctx.store

    # ------------------------------------------------------------------ #
    # Loading
    # ------------------------------------------------------------------ #

    async def refresh(self) -> None:
        """Reload the authoritative queue view from the repository."""
        new_operation_id("LOAD")
        async with self._store.lock:
            await self._store.load(self._ctx.clock())

    # ------------------------------------------------------------------ #
    # Admission
    # ------------------------------------------------------------------ #

    async def add_to_queue(self, request: QueueJoinRequest) -> str:
        """Admit a customer at the end of the waiting line. Returns the entry id.

        Raises:
            ValidationError: Bad request data or missing motorcycle details.
            NotFoundError: Unknown customer or motorcycle.
            ConflictError: No free verification code could be drawn.
            PersistenceError: The entry could not be written; nothing was admitted.
        """
        new_operation_id("JOIN")
        self._validate_request(request)
        if self._ctx.directory.get_customer(request.customer_id) is None:
            raise NotFoundError(f"Customer {request.customer_id} not found")
        motorcycle_id, plate = self._resolve_motorcycle(request)
        available = self._available_technicians()

        async with self._store.lock:
            now = self._ctx.clock()
            checkpoint = self._store.checkpoint()

            position = len(self._store.waiting_line()) + 1
            live_codes = self._store.live_codes(now)
            ticket = self._ctx.tickets.issue(now, lambda code: code in live_codes)
            average = self._ctx.config.queue.average_service_minutes

            entry = QueueEntry(
                id=f"q_{uuid.uuid4().hex[:12]}",
                customer_id=request.customer_id,
                service_type=request.service_type,
                position=position,
                estimated_wait_time=math.ceil(position * average / max(1, available)),
                verification_code=ticket.code,
                expires_at=ticket.expires_at,
                joined_at=now,
                created_at=now,
                updated_at=now,
                motorcycle_id=motorcycle_id,
                plate=plate,
                mileage_km=request.mileage_km,
                notes=request.notes,
            )
            self._store.add(entry)
            changed = self._store.renumber()
            self._refresh_status(now)
            await self._store.commit(checkpoint, [entry, *changed])
            added = entry.model_copy(deep=True)

        logger.info(
            "Customer %s joined at position %d (code %s, ~%d min)",
            added.customer_id, added.position, added.verification_code, added.estimated_wait_time,
        )
        self._publish(QueueEventType.ENTRY_ADDED, now, entry=added)
        return added.id

    def _validate_request(self, request: QueueJoinRequest) -> None:
        if not request.customer_id or not request.customer_id.strip():
            raise ValidationError("customer_id is required")
        if request.mileage_km is not None and not 0 <= request.mileage_km <= MAX_MILEAGE_KM:
            raise ValidationError(
                f"mileage_km must be between 0 and {MAX_MILEAGE_KM}, got {request.mileage_km}"
            )

    def _resolve_motorcycle(self, request: QueueJoinRequest) -> tuple[Optional[str], Optional[str]]:
        """Return (motorcycle_id, plate), registering an unknown plate on the fly."""
        registry = self._ctx.motorcycles
        plate = normalize_plate(request.plate) if request.plate else None

        if request.motorcycle_id:
            moto = registry.get(request.motorcycle_id)
            if moto is None or moto.customer_id != request.customer_id:
                raise NotFoundError(
                    f"Motorcycle {request.motorcycle_id} not found for customer {request.customer_id}"
                )
            return moto.id, moto.plate

        if request.service_type != ServiceType.DIRECT_WORK_ORDER:
            return None, plate

        if not plate:
            raise ValidationError("A direct work order needs a motorcycle_id or a plate")

        moto = registry.get_by_plate(plate)
        if moto is None:
            moto = registry.register_quick(request.customer_id, plate, request.mileage_km)
        elif moto.customer_id != request.customer_id:
            raise ValidationError(f"Plate {plate} is registered to another customer")
        return moto.id, moto.plate

    def _available_technicians(self) -> int:
        try:
            return self._ctx.selector.count_available_technicians()
        except Exception as exc:
            logger.warning("Technician lookup failed, assuming one technician: %s", exc)
            return 1

    # ------------------------------------------------------------------ #
    # Calling
    # ------------------------------------------------------------------ #

    async def call_next(self, technician_id: Optional[str] = None) -> Optional[QueueEntry]:
        """Call the oldest waiting entry and open its work order.

        Returns the called entry, or None when nobody is waiting.

        Raises:
            ValidationError: No technician given and none is available.
            WorkOrderCreationError: The work order could not be created; the call was undone.
            PersistenceError: The call could not be written; the call was undone.
        """
        new_operation_id("CALL")
        async with self._store.lock:
            now = self._ctx.clock()
            waiting = self._store.waiting_line()
            if self._ctx.config.queue.expired_ticket_policy == "no_show":
                expired = [e for e in waiting if e.is_expired(now)]
            else:
                expired = []
            expired_ids = {e.id for e in expired}
            candidates = [e for e in waiting if e.id not in expired_ids]

            if candidates and technician_id is None:
                technician = self._ctx.selector.find_best_available_technician()
                if technician is None:
                    raise ValidationError("No technician available to take the next customer")
                technician_id = technician.id

            checkpoint = self._store.checkpoint()
            for entry in expired:
                self._move(entry, EntryTrigger.EXPIRE, now)
                logger.info("Ticket %s expired before call, marked no_show", entry.verification_code)

            if not candidates:
                if expired:
                    changed = self._store.renumber()
                    self._refresh_status(now)
                    await self._store.commit(checkpoint, [*expired, *changed])
                    self._publish_updates(self._copies(expired), now)
                logger.info("Call next: nobody waiting")
                return None

            entry = candidates[0]
            self._move(entry, EntryTrigger.CALL, now)
            entry.assigned_to = technician_id
            changed = self._store.renumber()
            self._refresh_status(now)

            try:
                order = await self._ctx.work_orders.create_from_queue_entry(
                    entry.model_copy(deep=True), technician_id
                )
            except asyncio.CancelledError:
                self._store.rollback(checkpoint)
                raise
            except Exception as exc:
                self._store.rollback(checkpoint)
                raise WorkOrderCreationError(
                    f"Work order creation failed for entry {entry.id}: {exc}"
                ) from exc

            entry.work_order_id = order.id
            try:
                await self._store.commit(checkpoint, [*expired, entry, *changed])
            except (PersistenceError, asyncio.CancelledError):
                await self._discard_work_order(order.id)
                raise
            called = entry.model_copy(deep=True)
            expired = self._copies(expired)

        logger.info(
            "Entry %s called by %s after %.0f min (work order %s)",
            called.id, technician_id, minutes_between(called.joined_at, now), order.number,
        )
        self._publish_updates(expired, now)
        self._publish(
            QueueEventType.CALLED, now, entry=called,
            technician_name=self._technician_name(technician_id),
        )
        return called

    async def _discard_work_order(self, work_order_id: str) -> None:
        try:
            await self._ctx.work_orders.discard(work_order_id)
        except Exception:
            logger.exception("Could not discard work order %s after failed queue write", work_order_id)

    def _technician_name(self, technician_id: str) -> str:
        try:
            technician = self._ctx.directory.get_technician(technician_id)
        except Exception as exc:
            logger.warning("Technician lookup failed for %s: %s", technician_id, exc)
            return FALLBACK_TECHNICIAN_NAME
        if technician is None or not technician.name.strip():
            return FALLBACK_TECHNICIAN_NAME
        return display_name(technician.name)

    # ------------------------------------------------------------------ #
    # Service lifecycle
    # ------------------------------------------------------------------ #

    async def start_service(self, entry_id: str) -> QueueEntry:
        """Move a called entry onto the workbench (``in_service``)."""
        return await self._transition(entry_id, EntryTrigger.START_SERVICE, "START")

    async def serve_entry(self, entry_id: str) -> QueueEntry:
        """Mark a called or in-service entry as served.

        Raises:
            NotFoundError: Unknown or already finished entry.
            ValidationError: The entry is still waiting.
        """
        return await self._transition(entry_id, EntryTrigger.SERVE, "SERVE")

    async def cancel_entry(self, entry_id: str) -> QueueEntry:
        """Cancel a waiting or called entry. Its record is kept for history.

        Raises:
            NotFoundError: Unknown or already finished entry.
            ValidationError: The entry is already in service.
        """
        return await self._transition(entry_id, EntryTrigger.CANCEL, "CANCEL")

    async def _transition(self, entry_id: str, trigger: EntryTrigger, op_prefix: str) -> QueueEntry:
        new_operation_id(op_prefix)
        async with self._store.lock:
            entry = self._store.get(entry_id)
            if entry is None or entry.is_terminal:
                raise NotFoundError(f"Queue entry {entry_id} not found or already finished")
            try:
                apply_trigger(entry.status, trigger)
            except InvalidTransitionError as exc:
                raise ValidationError(str(exc)) from exc

            now = self._ctx.clock()
            checkpoint = self._store.checkpoint()
            self._move(entry, trigger, now)
            changed = self._store.renumber()
            self._refresh_status(now)
            await self._store.commit(checkpoint, [entry, *changed])
            updated = entry.model_copy(deep=True)

        logger.info("Entry %s is now %s", updated.id, updated.status.value)
        self._publish(QueueEventType.ENTRY_UPDATED, now, entry=updated)
        return updated

    async def clear_queue(self) -> int:
        """Cancel every waiting and called entry. Returns how many were cancelled."""
        new_operation_id("CLEAR")
        async with self._store.lock:
            now = self._ctx.clock()
            active = [e for e in self._store.entries() if e.status in ACTIVE_STATUSES]
            if not active:
                return 0
            checkpoint = self._store.checkpoint()
            for entry in active:
                self._move(entry, EntryTrigger.CANCEL, now)
            self._refresh_status(now)
            await self._store.commit(checkpoint, active)
            cancelled = self._copies(active)

        logger.info("Queue cleared: %d entries cancelled", len(cancelled))
        self._publish_updates(cancelled, now)
        return len(cancelled)

    def _move(self, entry: QueueEntry, trigger: EntryTrigger, now: datetime) -> None:
        entry.status = apply_trigger(entry.status, trigger)
        entry.updated_at = now
        if entry.status != QueueEntryStatus.WAITING:
            entry.position = 0

    def _refresh_status(self, now: datetime) -> None:
        self._store.refresh_count()
        self._store.touch_status(now)

    # ------------------------------------------------------------------ #
    # Ticket lookups (never raise)
    # ------------------------------------------------------------------ #

    def is_code_valid(self, code: str) -> bool:
        return self.get_entry_by_code(code) is not None

    def get_entry_by_code(self, code: str) -> Optional[QueueEntry]:
        """Entry holding ``code`` whose ticket has not expired, else None."""
        now = self._ctx.clock()
        for entry in self._store.entries():
            if entry.verification_code == code and not entry.is_expired(now):
                return entry.model_copy(deep=True)
        return None

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get_entry(self, entry_id: str) -> Optional[QueueEntry]:
        return self._store.get_copy(entry_id)

    def get_queue_status(self) -> QueueStatus:
        return self._store.status_snapshot()

    def list_entries(self, queue_filter: Optional[QueueFilter] = None) -> list[QueueEntry]:
        """Filtered page of entries, served from the read cache when fresh."""
        queue_filter = queue_filter or QueueFilter()
        key = f"{self._store.cache_prefix}list:{queue_filter.model_dump_json()}"
        cached = self._ctx.cache.get(key)
        if cached is None:
            cached = apply_filter(
                self._store.snapshot(), queue_filter, self._ctx.config.queue.page_size
            )
            self._ctx.cache.set(key, cached, self._ctx.config.queue.read_cache_ttl_seconds)
        return [e.model_copy(deep=True) for e in cached]

    def get_statistics(self) -> QueueStatistics:
        key = f"{self._store.cache_prefix}stats"
        cached = self._ctx.cache.get(key)
        if cached is None:
            try:
                technician_count = len(self._ctx.directory.list_technicians())
            except Exception as exc:
                logger.warning("Technician lookup failed, utilization set to 0: %s", exc)
                technician_count = 0
            cached = compute_statistics(self._store.snapshot(), technician_count, self._ctx.clock())
            self._ctx.cache.set(key, cached, self._ctx.config.queue.read_cache_ttl_seconds)
        return cached.model_copy(deep=True)

    # ------------------------------------------------------------------ #
    # Events
    # ------------------------------------------------------------------ #

    def _publish(
        self,
        event_type: QueueEventType,
        now: datetime,
        entry: Optional[QueueEntry] = None,
        status: Optional[QueueStatus] = None,
        technician_name: Optional[str] = None,
    ) -> None:
        self._ctx.events.publish(
            QueueEvent(
                type=event_type,
                occurred_at=now,
                entry=entry,
                status=status,
                technician_name=technician_name,
            )
        )

    def _publish_updates(self, entries: list[QueueEntry], now: datetime) -> None:
        for entry in entries:
            self._publish(QueueEventType.ENTRY_UPDATED, now, entry=entry)

    @staticmethod
    def _copies(entries: Iterable[QueueEntry]) -> list[QueueEntry]:
        return [e.model_copy(deep=True) for e in entries]
