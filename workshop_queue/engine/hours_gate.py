"""
Admission gate combining the manual open/closed toggle with the weekly
operating-hours schedule.

The gate checks before the queue operation takes the store lock, so a
toggle landing between the check and the admission does not stop that
one admission.
"""

from datetime import datetime
from typing import Optional

from workshop_queue.engine.clock import is_open_at, parse_hhmm
from workshop_queue.engine.context import WorkshopContext
from workshop_queue.engine.queue_service import QueueService
from workshop_queue.errors import ValidationError
from workshop_queue.logging_context import get_queue_logger, new_operation_id
from workshop_queue.schemas.queue_schema import (
    DaySchedule,
    OperatingHours,
    QueueEntry,
    QueueEvent,
    QueueEventType,
    QueueJoinRequest,
    Weekday,
)

logger = get_queue_logger(__name__)


class OperatingHoursGate:
    def __init__(self, ctx: WorkshopContext, service: QueueService) -> None:
        self._ctx = ctx
        self._store = ctx.store
        self._service = service

    # ------------------------------------------------------------------ #
    # Checks
    # ------------------------------------------------------------------ #

    def is_queue_open_based_on_hours(self, now: Optional[datetime] = None) -> bool:
        """Schedule only: enabled day and ``open <= time < close``."""
        now = now or self._ctx.clock()
        return is_open_at(now, self._store.status.operating_hours)

    def is_accepting(self, now: Optional[datetime] = None) -> bool:
        """Manual toggle AND schedule."""
        return self._store.status.is_open and self.is_queue_open_based_on_hours(now)

    def _require_accepting(self) -> None:
        now = self._ctx.clock()
        if not self._store.status.is_open:
            raise ValidationError("The queue is closed by staff")
        if not self.is_queue_open_based_on_hours(now):
            raise ValidationError(
                f"The workshop is outside its operating hours ({now.strftime('%A %H:%M')})"
            )

    # ------------------------------------------------------------------ #
    # Gated queue operations
    # ------------------------------------------------------------------ #

    async def add_to_queue(self, request: QueueJoinRequest, session_id: Optional[str] = None) -> str:
        """Admit a customer, optionally through a kiosk or phone intake session.

        A session yields one ticket. It is claimed before the admission and
        reopened if the admission does not complete.

        Raises:
            ValidationError: The workshop is not accepting, or the session is
                expired, already used or opened for another customer.
        """
        self._require_accepting()
        if session_id is None:
            return await self._service.add_to_queue(request)

        sessions = self._ctx.sessions
        session = sessions.get_session(session_id)
        if session is None or not sessions.validate_session(session_id):
            raise ValidationError(f"Intake session {session_id} is expired or already used")
        if session.user_id is not None and session.user_id != request.customer_id:
            raise ValidationError(f"Intake session {session_id} belongs to another customer")

        sessions.mark_ticket_generated(session_id)
        admitted = False
        try:
            entry_id = await self._service.add_to_queue(request)
            admitted = True
        finally:
            if not admitted:
                sessions.release_ticket(session_id)
        logger.info("Session %s produced entry %s", session_id, entry_id)
        return entry_id

    async def call_next(self, technician_id: Optional[str] = None) -> Optional[QueueEntry]:
        self._require_accepting()
        return await self._service.call_next(technician_id)

    # ------------------------------------------------------------------ #
    # Staff controls
    # ------------------------------------------------------------------ #

    async def toggle_queue_status(self) -> bool:
        """Flip the manual toggle. Returns the new value; hours are untouched."""
        new_operation_id("TOGGLE")
        async with self._store.lock:
            now = self._ctx.clock()
            checkpoint = self._store.checkpoint()
            self._store.set_open(not self._store.status.is_open)
            self._store.touch_status(now)
            await self._store.commit(checkpoint)
            status = self._store.status_snapshot()

        logger.info("Queue manually %s", "opened" if status.is_open else "closed")
        self._ctx.events.publish(
            QueueEvent(type=QueueEventType.STATUS_CHANGED, occurred_at=now, status=status)
        )
        return status.is_open

    async def update_operating_hours(self, hours: OperatingHours) -> None:
        """Replace the whole weekly schedule.

        Raises:
            ValidationError: A weekday is missing or a window is not ``open < close``.
        """
        new_operation_id("HOURS")
        validated = self._validate_hours(hours)
        async with self._store.lock:
            now = self._ctx.clock()
            checkpoint = self._store.checkpoint()
            self._store.set_operating_hours(validated)
            self._store.touch_status(now)
            await self._store.commit(checkpoint)
            status = self._store.status_snapshot()

        logger.info("Operating hours updated")
        self._ctx.events.publish(
            QueueEvent(type=QueueEventType.STATUS_CHANGED, occurred_at=now, status=status)
        )

    def get_operating_hours(self) -> OperatingHours:
        return self._store.status_snapshot().operating_hours

    @staticmethod
    def _validate_hours(hours: OperatingHours) -> OperatingHours:
        missing = [day.value for day in Weekday if day not in hours]
        if missing:
            raise ValidationError(f"Operating hours missing for: {', '.join(missing)}")

        validated: OperatingHours = {}
        for day in Weekday:
            schedule = hours[day]
            try:
                schedule = DaySchedule.model_validate(schedule.model_dump())
                opens, closes = parse_hhmm(schedule.open), parse_hhmm(schedule.close)
            except ValueError as exc:
                raise ValidationError(f"Invalid hours for {day.value}: {exc}") from exc
            if opens >= closes:
                raise ValidationError(
                    f"Opening time must be before closing time on {day.value} "
                    f"({schedule.open} >= {schedule.close})"
                )
            validated[day] = schedule
        return validated
