"""
Technician selection for queue entries and appointments.

Selection is workload first: among technicians below the active-service
limit (and holding every required skill) the least busy wins, ties going
to directory order. Appointment auto-assignment re-checks the winner for
a time-slot clash and gives up rather than trying the runner-up.
"""

from datetime import datetime
from typing import Callable, Iterable, Optional

from workshop_queue.config import settings
from workshop_queue.engine.clock import intervals_overlap
from workshop_queue.logging_context import get_queue_logger
from workshop_queue.scheduling.workload import calculate_workloads, get_technician_workload
from workshop_queue.schemas.workshop_schema import (
    Appointment,
    AppointmentStatus,
    ScheduleSnapshot,
    Technician,
)
from workshop_queue.tools.services import get_required_skills

logger = get_queue_logger(__name__)


def has_required_skills(technician: Technician, required_skills: Iterable[str]) -> bool:
    """Every required skill must be present (AND semantics)."""
    return set(required_skills).issubset(technician.skills)


def is_session_available(
    technician: Technician,
    now: datetime,
    logout_hour: int = settings.queue.technician_logout_hour,
) -> bool:
    """Staff are reachable only with an active session and before the nightly logout."""
    if now.hour >= logout_hour:
        return False
    return technician.session_active


def has_time_conflict(appointment: Appointment, others: Iterable[Appointment]) -> bool:
    """True if ``appointment`` overlaps any other non-cancelled appointment."""
    for other in others:
        if other.id == appointment.id or other.status == AppointmentStatus.CANCELLED:
            continue
        if intervals_overlap(
            appointment.scheduled_at, appointment.ends_at, other.scheduled_at, other.ends_at
        ):
            return True
    return False


class TechnicianAssignmentSelector:
    """Read-only selector over snapshots supplied by ``snapshot_provider``."""

    def __init__(
        self,
        snapshot_provider: Callable[[], ScheduleSnapshot],
        clock: Callable[[], datetime] = datetime.now,
        max_active_services: int = settings.queue.max_active_services,
        logout_hour: int = settings.queue.technician_logout_hour,
    ) -> None:
        self._snapshot_provider = snapshot_provider
        self._clock = clock
        self.max_active_services = max_active_services
        self.logout_hour = logout_hour

    def find_best_available_technician(
        self,
        required_skills: Optional[list[str]] = None,
        snapshot: Optional[ScheduleSnapshot] = None,
    ) -> Optional[Technician]:
        """Least-busy available technician holding all ``required_skills``."""
        snapshot = snapshot or self._snapshot_provider()
        candidates = [
            w for w in calculate_workloads(snapshot, self.max_active_services)
            if w.is_available_for_assignment
        ]
        if required_skills:
            candidates = [w for w in candidates if has_required_skills(w.technician, required_skills)]

        # sorted() is stable, so equal workloads keep directory order
        candidates = sorted(candidates, key=lambda w: w.active_services)
        if not candidates:
            logger.info("No technician available for skills %s", required_skills or [])
            return None
        return candidates[0].technician

    def count_available_technicians(self, snapshot: Optional[ScheduleSnapshot] = None) -> int:
        snapshot = snapshot or self._snapshot_provider()
        return sum(
            1 for w in calculate_workloads(snapshot, self.max_active_services)
            if w.is_available_for_assignment
        )

    def can_assign_task(
        self, technician_id: str, snapshot: Optional[ScheduleSnapshot] = None
    ) -> bool:
        """Workload, session and manual availability must all allow it."""
        snapshot = snapshot or self._snapshot_provider()
        workload = get_technician_workload(technician_id, snapshot, self.max_active_services)
        if workload is None:
            return False

        technician = workload.technician
        workload_ok = workload.is_available_for_assignment
        session_ok = is_session_available(technician, self._clock(), self.logout_hour)
        manual_ok = technician.availability is None or technician.availability.is_available

        if not (workload_ok and session_ok and manual_ok):
            logger.debug(
                "Technician %s blocked: workload=%s session=%s manual=%s",
                technician_id, workload_ok, session_ok, manual_ok,
            )
        return workload_ok and session_ok and manual_ok

    def auto_assign_technician(
        self,
        appointment: Appointment,
        existing_appointments: Optional[list[Appointment]] = None,
        snapshot: Optional[ScheduleSnapshot] = None,
    ) -> Optional[str]:
        """Pick a technician id for ``appointment`` or None.

        Only the best candidate by workload is considered; if they already
        have an overlapping appointment the result is None.
        """
        snapshot = snapshot or self._snapshot_provider()
        if existing_appointments is None:
            existing_appointments = list(snapshot.appointments)

        primary_service = appointment.service_types[0] if appointment.service_types else ""
        required_skills = get_required_skills(primary_service) if primary_service else []

        best = self.find_best_available_technician(required_skills, snapshot)
        if best is None:
            return None

        own = [a for a in existing_appointments if a.assigned_to == best.id]
        if has_time_conflict(appointment, own):
            logger.info(
                "Best technician %s has a conflict at %s; appointment %s left unassigned",
                best.id, appointment.scheduled_at.isoformat(), appointment.id,
            )
            return None

        logger.info("Appointment %s auto-assigned to %s", appointment.id, best.id)
        return best.id
