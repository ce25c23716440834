"""
Mock appointment book.

In production, this would be the scheduled-appointments collection of the
workshop backend.
"""

from typing import Iterable, Optional, Protocol

from workshop_queue.logging_context import get_queue_logger
from workshop_queue.schemas.workshop_schema import Appointment

logger = get_queue_logger(__name__)


class AppointmentBook(Protocol):
    def list_appointments(self) -> list[Appointment]: ...


class InMemoryAppointmentBook:
    def __init__(self, appointments: Iterable[Appointment] = ()) -> None:
        self._appointments: dict[str, Appointment] = {a.id: a for a in appointments}

    def add(self, appointment: Appointment) -> None:
        self._appointments[appointment.id] = appointment
        logger.debug("Appointment %s stored (%s)", appointment.id, appointment.status.value)

    def get(self, appointment_id: str) -> Optional[Appointment]:
        return self._appointments.get(appointment_id)

    def list_appointments(self) -> list[Appointment]:
        return list(self._appointments.values())
