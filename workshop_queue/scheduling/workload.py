"""
Technician workload derived from live appointments and work orders.

Pure functions over a ScheduleSnapshot: no I/O, no clock, same input,
same output. A technician counts one active service per ``in_progress``
appointment and one per ``in_progress`` work order assigned to them.
"""

from typing import Optional

from workshop_queue.config import settings
from workshop_queue.logging_context import get_queue_logger
from workshop_queue.schemas.workshop_schema import (
    AppointmentStatus,
    ScheduleSnapshot,
    Technician,
    TechnicianStatus,
    TechnicianWorkload,
    WorkOrderStatus,
)

logger = get_queue_logger(__name__)


def classify_status(active_services: int, max_active_services: int) -> TechnicianStatus:
    if active_services >= max_active_services:
        return TechnicianStatus.FULLY_BOOKED
    if active_services > 0:
        return TechnicianStatus.BUSY
    return TechnicianStatus.AVAILABLE


def _workload_for(
    technician: Technician, snapshot: ScheduleSnapshot, max_active_services: int
) -> TechnicianWorkload:
    own_appointments = [a for a in snapshot.appointments if a.assigned_to == technician.id]
    active_appointments = [a for a in own_appointments if a.status == AppointmentStatus.IN_PROGRESS]
    scheduled = [a for a in own_appointments if a.status == AppointmentStatus.SCHEDULED]
    active_work_orders = [
        wo for wo in snapshot.work_orders
        if wo.assigned_to == technician.id and wo.status == WorkOrderStatus.IN_PROGRESS
    ]

    active_services = len(active_appointments) + len(active_work_orders)
    return TechnicianWorkload(
        technician=technician,
        status=classify_status(active_services, max_active_services),
        active_services=active_services,
        is_available_for_assignment=technician.active and active_services < max_active_services,
        active_appointments=active_appointments,
        active_work_orders=active_work_orders,
        scheduled_appointments=scheduled,
    )


def calculate_workloads(
    snapshot: ScheduleSnapshot,
    max_active_services: int = settings.queue.max_active_services,
) -> list[TechnicianWorkload]:
    """Workload of every technician, in directory order."""
    return [_workload_for(t, snapshot, max_active_services) for t in snapshot.technicians]


def get_technician_workload(
    technician_id: str,
    snapshot: ScheduleSnapshot,
    max_active_services: int = settings.queue.max_active_services,
) -> Optional[TechnicianWorkload]:
    for technician in snapshot.technicians:
        if technician.id == technician_id:
            return _workload_for(technician, snapshot, max_active_services)
    return None
