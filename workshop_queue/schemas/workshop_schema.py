"""Technician, customer, appointment and work order models."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ManualAvailability(BaseModel):
    """Availability flag a technician (or their manager) sets by hand."""

    is_available: bool = True
    reason: Optional[str] = None


class Technician(BaseModel):
    """Staff member who can be assigned queue entries and appointments."""

    id: str
    name: str
    skills: list[str] = Field(default_factory=list)
    active: bool = True
    session_active: bool = False
    availability: Optional[ManualAvailability] = None


class Customer(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None


class MotorcycleAssignment(BaseModel):
    """A motorcycle registered to a customer."""

    id: str
    customer_id: str
    plate: str
    mileage_km: Optional[int] = None
    brand: str = "Unknown"
    model: str = "Unknown"
    year: Optional[int] = None
    created_at: Optional[datetime] = None


class AppointmentStatus(str, Enum):
    PENDING_APPROVAL = "pending_approval"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Appointment(BaseModel):
    id: str
    scheduled_at: datetime
    estimated_duration: int = 60
    service_types: list[str] = Field(default_factory=list)
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    assigned_to: Optional[str] = None
    customer_id: Optional[str] = None

    @property
    def ends_at(self) -> datetime:
        return self.scheduled_at + timedelta(minutes=self.estimated_duration)


class WorkOrderStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    WAITING_PARTS = "waiting_parts"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class WorkOrder(BaseModel):
    id: str
    number: str
    client_id: str
    vehicle_id: Optional[str] = None
    assigned_to: Optional[str] = None
    status: WorkOrderStatus = WorkOrderStatus.OPEN
    queue_entry_id: Optional[str] = None
    services: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class ServiceItem(BaseModel):
    """Catalog entry for a workshop service."""

    title: str
    description: str = ""
    required_skills: list[str] = Field(default_factory=list)
    estimated_duration: int = 60


class TechnicianStatus(str, Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    FULLY_BOOKED = "fully_booked"


@dataclass(frozen=True)
class ScheduleSnapshot:
    """Frozen view of technicians and their work, taken once per request."""

    technicians: tuple[Technician, ...] = ()
    appointments: tuple[Appointment, ...] = ()
    work_orders: tuple[WorkOrder, ...] = ()


@dataclass
class TechnicianWorkload:
    """Derived, never persisted: a technician's current load and status."""

    technician: Technician
    status: TechnicianStatus
    active_services: int
    is_available_for_assignment: bool
    active_appointments: list[Appointment] = field(default_factory=list)
    active_work_orders: list[WorkOrder] = field(default_factory=list)
    scheduled_appointments: list[Appointment] = field(default_factory=list)
