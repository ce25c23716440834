"""Queue entry, queue status and queue event models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ServiceType(str, Enum):
    APPOINTMENT = "appointment"
    DIRECT_WORK_ORDER = "direct_work_order"


class QueueEntryStatus(str, Enum):
    """Lifecycle status of a queue entry."""

    WAITING = "waiting"
    CALLED = "called"
    IN_SERVICE = "in_service"
    SERVED = "served"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


TERMINAL_STATUSES = frozenset(
    {QueueEntryStatus.SERVED, QueueEntryStatus.CANCELLED, QueueEntryStatus.NO_SHOW}
)
ACTIVE_STATUSES = frozenset({QueueEntryStatus.WAITING, QueueEntryStatus.CALLED})


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class QueueJoinRequest(BaseModel):
    """Data submitted by the intake flow when a customer joins the queue."""

    customer_id: str
    service_type: ServiceType
    motorcycle_id: Optional[str] = None
    plate: Optional[str] = None
    mileage_km: Optional[int] = None
    notes: Optional[str] = None


class QueueEntry(BaseModel):
    """One customer's place in the live queue. Never hard-deleted."""

    id: str
    customer_id: str
    service_type: ServiceType
    status: QueueEntryStatus = QueueEntryStatus.WAITING
    position: int
    estimated_wait_time: int
    verification_code: str
    expires_at: datetime
    joined_at: datetime
    created_at: datetime
    updated_at: datetime
    motorcycle_id: Optional[str] = None
    plate: Optional[str] = None
    mileage_km: Optional[int] = None
    notes: Optional[str] = None
    assigned_to: Optional[str] = None
    work_order_id: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_expired(self, now: datetime) -> bool:
        """A ticket is invalid at or after its expiry instant."""
        return self.expires_at <= now


class DaySchedule(BaseModel):
    """Opening window for one weekday, local wall-clock time."""

    open: str = "07:00"
    close: str = "17:30"
    enabled: bool = True

    @field_validator("open", "close")
    @classmethod
    def _check_hhmm(cls, value: str) -> str:
        try:
            datetime.strptime(value, "%H:%M")
        except ValueError:
            raise ValueError(f"expected HH:MM, got {value!r}") from None
        return value


OperatingHours = dict[Weekday, DaySchedule]


class QueueStatus(BaseModel):
    """Workshop-wide queue state. One instance per workshop."""

    id: str = "singleton"
    is_open: bool = True
    current_count: int = 0
    average_wait_time: int = 0
    operating_hours: OperatingHours = Field(default_factory=dict)
    last_updated: Optional[datetime] = None


class QueueEventType(str, Enum):
    ENTRY_ADDED = "queue.entry_added"
    CALLED = "queue.called"
    ENTRY_UPDATED = "queue.entry_updated"
    STATUS_CHANGED = "queue.status_changed"


class QueueEvent(BaseModel):
    """Domain event published after a queue mutation has been committed."""

    type: QueueEventType
    occurred_at: datetime
    entry: Optional[QueueEntry] = None
    status: Optional[QueueStatus] = None
    technician_name: Optional[str] = None


class SortField(str, Enum):
    JOINED_AT = "joined_at"
    POSITION = "position"
    ESTIMATED_WAIT_TIME = "estimated_wait_time"
    STATUS = "status"


class QueueFilter(BaseModel):
    """Search, filter, sort and pagination options for listing entries."""

    search: str = ""
    statuses: list[QueueEntryStatus] = Field(default_factory=list)
    service_types: list[ServiceType] = Field(default_factory=list)
    assigned_to: list[str] = Field(default_factory=list)
    joined_from: Optional[datetime] = None
    joined_to: Optional[datetime] = None
    sort_by: Optional[SortField] = None
    descending: bool = False
    offset: int = 0
    limit: Optional[int] = None


class QueueStatistics(BaseModel):
    """Dashboard figures derived from the entry history."""

    total_entries: int = 0
    served_today: int = 0
    no_show_count: int = 0
    cancelled_count: int = 0
    current_queue_length: int = 0
    average_wait_time: float = 0.0
    peak_hour: str = "09:00"
    busiest_day: str = "Monday"
    technician_utilization: float = 0.0
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
