"""Shared test fixtures and helpers."""

import random
from datetime import datetime, timedelta
from typing import Optional

import pytest

from workshop_queue.config import AppConfig, QueueConfig
from workshop_queue.engine.context import build_workshop
from workshop_queue.engine.hours_gate import OperatingHoursGate
from workshop_queue.engine.queue_service import QueueService
from workshop_queue.schemas.queue_schema import (
    QueueEntry,
    QueueEntryStatus,
    QueueJoinRequest,
    ServiceType,
)
from workshop_queue.schemas.workshop_schema import (
    Appointment,
    AppointmentStatus,
    Customer,
    Technician,
    WorkOrder,
    WorkOrderStatus,
)
from workshop_queue.tools.directory import InMemoryDirectory

# 2025-03-17 is a Monday
MONDAY_9AM = datetime(2025, 3, 17, 9, 0)
SUNDAY_10AM = datetime(2025, 3, 16, 10, 0)

FAST_CONFIG = AppConfig(queue=QueueConfig(persist_retry_delay_ms=0))


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = MONDAY_9AM) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> datetime:
        self.now += timedelta(minutes=minutes, seconds=seconds)
        return self.now

    def set(self, moment: datetime) -> None:
        self.now = moment


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def directory():
    return InMemoryDirectory(
        technicians=[
            make_technician("tech1", "ana   lopez", ["basic_maintenance", "brakes"]),
            make_technician("tech2", "bruno diaz", ["electrical"]),
        ],
        customers=[Customer(id=f"cust_{i}", name=f"Customer {i}") for i in range(1, 11)],
    )


@pytest.fixture
def workshop(clock, directory):
    return build_workshop(
        "main",
        config=FAST_CONFIG,
        clock=clock,
        directory=directory,
        rng=random.Random(42),
    )


@pytest.fixture
def service(workshop):
    return QueueService(workshop)


@pytest.fixture
def gate(workshop, service):
    return OperatingHoursGate(workshop, service)


def make_technician(
    tech_id: str,
    name: str = "Test Technician",
    skills: Optional[list[str]] = None,
    active: bool = True,
    session_active: bool = True,
) -> Technician:
    return Technician(
        id=tech_id,
        name=name,
        skills=skills or [],
        active=active,
        session_active=session_active,
    )


def make_appointment(
    appointment_id: str,
    assigned_to: Optional[str] = None,
    start: datetime = MONDAY_9AM,
    duration: int = 60,
    status: AppointmentStatus = AppointmentStatus.SCHEDULED,
    service_types: Optional[list[str]] = None,
) -> Appointment:
    return Appointment(
        id=appointment_id,
        assigned_to=assigned_to,
        scheduled_at=start,
        estimated_duration=duration,
        status=status,
        service_types=service_types or ["General maintenance"],
    )


def make_work_order(
    order_id: str,
    assigned_to: str,
    status: WorkOrderStatus = WorkOrderStatus.IN_PROGRESS,
) -> WorkOrder:
    return WorkOrder(
        id=order_id,
        number=f"WO-202503-{order_id[-4:]:0>4}",
        client_id="cust_1",
        assigned_to=assigned_to,
        status=status,
    )


def make_request(
    customer_id: str = "cust_1",
    service_type: ServiceType = ServiceType.APPOINTMENT,
    **kwargs,
) -> QueueJoinRequest:
    """Helper to create a QueueJoinRequest with sensible defaults."""
    return QueueJoinRequest(customer_id=customer_id, service_type=service_type, **kwargs)


def make_entry(
    entry_id: str,
    status: QueueEntryStatus = QueueEntryStatus.WAITING,
    joined_at: datetime = MONDAY_9AM,
    position: int = 1,
    code: str = "1234",
    **kwargs,
) -> QueueEntry:
    """Helper to build a QueueEntry directly, bypassing the service."""
    return QueueEntry(
        id=entry_id,
        customer_id=kwargs.pop("customer_id", "cust_1"),
        service_type=kwargs.pop("service_type", ServiceType.APPOINTMENT),
        status=status,
        position=position,
        estimated_wait_time=kwargs.pop("estimated_wait_time", 30),
        verification_code=code,
        expires_at=kwargs.pop("expires_at", joined_at + timedelta(minutes=15)),
        joined_at=joined_at,
        created_at=joined_at,
        updated_at=kwargs.pop("updated_at", joined_at),
        **kwargs,
    )


async def admit(service: QueueService, clock: FrozenClock, *customer_ids: str) -> list[str]:
    """Admit customers one minute apart. Returns their entry ids in order."""
    ids = []
    for customer_id in customer_ids:
        ids.append(await service.add_to_queue(make_request(customer_id)))
        clock.advance(minutes=1)
    return ids
