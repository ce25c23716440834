"""
Per-workshop wiring of the queue engine and its collaborators.

Each workshop gets its own context; several can live in one process
without sharing any state. ``build_workshop`` fills every collaborator
left unspecified with its in-memory implementation.
"""

import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from workshop_queue.config import AppConfig, settings
from workshop_queue.engine.clock import Clock, default_operating_hours
from workshop_queue.engine.intake_session import IntakeSessionManager
from workshop_queue.engine.queue_store import QueueStore
from workshop_queue.engine.ticket import TicketGenerator
from workshop_queue.logging_context import get_queue_logger
from workshop_queue.schemas.workshop_schema import ScheduleSnapshot
from workshop_queue.scheduling.assignment import TechnicianAssignmentSelector
from workshop_queue.tools.appointments import AppointmentBook, InMemoryAppointmentBook
from workshop_queue.tools.cache import MemoryCache, ReadCache
from workshop_queue.tools.directory import InMemoryDirectory, UserDirectory
from workshop_queue.tools.events import EventBus
from workshop_queue.tools.motorcycles import InMemoryMotorcycleRegistry, MotorcycleRegistry
from workshop_queue.tools.persistence import InMemoryQueueRepository, QueueRepository
from workshop_queue.tools.work_orders import InMemoryWorkOrders, WorkOrderGateway

logger = get_queue_logger(__name__)


@dataclass
class WorkshopContext:
    workshop_id: str
    config: AppConfig
    clock: Clock
    store: QueueStore
    repository: QueueRepository
    work_orders: WorkOrderGateway
    directory: UserDirectory
    motorcycles: MotorcycleRegistry
    appointments: AppointmentBook
    events: EventBus
    cache: ReadCache
    tickets: TicketGenerator
    sessions: IntakeSessionManager
    selector: TechnicianAssignmentSelector = field(init=False)

    def __post_init__(self) -> None:
        self.selector = TechnicianAssignmentSelector(
            snapshot_provider=self.schedule_snapshot,
            clock=self.clock,
            max_active_services=self.config.queue.max_active_services,
            logout_hour=self.config.queue.technician_logout_hour,
        )

    def schedule_snapshot(self) -> ScheduleSnapshot:
        """Freeze the current technicians, appointments and work orders."""
        return ScheduleSnapshot(
            technicians=tuple(self.directory.list_technicians()),
            appointments=tuple(self.appointments.list_appointments()),
            work_orders=tuple(self.work_orders.list_work_orders()),
        )


def build_workshop(
    workshop_id: str = "main",
    config: AppConfig = settings,
    clock: Clock = datetime.now,
    repository: Optional[QueueRepository] = None,
    work_orders: Optional[WorkOrderGateway] = None,
    directory: Optional[UserDirectory] = None,
    motorcycles: Optional[MotorcycleRegistry] = None,
    appointments: Optional[AppointmentBook] = None,
    events: Optional[EventBus] = None,
    cache: Optional[ReadCache] = None,
    rng: Optional[random.Random] = None,
) -> WorkshopContext:
    """Create a workshop context. Call ``QueueService.refresh()`` to load stored state."""
    repository = repository or InMemoryQueueRepository()
    cache = cache or MemoryCache(clock)
    queue_cfg = config.queue

    store = QueueStore(
        repository=repository,
        cache=cache,
        cache_prefix=f"queue:{workshop_id}:",
        default_hours=default_operating_hours(
            config.workshop.default_open_time, config.workshop.default_close_time
        ),
        average_service_minutes=queue_cfg.average_service_minutes,
        persist_max_attempts=queue_cfg.persist_max_attempts,
        persist_retry_delay_ms=queue_cfg.persist_retry_delay_ms,
    )

    ctx = WorkshopContext(
        workshop_id=workshop_id,
        config=config,
        clock=clock,
        store=store,
        repository=repository,
        work_orders=work_orders or InMemoryWorkOrders(clock),
        directory=directory or InMemoryDirectory(),
        motorcycles=motorcycles or InMemoryMotorcycleRegistry(clock),
        appointments=appointments or InMemoryAppointmentBook(),
        events=events or EventBus(),
        cache=cache,
        tickets=TicketGenerator(
            rng=rng,
            ttl_minutes=queue_cfg.ticket_ttl_minutes,
            max_attempts=queue_cfg.code_max_attempts,
        ),
        sessions=IntakeSessionManager(clock, queue_cfg.intake_session_minutes),
    )
    logger.info("Workshop context '%s' built", workshop_id)
    return ctx
