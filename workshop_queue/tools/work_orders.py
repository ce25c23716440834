"""
Mock work-order system.

In production, this would create the billable job record in the workshop
management backend when a queue entry is called.
"""

import asyncio
import uuid
from datetime import datetime
from typing import Callable, Optional, Protocol

from workshop_queue.logging_context import get_queue_logger
from workshop_queue.schemas.queue_schema import QueueEntry, ServiceType
from workshop_queue.schemas.workshop_schema import WorkOrder, WorkOrderStatus

logger = get_queue_logger(__name__)


class WorkOrderGateway(Protocol):
    """Creates work orders from called queue entries."""

    async def create_from_queue_entry(
        self, entry: QueueEntry, technician_id: str
    ) -> WorkOrder: ...

    async def discard(self, work_order_id: str) -> None: ...

    def list_work_orders(self) -> list[WorkOrder]: ...


class InMemoryWorkOrders:
    """Work orders kept in a dict, numbered ``WO-YYYYMM-NNNN`` per month.

    Creation is idempotent per queue entry: calling twice for the same
    entry returns the work order created the first time.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock
        self._orders: dict[str, WorkOrder] = {}
        self._by_entry: dict[str, str] = {}
        self._failures_remaining = 0

    def fail_next(self, count: int = 1) -> None:
        """Make the next ``count`` creations raise ``RuntimeError``."""
        self._failures_remaining = count

    def _next_number(self, now: datetime) -> str:
        prefix = f"WO-{now.year}{now.month:02d}-"
        this_month = sum(1 for wo in self._orders.values() if wo.number.startswith(prefix))
        return f"{prefix}{this_month + 1:04d}"

    async def create_from_queue_entry(self, entry: QueueEntry, technician_id: str) -> WorkOrder:
        await asyncio.sleep(0)
        if self._failures_remaining > 0:
            self._failures_remaining -= 1
            raise RuntimeError("work order backend rejected the request")

        existing_id = self._by_entry.get(entry.id)
        if existing_id and existing_id in self._orders:
            return self._orders[existing_id]

        now = self._clock()
        services = ["Walk-in inspection"] if entry.service_type == ServiceType.DIRECT_WORK_ORDER else []
        order = WorkOrder(
            id=f"wo_{uuid.uuid4().hex[:10]}",
            number=self._next_number(now),
            client_id=entry.customer_id,
            vehicle_id=entry.motorcycle_id,
            assigned_to=technician_id,
            status=WorkOrderStatus.OPEN,
            queue_entry_id=entry.id,
            services=services,
            created_at=now,
        )
        self._orders[order.id] = order
        self._by_entry[entry.id] = order.id
        logger.info("Work order %s created for entry %s (tech %s)", order.number, entry.id, technician_id)
        return order

    async def discard(self, work_order_id: str) -> None:
        """Cancel a work order whose queue transition could not be committed."""
        await asyncio.sleep(0)
        order = self._orders.get(work_order_id)
        if order is None:
            return
        order.status = WorkOrderStatus.CANCELLED
        if order.queue_entry_id:
            self._by_entry.pop(order.queue_entry_id, None)
        logger.info("Work order %s discarded", order.number)

    def add(self, order: WorkOrder) -> None:
        """Seed an existing work order (e.g. one already in progress)."""
        self._orders[order.id] = order

    def get(self, work_order_id: str) -> Optional[WorkOrder]:
        return self._orders.get(work_order_id)

    def list_work_orders(self) -> list[WorkOrder]:
        return list(self._orders.values())
