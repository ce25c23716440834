"""
Mock user directory.

In production, this would query the staff and customer records of the
workshop backend. The engine only ever reads from it.
"""

from typing import Iterable, Optional, Protocol

from workshop_queue.logging_context import get_queue_logger
from workshop_queue.schemas.workshop_schema import Customer, Technician

logger = get_queue_logger(__name__)


class UserDirectory(Protocol):
    """Read-only lookup of technicians and customers."""

    def list_technicians(self) -> list[Technician]: ...

    def get_technician(self, technician_id: str) -> Optional[Technician]: ...

    def get_customer(self, customer_id: str) -> Optional[Customer]: ...


class InMemoryDirectory:
    """Technicians and customers held in insertion-ordered dicts."""

    def __init__(
        self,
        technicians: Iterable[Technician] = (),
        customers: Iterable[Customer] = (),
    ) -> None:
        self._technicians: dict[str, Technician] = {t.id: t for t in technicians}
        self._customers: dict[str, Customer] = {c.id: c for c in customers}

    def add_technician(self, technician: Technician) -> None:
        self._technicians[technician.id] = technician

    def add_customer(self, customer: Customer) -> None:
        self._customers[customer.id] = customer

    def list_technicians(self) -> list[Technician]:
        return list(self._technicians.values())

    def get_technician(self, technician_id: str) -> Optional[Technician]:
        return self._technicians.get(technician_id)

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        customer = self._customers.get(customer_id)
        if customer is None:
            logger.debug("Customer %s not found", customer_id)
        return customer
