"""
Mock motorcycle registry.

In production, this would look up the customer's registered motorcycles
and create a quick assignment when a walk-in arrives with an unknown
plate.
"""

import uuid
from datetime import datetime
from typing import Callable, Optional, Protocol

from workshop_queue.logging_context import get_queue_logger
from workshop_queue.schemas.workshop_schema import MotorcycleAssignment
from workshop_queue.utils import normalize_plate

logger = get_queue_logger(__name__)


class MotorcycleRegistry(Protocol):
    def get(self, motorcycle_id: str) -> Optional[MotorcycleAssignment]: ...

    def get_by_plate(self, plate: str) -> Optional[MotorcycleAssignment]: ...

    def register_quick(
        self, customer_id: str, plate: str, mileage_km: Optional[int] = None
    ) -> MotorcycleAssignment: ...


class InMemoryMotorcycleRegistry:
    """Assignments keyed by id, with a secondary index on normalized plate."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock
        self._by_id: dict[str, MotorcycleAssignment] = {}
        self._by_plate: dict[str, str] = {}

    def add(self, assignment: MotorcycleAssignment) -> None:
        assignment.plate = normalize_plate(assignment.plate)
        self._by_id[assignment.id] = assignment
        self._by_plate[assignment.plate] = assignment.id

    def get(self, motorcycle_id: str) -> Optional[MotorcycleAssignment]:
        return self._by_id.get(motorcycle_id)

    def get_by_plate(self, plate: str) -> Optional[MotorcycleAssignment]:
        moto_id = self._by_plate.get(normalize_plate(plate))
        return self._by_id.get(moto_id) if moto_id else None

    def register_quick(
        self, customer_id: str, plate: str, mileage_km: Optional[int] = None
    ) -> MotorcycleAssignment:
        """Register an unknown plate with placeholder make and model."""
        now = self._clock()
        assignment = MotorcycleAssignment(
            id=f"moto_{uuid.uuid4().hex[:10]}",
            customer_id=customer_id,
            plate=plate,
            mileage_km=mileage_km,
            year=now.year,
            created_at=now,
        )
        self.add(assignment)
        logger.info("Quick motorcycle registration %s for customer %s", assignment.plate, customer_id)
        return assignment
