"""
Table-driven state machine for queue entry lifecycles.

    waiting -> called -> in_service -> served
    waiting -> cancelled | no_show
    called  -> served | cancelled

Every transition is one-way; nothing ever re-enters ``waiting``.

Usage:
    new_status = apply_trigger(entry.status, EntryTrigger.CALL)
    assert new_status == QueueEntryStatus.CALLED
"""

from dataclasses import dataclass
from enum import Enum

from workshop_queue.logging_context import get_queue_logger
from workshop_queue.schemas.queue_schema import QueueEntryStatus

logger = get_queue_logger(__name__)


class EntryTrigger(str, Enum):
    """Events that move a queue entry between statuses."""
    CALL = "call"
    START_SERVICE = "start_service"
    SERVE = "serve"
    CANCEL = "cancel"
    EXPIRE = "expire"


@dataclass(frozen=True)
class EntryTransition:
    from_status: QueueEntryStatus
    to_status: QueueEntryStatus
    trigger: EntryTrigger


class InvalidTransitionError(Exception):
    """Raised when a trigger is not valid from the entry's current status."""

    def __init__(self, status: QueueEntryStatus, trigger: EntryTrigger) -> None:
        self.status = status
        self.trigger = trigger
        valid = [t.value for t in valid_triggers(status)]
        super().__init__(
            f"No valid transition from '{status.value}' with trigger "
            f"'{trigger.value}'. Valid triggers: {valid}"
        )


TRANSITIONS: list[EntryTransition] = [
    EntryTransition(QueueEntryStatus.WAITING, QueueEntryStatus.CALLED, EntryTrigger.CALL),
    EntryTransition(QueueEntryStatus.WAITING, QueueEntryStatus.CANCELLED, EntryTrigger.CANCEL),
    EntryTransition(QueueEntryStatus.WAITING, QueueEntryStatus.NO_SHOW, EntryTrigger.EXPIRE),
    EntryTransition(QueueEntryStatus.CALLED, QueueEntryStatus.IN_SERVICE, EntryTrigger.START_SERVICE),
    EntryTransition(QueueEntryStatus.CALLED, QueueEntryStatus.SERVED, EntryTrigger.SERVE),
    EntryTransition(QueueEntryStatus.CALLED, QueueEntryStatus.CANCELLED, EntryTrigger.CANCEL),
    EntryTransition(QueueEntryStatus.IN_SERVICE, QueueEntryStatus.SERVED, EntryTrigger.SERVE),
]


def valid_triggers(status: QueueEntryStatus) -> list[EntryTrigger]:
    """Return all triggers valid from ``status``."""
    return [t.trigger for t in TRANSITIONS if t.from_status == status]


def apply_trigger(status: QueueEntryStatus, trigger: EntryTrigger) -> QueueEntryStatus:
    """Return the status reached from ``status`` via ``trigger``.

    Raises:
        InvalidTransitionError: If the table has no such transition.
    """
    for t in TRANSITIONS:
        if t.from_status == status and t.trigger == trigger:
            logger.debug(
                "Entry transition: %s -> %s (trigger: %s)",
                status.value, t.to_status.value, trigger.value,
            )
            return t.to_status
    raise InvalidTransitionError(status, trigger)
