"""
In-process publish/subscribe channel for queue domain events.

In production, subscribers would forward events to dashboards and to the
push/SMS notification senders. Publishing never waits on a subscriber and
a failing subscriber never reaches the engine.
"""

from collections import deque
from typing import Callable, Optional

from workshop_queue.logging_context import get_queue_logger
from workshop_queue.schemas.queue_schema import QueueEvent, QueueEventType

logger = get_queue_logger(__name__)

EventHandler = Callable[[QueueEvent], None]


class EventBus:
    """Synchronous fan-out to registered handlers.

    The most recent ``history_limit`` events are kept for inspection; older
    ones are dropped. A limit of 0 keeps nothing.
    """

    def __init__(self, history_limit: int = 200) -> None:
        self._handlers: list[tuple[Optional[QueueEventType], EventHandler]] = []
        self.history: deque[QueueEvent] = deque(maxlen=history_limit)

    def subscribe(
        self, handler: EventHandler, event_type: Optional[QueueEventType] = None
    ) -> Callable[[], None]:
        """Register a handler for one event type (or all). Returns an unsubscribe callable."""
        registration = (event_type, handler)
        self._handlers.append(registration)

        def unsubscribe() -> None:
            if registration in self._handlers:
                self._handlers.remove(registration)

        return unsubscribe

    def publish(self, event: QueueEvent) -> None:
        self.history.append(event)
        for event_type, handler in list(self._handlers):
            if event_type is not None and event_type != event.type:
                continue
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler failed for %s", event.type.value)

    def events_of(self, event_type: QueueEventType) -> list[QueueEvent]:
        """Return recorded events of one type, oldest first."""
        return [e for e in self.history if e.type == event_type]
