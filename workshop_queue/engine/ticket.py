"""Verification tickets: 4-digit codes with a fixed lifetime."""

import random
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from workshop_queue.config import settings
from workshop_queue.engine.clock import add_minutes
from workshop_queue.errors import ConflictError
from workshop_queue.logging_context import get_queue_logger

logger = get_queue_logger(__name__)

CODE_MIN = 1000
CODE_MAX = 9999


@dataclass(frozen=True)
class Ticket:
    code: str
    issued_at: datetime
    expires_at: datetime


class TicketGenerator:
    """Issues codes unique among the currently live tickets.

    Collisions are retried with a fresh code; ``ConflictError`` is raised
    only when ``max_attempts`` draws all collide.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        ttl_minutes: int = settings.queue.ticket_ttl_minutes,
        max_attempts: int = settings.queue.code_max_attempts,
    ) -> None:
        self._rng = rng or random.Random()
        self.ttl_minutes = ttl_minutes
        self.max_attempts = max_attempts

    def generate_code(self) -> str:
        return str(self._rng.randint(CODE_MIN, CODE_MAX))

    def issue(self, now: datetime, is_taken: Callable[[str], bool]) -> Ticket:
        for attempt in range(1, self.max_attempts + 1):
            code = self.generate_code()
            if not is_taken(code):
                return Ticket(code=code, issued_at=now, expires_at=add_minutes(now, self.ttl_minutes))
            logger.debug("Verification code collision on attempt %d", attempt)
        raise ConflictError(
            f"Could not issue a unique verification code after {self.max_attempts} attempts"
        )
