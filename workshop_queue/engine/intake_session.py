"""
Short-lived intake sessions for the kiosk and phone join flow.

A session is opened when a customer starts joining, lives for a fixed
number of minutes and can produce exactly one ticket. Expiry is checked
lazily on lookup; ``cleanup_expired`` drops dead sessions in bulk.

Each workshop context owns one manager; the operating-hours gate claims
the session when it admits a customer through it.

Usage:
    session = ctx.sessions.create_session(user_id="cust_1")
    entry_id = await gate.add_to_queue(request, session_id=session.id)
"""

import uuid
from datetime import datetime, timedelta
from typing import Callable, Optional

from pydantic import BaseModel

from workshop_queue.config import settings
from workshop_queue.logging_context import get_queue_logger

logger = get_queue_logger(__name__)


class IntakeSession(BaseModel):
    id: str
    user_id: Optional[str] = None
    created_at: datetime
    expires_at: datetime
    is_active: bool = True
    has_generated_ticket: bool = False


class IntakeSessionManager:
    def __init__(
        self,
        clock: Callable[[], datetime] = datetime.now,
        session_minutes: int = settings.queue.intake_session_minutes,
    ) -> None:
        self._clock = clock
        self.session_minutes = session_minutes
        self._sessions: dict[str, IntakeSession] = {}

    def create_session(self, user_id: Optional[str] = None) -> IntakeSession:
        now = self._clock()
        session = IntakeSession(
            id=f"qs_{uuid.uuid4().hex[:12]}",
            user_id=user_id,
            created_at=now,
            expires_at=now + timedelta(minutes=self.session_minutes),
        )
        self._sessions[session.id] = session
        logger.debug("Intake session %s opened (user=%s)", session.id, user_id)
        return session

    def get_session(self, session_id: str) -> Optional[IntakeSession]:
        """Return the session, or None if unknown or past its expiry (which deactivates it)."""
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if self._clock() > session.expires_at:
            self.deactivate_session(session_id)
            return None
        return session

    def validate_session(self, session_id: str) -> bool:
        """True while the session is live and has not produced a ticket yet."""
        session = self.get_session(session_id)
        return session is not None and session.is_active and not session.has_generated_ticket

    def mark_ticket_generated(self, session_id: str) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            logger.warning("Cannot mark ticket on unknown session %s", session_id)
            return
        session.has_generated_ticket = True
        session.is_active = False

    def release_ticket(self, session_id: str) -> None:
        """Reopen a session whose admission failed after it was claimed."""
        session = self._sessions.get(session_id)
        if session is not None:
            session.has_generated_ticket = False
            session.is_active = True

    def deactivate_session(self, session_id: str) -> None:
        session = self._sessions.get(session_id)
        if session is not None:
            session.is_active = False

    def active_sessions(self) -> list[IntakeSession]:
        now = self._clock()
        return [s for s in self._sessions.values() if s.is_active and now <= s.expires_at]

    def cleanup_expired(self) -> int:
        """Drop inactive and expired sessions. Returns how many were removed."""
        keep = {s.id: s for s in self.active_sessions()}
        removed = len(self._sessions) - len(keep)
        self._sessions = keep
        if removed:
            logger.info("Removed %d expired intake session(s)", removed)
        return removed
