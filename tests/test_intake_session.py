"""Tests for kiosk/phone intake sessions."""

import pytest

from workshop_queue.engine.intake_session import IntakeSessionManager


@pytest.fixture
def sessions(clock):
    return IntakeSessionManager(clock=clock, session_minutes=15)


class TestIntakeSessions:
    def test_new_session_is_valid(self, sessions):
        session = sessions.create_session("cust_1")
        assert session.id.startswith("qs_")
        assert session.user_id == "cust_1"
        assert sessions.validate_session(session.id)

    def test_one_ticket_per_session(self, sessions):
        session = sessions.create_session()
        sessions.mark_ticket_generated(session.id)
        assert not sessions.validate_session(session.id)
        assert sessions.get_session(session.id).has_generated_ticket

    def test_expired_session_returns_none_and_deactivates(self, sessions, clock):
        session = sessions.create_session()
        clock.advance(minutes=16)
        assert sessions.get_session(session.id) is None
        assert not sessions.validate_session(session.id)

    def test_session_valid_at_exact_expiry(self, sessions, clock):
        session = sessions.create_session()
        clock.advance(minutes=15)
        assert sessions.validate_session(session.id)

    def test_unknown_session(self, sessions):
        assert sessions.get_session("qs_missing") is None
        assert not sessions.validate_session("qs_missing")

    def test_cleanup_drops_expired_and_used(self, sessions, clock):
        used = sessions.create_session()
        sessions.mark_ticket_generated(used.id)
        sessions.create_session()
        clock.advance(minutes=10)
        live = sessions.create_session()
        clock.advance(minutes=6)

        assert sessions.cleanup_expired() == 2
        assert [s.id for s in sessions.active_sessions()] == [live.id]

    def test_release_reopens_claimed_session(self, sessions):
        session = sessions.create_session()
        sessions.mark_ticket_generated(session.id)
        sessions.release_ticket(session.id)
        assert sessions.validate_session(session.id)
        assert not sessions.get_session(session.id).has_generated_ticket
