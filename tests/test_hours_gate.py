"""Tests for the operating-hours gate."""

import asyncio
from datetime import datetime

import pytest

from workshop_queue.errors import NotFoundError, ValidationError
from workshop_queue.schemas.queue_schema import DaySchedule, QueueEventType, Weekday
from tests.conftest import MONDAY_9AM, SUNDAY_10AM, make_request


def _week(open_time: str = "08:00", close_time: str = "18:00") -> dict:
    return {day: DaySchedule(open=open_time, close=close_time) for day in Weekday}


class TestScheduleChecks:
    def test_open_inside_weekday_window(self, gate):
        assert gate.is_queue_open_based_on_hours(MONDAY_9AM)

    def test_opening_minute_is_open(self, gate):
        assert gate.is_queue_open_based_on_hours(datetime(2025, 3, 17, 7, 0))

    def test_closing_minute_is_closed(self, gate):
        assert not gate.is_queue_open_based_on_hours(datetime(2025, 3, 17, 17, 30))

    def test_before_opening_is_closed(self, gate):
        assert not gate.is_queue_open_based_on_hours(datetime(2025, 3, 17, 6, 59))

    def test_sunday_closed_by_default(self, gate):
        assert not gate.is_queue_open_based_on_hours(SUNDAY_10AM)

    @pytest.mark.asyncio
    async def test_disabled_day_closed_even_inside_window(self, gate):
        hours = _week()
        hours[Weekday.MONDAY] = DaySchedule(open="08:00", close="18:00", enabled=False)
        await gate.update_operating_hours(hours)
        assert not gate.is_queue_open_based_on_hours(MONDAY_9AM)

    def test_accepting_needs_toggle_and_hours(self, gate):
        assert gate.is_accepting(MONDAY_9AM)
        assert not gate.is_accepting(SUNDAY_10AM)


class TestGatedOperations:
    @pytest.mark.asyncio
    async def test_add_when_open(self, gate, service):
        entry_id = await gate.add_to_queue(make_request("cust_1"))
        assert service.get_entry(entry_id) is not None

    @pytest.mark.asyncio
    async def test_add_outside_hours_rejected(self, gate, clock, service):
        clock.set(SUNDAY_10AM)
        with pytest.raises(ValidationError, match="operating hours"):
            await gate.add_to_queue(make_request("cust_1"))
        assert service.list_entries() == []

    @pytest.mark.asyncio
    async def test_add_when_toggled_closed_rejected(self, gate):
        await gate.toggle_queue_status()
        with pytest.raises(ValidationError, match="closed"):
            await gate.add_to_queue(make_request("cust_1"))

    @pytest.mark.asyncio
    async def test_call_next_when_closed_rejected(self, gate):
        await gate.add_to_queue(make_request("cust_1"))
        await gate.toggle_queue_status()
        with pytest.raises(ValidationError):
            await gate.call_next("tech1")

    @pytest.mark.asyncio
    async def test_call_next_when_open_delegates(self, gate):
        entry_id = await gate.add_to_queue(make_request("cust_1"))
        called = await gate.call_next("tech1")
        assert called.id == entry_id


class TestSessionAdmission:
    @pytest.mark.asyncio
    async def test_session_produces_one_ticket(self, gate, service, workshop):
        session = workshop.sessions.create_session("cust_1")
        entry_id = await gate.add_to_queue(make_request("cust_1"), session_id=session.id)
        assert service.get_entry(entry_id) is not None
        assert not workshop.sessions.validate_session(session.id)

        with pytest.raises(ValidationError, match="already used"):
            await gate.add_to_queue(make_request("cust_1"), session_id=session.id)
        assert len(service.list_entries()) == 1

    @pytest.mark.asyncio
    async def test_expired_session_rejected(self, gate, service, workshop, clock):
        session = workshop.sessions.create_session("cust_1")
        clock.advance(minutes=16)
        with pytest.raises(ValidationError, match="expired"):
            await gate.add_to_queue(make_request("cust_1"), session_id=session.id)
        assert service.list_entries() == []

    @pytest.mark.asyncio
    async def test_session_of_other_customer_rejected(self, gate, workshop):
        session = workshop.sessions.create_session("cust_2")
        with pytest.raises(ValidationError, match="another customer"):
            await gate.add_to_queue(make_request("cust_1"), session_id=session.id)
        assert workshop.sessions.validate_session(session.id)

    @pytest.mark.asyncio
    async def test_failed_admission_reopens_session(self, gate, workshop):
        session = workshop.sessions.create_session()
        with pytest.raises(NotFoundError):
            await gate.add_to_queue(make_request("cust_999"), session_id=session.id)
        assert workshop.sessions.validate_session(session.id)

        entry_id = await gate.add_to_queue(make_request("cust_1"), session_id=session.id)
        assert entry_id.startswith("q_")

    @pytest.mark.asyncio
    async def test_concurrent_admissions_share_one_session_ticket(self, gate, service, workshop):
        session = workshop.sessions.create_session()
        results = await asyncio.gather(
            gate.add_to_queue(make_request("cust_1"), session_id=session.id),
            gate.add_to_queue(make_request("cust_2"), session_id=session.id),
            return_exceptions=True,
        )
        assert sum(isinstance(r, ValidationError) for r in results) == 1
        assert len(service.list_entries()) == 1


class TestStaffControls:
    @pytest.mark.asyncio
    async def test_toggle_returns_new_value(self, gate):
        assert await gate.toggle_queue_status() is False
        assert await gate.toggle_queue_status() is True

    @pytest.mark.asyncio
    async def test_toggle_leaves_hours_untouched(self, gate):
        before = gate.get_operating_hours()
        await gate.toggle_queue_status()
        assert gate.get_operating_hours() == before

    @pytest.mark.asyncio
    async def test_toggle_emits_status_changed(self, gate, workshop):
        await gate.toggle_queue_status()
        events = workshop.events.events_of(QueueEventType.STATUS_CHANGED)
        assert len(events) == 1
        assert events[0].status.is_open is False

    @pytest.mark.asyncio
    async def test_toggle_persists_status(self, gate, workshop):
        await gate.toggle_queue_status()
        assert workshop.repository.get_status().is_open is False

    @pytest.mark.asyncio
    async def test_update_hours_replaces_schedule(self, gate):
        await gate.update_operating_hours(_week("10:00", "12:00"))
        hours = gate.get_operating_hours()
        assert hours[Weekday.SUNDAY].open == "10:00"
        assert not gate.is_queue_open_based_on_hours(MONDAY_9AM)
        assert gate.is_queue_open_based_on_hours(SUNDAY_10AM)

    @pytest.mark.asyncio
    async def test_update_hours_missing_day_rejected(self, gate):
        hours = _week()
        del hours[Weekday.SATURDAY]
        with pytest.raises(ValidationError, match="saturday"):
            await gate.update_operating_hours(hours)

    @pytest.mark.asyncio
    async def test_update_hours_open_after_close_rejected(self, gate):
        hours = _week()
        hours[Weekday.FRIDAY] = DaySchedule(open="18:00", close="09:00")
        with pytest.raises(ValidationError, match="friday"):
            await gate.update_operating_hours(hours)
        assert gate.get_operating_hours()[Weekday.FRIDAY].open == "07:00"

    def test_invalid_hhmm_rejected_by_schema(self):
        with pytest.raises(ValueError):
            DaySchedule(open="7am", close="17:30")
