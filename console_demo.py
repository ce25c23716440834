"""
Offline console demo: plays a walk-in day at the workshop front desk.

Runs the real queue service, operating-hours gate and technician selector
against the in-memory collaborators with a simulated clock. No database,
no network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario no_show
    python console_demo.py --scenario outage
"""

import argparse
import asyncio
import random
from datetime import datetime, timedelta

from workshop_queue.config import settings
from workshop_queue.engine.context import WorkshopContext, build_workshop
from workshop_queue.engine.hours_gate import OperatingHoursGate
from workshop_queue.engine.queue_service import QueueService
from workshop_queue.errors import QueueError
from workshop_queue.schemas.queue_schema import QueueEvent, QueueJoinRequest, ServiceType
from workshop_queue.schemas.workshop_schema import Customer, Technician
from workshop_queue.tools.directory import InMemoryDirectory

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


class SimulatedClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: int) -> None:
        self.now += timedelta(minutes=minutes)


class FrontDesk:
    """Drives one workshop through a scripted sequence of desk actions."""

    def __init__(self) -> None:
        self.clock = SimulatedClock(datetime(2025, 3, 17, 8, 55))
        directory = InMemoryDirectory(
            technicians=[
                Technician(id="tech1", name="ana lopez", skills=["basic_maintenance", "brakes"],
                           session_active=True),
                Technician(id="tech2", name="bruno diaz", skills=["electrical", "engine"],
                           session_active=True),
            ],
            customers=[
                Customer(id="cust_1", name="Marta Ruiz"),
                Customer(id="cust_2", name="Leo Grant"),
                Customer(id="cust_3", name="Sam Okafor"),
            ],
        )
        self.ctx: WorkshopContext = build_workshop(
            "demo", clock=self.clock, directory=directory, rng=random.Random(2025)
        )
        self.service = QueueService(self.ctx)
        self.gate = OperatingHoursGate(self.ctx, self.service)
        self.ctx.events.subscribe(self._on_event)

    def desk_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[{self.clock.now:%H:%M} Desk]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _on_event(self, event: QueueEvent) -> None:
        detail = event.entry.id if event.entry else f"open={event.status.is_open}"
        if event.technician_name:
            detail += f" -> {event.technician_name}"
        self.system_log(f"event {event.type.value}: {detail}")

    def show_line(self) -> None:
        waiting = [e for e in self.service.list_entries() if e.position > 0]
        waiting.sort(key=lambda e: e.position)
        line = ", ".join(f"#{e.position} {e.customer_id}" for e in waiting) or "empty"
        self.system_log(f"waiting line: {line}")

    async def join(self, customer_id: str, plate: str = "") -> None:
        service_type = ServiceType.DIRECT_WORK_ORDER if plate else ServiceType.APPOINTMENT
        request = QueueJoinRequest(customer_id=customer_id, service_type=service_type, plate=plate or None)
        print(f"\n{BLUE}[Customer] {RESET}{customer_id} joins the queue")
        session = self.ctx.sessions.create_session(customer_id)
        try:
            entry_id = await self.gate.add_to_queue(request, session_id=session.id)
        except QueueError as exc:
            print(f"{RED}  ! {exc}{RESET}")
            return
        entry = self.service.get_entry(entry_id)
        self.desk_say(
            f"Ticket {entry.verification_code}, you are number {entry.position}. "
            f"Estimated wait about {entry.estimated_wait_time} minutes."
        )

    async def call_next(self, technician_id: str = "") -> None:
        print(f"\n{YELLOW}[Staff] {RESET}call next")
        try:
            entry = await self.gate.call_next(technician_id or None)
        except QueueError as exc:
            print(f"{RED}  ! {type(exc).__name__}: {exc}{RESET}")
            return
        if entry is None:
            self.desk_say("Nobody is waiting.")
            return
        self.desk_say(f"Now serving {entry.customer_id} (work order {entry.work_order_id}).")

    async def serve(self, customer_id: str) -> None:
        for entry in self.service.list_entries():
            if entry.customer_id == customer_id and not entry.is_terminal:
                await self.service.serve_entry(entry.id)
                self.desk_say(f"{customer_id} is ready to ride.")
                return

    async def run_scenario(self, scenario: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  WALK-IN QUEUE - Scenario: {scenario}{RESET}")
        print(f"{BOLD}  Workshop: {settings.workshop.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

        await self.service.refresh()
        self.clock.advance(5)

        if scenario == "walkin":
            await self.join("cust_1")
            await self.join("cust_2", plate="ktm 390")
            await self.join("cust_3")
            self.show_line()
            self.clock.advance(4)
            await self.call_next()
            self.show_line()
            self.clock.advance(20)
            await self.serve("cust_1")
            await self.call_next("tech2")
            self.show_line()
        elif scenario == "no_show":
            await self.join("cust_1")
            self.clock.advance(10)
            await self.join("cust_2")
            self.clock.advance(6)
            self.system_log("cust_1 stepped out and their ticket has expired")
            await self.call_next("tech1")
            self.show_line()
        elif scenario == "outage":
            await self.join("cust_1")
            self.ctx.work_orders.fail_next()
            await self.call_next("tech1")
            self.show_line()
            await self.call_next("tech1")
            self.show_line()

        stats = self.service.get_statistics()
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(
            f"{DIM}  Entries: {stats.total_entries}, served today: {stats.served_today}, "
            f"no-shows: {stats.no_show_count}, in line: {stats.current_queue_length}{RESET}"
        )
        print(f"{BOLD}{'=' * 60}{RESET}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline walk-in queue demo")
    parser.add_argument(
        "--scenario",
        choices=["walkin", "no_show", "outage"],
        default="walkin",
        help="Scripted front-desk scenario to play",
    )
    args = parser.parse_args()
    asyncio.run(FrontDesk().run_scenario(args.scenario))


if __name__ == "__main__":
    main()
