"""
Dashboard statistics over the full entry history.

Computed from a snapshot of entries; the queue service caches the result
and drops it on every mutation.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable

from workshop_queue.logging_context import get_queue_logger
from workshop_queue.schemas.queue_schema import (
    ACTIVE_STATUSES,
    QueueEntry,
    QueueEntryStatus,
    QueueStatistics,
)

logger = get_queue_logger(__name__)

DEFAULT_PEAK_HOUR = "09:00"
DEFAULT_BUSIEST_DAY = "Monday"
STATISTICS_PERIOD_DAYS = 7

_DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def _most_common(counter: Counter, default):
    # Counter.most_common keeps first-seen order among equal counts
    ranked = counter.most_common(1)
    return ranked[0][0] if ranked else default


def peak_hour(entries: Iterable[QueueEntry]) -> str:
    hour = _most_common(Counter(e.joined_at.hour for e in entries), None)
    return DEFAULT_PEAK_HOUR if hour is None else f"{hour:02d}:00"


def busiest_day(entries: Iterable[QueueEntry]) -> str:
    return _most_common(
        Counter(_DAY_NAMES[e.joined_at.weekday()] for e in entries), DEFAULT_BUSIEST_DAY
    )


def average_served_wait(entries: Iterable[QueueEntry]) -> float:
    """Mean estimated wait of served entries, 0.0 when none were served."""
    waits = [e.estimated_wait_time for e in entries if e.status == QueueEntryStatus.SERVED]
    if not waits:
        return 0.0
    return sum(waits) / len(waits)


def technician_utilization(entries: Iterable[QueueEntry], technician_count: int) -> float:
    """Percentage of technicians busy with a called entry, capped at 100."""
    if technician_count <= 0:
        return 0.0
    called = sum(1 for e in entries if e.status == QueueEntryStatus.CALLED)
    return min(called / technician_count * 100, 100.0)


def compute_statistics(
    entries: list[QueueEntry], technician_count: int, now: datetime
) -> QueueStatistics:
    start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    by_status = Counter(e.status for e in entries)

    stats = QueueStatistics(
        total_entries=len(entries),
        served_today=sum(
            1 for e in entries
            if e.status == QueueEntryStatus.SERVED and e.updated_at >= start_of_today
        ),
        no_show_count=by_status[QueueEntryStatus.NO_SHOW],
        cancelled_count=by_status[QueueEntryStatus.CANCELLED],
        current_queue_length=sum(by_status[s] for s in ACTIVE_STATUSES),
        average_wait_time=average_served_wait(entries),
        peak_hour=peak_hour(entries),
        busiest_day=busiest_day(entries),
        technician_utilization=technician_utilization(entries, technician_count),
        period_start=start_of_today - timedelta(days=STATISTICS_PERIOD_DAYS),
        period_end=now,
    )
    logger.debug("Statistics computed over %d entries", stats.total_entries)
    return stats
