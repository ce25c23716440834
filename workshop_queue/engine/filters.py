"""Search, filter, sort and paginate queue entries for the admin views."""

from typing import Any

from workshop_queue.config import settings
from workshop_queue.schemas.queue_schema import QueueEntry, QueueFilter, SortField


def _matches_search(entry: QueueEntry, term: str) -> bool:
    return (
        term in entry.customer_id.lower()
        or term in entry.id.lower()
        or term in entry.verification_code
        or (entry.notes is not None and term in entry.notes.lower())
    )


def _sort_key(field: SortField):
    def key(entry: QueueEntry) -> Any:
        if field == SortField.JOINED_AT:
            return entry.joined_at
        if field == SortField.ESTIMATED_WAIT_TIME:
            return entry.estimated_wait_time
        if field == SortField.STATUS:
            return entry.status.value
        return entry.position
    return key


def apply_filter(
    entries: list[QueueEntry],
    queue_filter: QueueFilter,
    default_limit: int = settings.queue.page_size,
) -> list[QueueEntry]:
    """Return the page of ``entries`` selected by ``queue_filter``.

    Filters combine with AND; each list filter matches any of its values.
    Without ``sort_by`` the input order is kept.
    """
    result = list(entries)

    term = queue_filter.search.strip().lower()
    if term:
        result = [e for e in result if _matches_search(e, term)]
    if queue_filter.statuses:
        result = [e for e in result if e.status in queue_filter.statuses]
    if queue_filter.service_types:
        result = [e for e in result if e.service_type in queue_filter.service_types]
    if queue_filter.assigned_to:
        result = [e for e in result if e.assigned_to in queue_filter.assigned_to]
    if queue_filter.joined_from is not None:
        result = [e for e in result if e.joined_at >= queue_filter.joined_from]
    if queue_filter.joined_to is not None:
        result = [e for e in result if e.joined_at <= queue_filter.joined_to]

    if queue_filter.sort_by is not None:
        result.sort(key=_sort_key(queue_filter.sort_by), reverse=queue_filter.descending)

    limit = queue_filter.limit if queue_filter.limit is not None else default_limit
    start = max(queue_filter.offset, 0)
    return result[start:start + limit]
