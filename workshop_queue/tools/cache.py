"""
Generic TTL cache used by read paths only.

In production, this would be a shared cache service; the engine never
relies on it for correctness and invalidates it on every mutation.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Protocol

from workshop_queue.logging_context import get_queue_logger

logger = get_queue_logger(__name__)


class ReadCache(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    def invalidate(self, prefix: str = "") -> int: ...


class MemoryCache:
    """Dict cache with per-key expiry, driven by an injectable clock."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock
        self._items: dict[str, tuple[datetime, Any]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        item = self._items.get(key)
        if item is None:
            self.misses += 1
            return None
        expires_at, value = item
        if expires_at <= self._clock():
            del self._items[key]
            self.misses += 1
            return None
        self.hits += 1
        return value

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        self._items[key] = (self._clock() + timedelta(seconds=ttl_seconds), value)

    def invalidate(self, prefix: str = "") -> int:
        """Drop every key starting with ``prefix``. Returns the number removed."""
        doomed = [key for key in self._items if key.startswith(prefix)]
        for key in doomed:
            del self._items[key]
        if doomed:
            logger.debug("Invalidated %d cache key(s) with prefix '%s'", len(doomed), prefix)
        return len(doomed)

    def clear(self) -> None:
        self._items.clear()
