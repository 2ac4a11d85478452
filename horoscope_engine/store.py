from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Generic, Protocol, TypeVar

from horoscope_engine.models import Reading, WeeklyReading

R = TypeVar("R", Reading, WeeklyReading)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


@dataclass(frozen=True)
class CacheEntry(Generic[R]):
    """Persisted reading plus its creation time."""

    reading: R
    created_at: datetime = field(default_factory=_utc_now)

    @property
    def key(self) -> str:
        return self.reading.id

    @property
    def subject_date(self) -> date:
        return self.reading.subject_date


class ReadingStore(Protocol[R]):
    """Keyed persistent store consumed by the reading cache.

    Implementations raise `PersistenceFailure` when the backing storage
    cannot be read or written.
    """

    async def get_by_key(self, key: str) -> CacheEntry[R] | None: ...

    async def upsert(self, entry: CacheEntry[R]) -> None: ...

    async def delete_where_before(self, cutoff: date) -> int: ...

    async def count_all(self) -> int: ...

    async def entries(self) -> list[CacheEntry[R]]: ...


class InMemoryReadingStore(Generic[R]):
    """Process-local reading store with an optional size bound.

    - Upserts replace by reading id, so a key never has two entries.
    - With `max_items`, the least recently used entries are dropped first.
    - Operations are thread-safe for mixed async/threaded usage.
    """

    def __init__(self, max_items: int | None = None):
        self._max_items = max(1, max_items) if max_items is not None else None
        self._store: OrderedDict[str, CacheEntry[R]] = OrderedDict()
        self._lock = threading.RLock()

    def _enforce_max_items_unlocked(self) -> None:
        if self._max_items is None:
            return
        while len(self._store) > self._max_items:
            self._store.popitem(last=False)

    async def get_by_key(self, key: str) -> CacheEntry[R] | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            self._store.move_to_end(key)
            return entry

    async def upsert(self, entry: CacheEntry[R]) -> None:
        with self._lock:
            self._store[entry.key] = entry
            self._store.move_to_end(entry.key)
            self._enforce_max_items_unlocked()

    async def delete_where_before(self, cutoff: date) -> int:
        with self._lock:
            stale = [key for key, entry in self._store.items() if entry.subject_date < cutoff]
            for key in stale:
                self._store.pop(key, None)
            return len(stale)

    async def count_all(self) -> int:
        with self._lock:
            return len(self._store)

    async def entries(self) -> list[CacheEntry[R]]:
        with self._lock:
            return list(self._store.values())

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
