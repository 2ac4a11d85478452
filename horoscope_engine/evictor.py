"""Retention-horizon eviction of persisted readings."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable

from horoscope_engine import settings
from horoscope_engine.models import Reading, WeeklyReading
from horoscope_engine.store import ReadingStore

logger = logging.getLogger("cache_evictor")


class CacheEvictor:
    """Deletes readings whose subject date is before a cutoff.

    Staleness is judged on the reading's own `date` / `week_start_date`,
    never on when the entry was written.
    """

    def __init__(
        self,
        daily_store: ReadingStore[Reading],
        weekly_store: ReadingStore[WeeklyReading],
        today_provider: Callable[[], date] = date.today,
    ):
        self.daily_store = daily_store
        self.weekly_store = weekly_store
        self._today = today_provider

    async def evict_older_than(self, cutoff: date) -> int:
        deleted = await self.daily_store.delete_where_before(cutoff)
        logger.info("Evicted %d daily readings dated before %s", deleted, cutoff.isoformat())
        return deleted

    async def evict_weekly_older_than(self, cutoff: date) -> int:
        deleted = await self.weekly_store.delete_where_before(cutoff)
        logger.info("Evicted %d weekly readings starting before %s", deleted, cutoff.isoformat())
        return deleted

    async def clear_old_cache(
        self,
        days_to_keep: int | None = None,
        weeks_to_keep: int | None = None,
    ) -> dict[str, int]:
        days = settings.HOROSCOPE_CACHE_DAYS if days_to_keep is None else days_to_keep
        weeks = settings.WEEKLY_HOROSCOPE_CACHE_WEEKS if weeks_to_keep is None else weeks_to_keep
        if days < 0 or weeks < 0:
            raise ValueError("Retention must be non-negative")
        today = self._today()
        return {
            "daily_deleted": await self.evict_older_than(today - timedelta(days=days)),
            "weekly_deleted": await self.evict_weekly_older_than(today - timedelta(weeks=weeks)),
        }
