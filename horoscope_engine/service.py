"""Public query surface used by the HTTP layer and other callers."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, timedelta
from typing import Any, AsyncIterator, Callable, Optional

from horoscope_engine import settings
from horoscope_engine.compatibility import CompatibilityReport, assess
from horoscope_engine.content_catalog import ContentCatalog
from horoscope_engine.evictor import CacheEvictor
from horoscope_engine.models import CacheState, Reading, WeeklyReading
from horoscope_engine.reading_cache import AnyReading, ReadingCache, terminal_state
from horoscope_engine.signs import SignInfo, ZodiacSign, parse_sign, resolve_sign, sign_details, sign_info
from horoscope_engine.store import InMemoryReadingStore, ReadingStore

logger = logging.getLogger("horoscope_engine")

MAX_RANGE_DAYS = 366


class HoroscopeService:
    def __init__(
        self,
        catalog: Optional[ContentCatalog] = None,
        daily_store: Optional[ReadingStore[Reading]] = None,
        weekly_store: Optional[ReadingStore[WeeklyReading]] = None,
        locale: str | None = None,
        today_provider: Callable[[], date] = date.today,
    ):
        self.catalog = catalog if catalog is not None else ContentCatalog()
        if daily_store is None:
            daily_store = InMemoryReadingStore(settings.READING_STORE_MAX_ITEMS)
        if weekly_store is None:
            weekly_store = InMemoryReadingStore(settings.READING_STORE_MAX_ITEMS)
        self.daily_store = daily_store
        self.weekly_store = weekly_store
        self._today = today_provider
        self.cache = ReadingCache(
            self.catalog,
            daily_store=self.daily_store,
            weekly_store=self.weekly_store,
            locale=locale,
            today_provider=today_provider,
        )
        self.evictor = CacheEvictor(self.daily_store, self.weekly_store, today_provider=today_provider)

    @property
    def locale(self) -> str:
        return self.cache.locale

    def set_locale(self, locale: str) -> None:
        self.cache.set_locale(locale)

    def today(self) -> date:
        return self._today()

    # Readings -----------------------------------------------------------
    def get_daily_horoscope(self, sign: ZodiacSign | str, day: date | None = None) -> AsyncIterator[CacheState[Reading]]:
        return self.cache.get_daily(parse_sign(sign), day or self._today())

    def get_weekly_horoscope(
        self, sign: ZodiacSign | str, week_start: date | None = None
    ) -> AsyncIterator[CacheState[WeeklyReading]]:
        return self.cache.get_weekly(parse_sign(sign), week_start or self._today())

    def get_user_daily_horoscope(self, birthdate: date, day: date | None = None) -> AsyncIterator[CacheState[Reading]]:
        return self.get_daily_horoscope(resolve_sign(birthdate), day)

    async def get_horoscope_range(self, sign: ZodiacSign | str, start: date, end: date) -> list[CacheState[Reading]]:
        """Terminal states for every date in the inclusive range, oldest first."""
        if end < start:
            raise ValueError("end date must not be before start date")
        span = (end - start).days + 1
        if span > MAX_RANGE_DAYS:
            raise ValueError(f"date range must not exceed {MAX_RANGE_DAYS} days")
        parsed = parse_sign(sign)
        days = [start + timedelta(days=offset) for offset in range(span)]
        return list(await asyncio.gather(*(terminal_state(self.cache.get_daily(parsed, d)) for d in days)))

    async def get_horoscope_by_id(self, reading_id: str) -> AnyReading | None:
        return await self.cache.get_by_id(reading_id)

    async def cache_horoscope(self, reading: AnyReading) -> None:
        await self.cache.cache_horoscope(reading)

    async def has_todays_horoscope(self, sign: ZodiacSign | str) -> bool:
        return await self.cache.has_entry_for_today(parse_sign(sign))

    async def cached_readings(self, sign: ZodiacSign | str) -> list[Reading]:
        return await self.cache.cached_readings(parse_sign(sign))

    # Signs --------------------------------------------------------------
    def resolve_sign(self, day: date) -> ZodiacSign:
        return resolve_sign(day)

    def sign_info(self, sign: ZodiacSign | str) -> SignInfo:
        return sign_info(parse_sign(sign))

    def sign_details(self, sign: ZodiacSign | str) -> dict[str, Any]:
        return sign_details(parse_sign(sign))

    def get_compatibility(self, sign_a: ZodiacSign | str, sign_b: ZodiacSign | str) -> CompatibilityReport:
        return assess(parse_sign(sign_a), parse_sign(sign_b))

    # Maintenance --------------------------------------------------------
    async def clear_old_cache(self, days_to_keep: int | None = None, weeks_to_keep: int | None = None) -> dict[str, int]:
        return await self.evictor.clear_old_cache(days_to_keep, weeks_to_keep)

    async def stats(self) -> dict[str, Any]:
        return {
            "locale": self.locale,
            "default_locale": self.catalog.default_locale,
            "available_locales": self.catalog.available_locales(),
            "daily_entries": await self.daily_store.count_all(),
            "weekly_entries": await self.weekly_store.count_all(),
            "generations_in_flight": self.cache.inflight_count,
        }
