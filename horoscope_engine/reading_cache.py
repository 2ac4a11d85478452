"""Read-through reading cache with per-key single-flight generation."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date, datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

from horoscope_engine import settings
from horoscope_engine.content_catalog import ContentBank, ContentCatalog, normalize_locale
from horoscope_engine.errors import ContentMalformed, ContentUnavailable
from horoscope_engine.models import (
    LOADING,
    CacheState,
    Error,
    Reading,
    Success,
    WeeklyReading,
    daily_key,
    weekly_key,
)
from horoscope_engine.selector import select_daily, select_weekly, template_id_for, week_start_for
from horoscope_engine.signs import ZodiacSign
from horoscope_engine.store import CacheEntry, InMemoryReadingStore, ReadingStore

logger = logging.getLogger("reading_cache")
reading_audit_logger = logging.getLogger("reading_audit")

AnyReading = Union[Reading, WeeklyReading]


def _utc_iso_now() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _canonical_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def _emit_generation_event(*, key: str, bank: ContentBank, template_id: str) -> dict[str, str]:
    event = {
        "event": "reading_generated",
        "key": key,
        "locale": bank.locale,
        "content_version": bank.version,
        "template_id": template_id,
        "timestamp_utc": _utc_iso_now(),
    }
    reading_audit_logger.info(_canonical_json(event))
    return event


def _error_state(exc: BaseException, label: str) -> Error:
    if isinstance(exc, ContentUnavailable):
        kind = "content_unavailable"
    elif isinstance(exc, ContentMalformed):
        kind = "content_malformed"
    else:
        kind = "unexpected"
    return Error(reason=f"Failed to load {label} horoscope: {exc}", kind=kind)


class ReadingCache:
    """Serves readings from the store, generating and persisting on a miss.

    Each `get_*` call is an async stream: one `Loading` state, then exactly
    one `Success` or `Error`. Concurrent misses for the same key share a
    single generation task; different keys never wait on each other.
    """

    def __init__(
        self,
        catalog: ContentCatalog,
        daily_store: Optional[ReadingStore[Reading]] = None,
        weekly_store: Optional[ReadingStore[WeeklyReading]] = None,
        locale: str | None = None,
        today_provider: Callable[[], date] = date.today,
    ):
        self.catalog = catalog
        # Stores define __len__, so an empty one is falsy.
        if daily_store is None:
            daily_store = InMemoryReadingStore(settings.READING_STORE_MAX_ITEMS)
        if weekly_store is None:
            weekly_store = InMemoryReadingStore(settings.READING_STORE_MAX_ITEMS)
        self.daily_store = daily_store
        self.weekly_store = weekly_store
        self.locale = normalize_locale(locale or settings.LOCALE)
        self._today = today_provider
        self._inflight: dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------
    def get_daily(self, sign: ZodiacSign, day: date) -> AsyncIterator[CacheState[Reading]]:
        key = daily_key(sign, day)
        return self._stream(
            key,
            self.daily_store,
            lambda bank: select_daily(bank, sign, day),
            label="daily",
        )

    def get_weekly(self, sign: ZodiacSign, day: date) -> AsyncIterator[CacheState[WeeklyReading]]:
        start = week_start_for(day)
        key = weekly_key(sign, start)
        return self._stream(
            key,
            self.weekly_store,
            lambda bank: select_weekly(bank, sign, start),
            label="weekly",
        )

    async def _stream(
        self,
        key: str,
        store: ReadingStore,
        select: Callable[[ContentBank], AnyReading],
        *,
        label: str,
    ) -> AsyncIterator[CacheState]:
        yield LOADING

        entry = await self._read_entry(store, key)
        if entry is not None:
            yield Success(entry.reading)
            return

        try:
            reading = await self._single_flight(key, lambda: self._generate(key, store, select))
        except Exception as exc:
            if not isinstance(exc, (ContentUnavailable, ContentMalformed)):
                logger.exception("Unexpected failure generating %s", key)
            yield _error_state(exc, label)
            return
        yield Success(reading)

    async def _single_flight(self, key: str, factory: Callable[[], Awaitable[AnyReading]]) -> AnyReading:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._finish_flight(key, done))
        # Waiters may be cancelled; the generation itself must still finish and persist.
        return await asyncio.shield(task)

    def _finish_flight(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark the exception retrieved when every waiter has gone away.
            task.exception()

    async def _generate(
        self,
        key: str,
        store: ReadingStore,
        select: Callable[[ContentBank], AnyReading],
    ) -> AnyReading:
        entry = await self._read_entry(store, key)
        if entry is not None:
            return entry.reading

        bank = await self.catalog.load(self.locale)
        reading = select(bank)
        try:
            await store.upsert(CacheEntry(reading))
        except Exception as exc:
            logger.warning("Reading %s generated but could not be cached: %s", key, exc)
        _emit_generation_event(key=key, bank=bank, template_id=template_id_for(bank, reading))
        return reading

    async def _read_entry(self, store: ReadingStore, key: str) -> CacheEntry | None:
        try:
            return await store.get_by_key(key)
        except Exception as exc:
            logger.warning("Reading store lookup failed for %s; treating as a miss: %s", key, exc)
            return None

    # ------------------------------------------------------------------
    # Direct store access
    # ------------------------------------------------------------------
    async def cache_horoscope(self, reading: AnyReading) -> None:
        """Persist an externally sourced reading, replacing any entry with its id."""
        store = self.daily_store if isinstance(reading, Reading) else self.weekly_store
        await store.upsert(CacheEntry(reading))

    async def has_entry_for_today(self, sign: ZodiacSign) -> bool:
        key = daily_key(sign, self._today())
        try:
            return await self.daily_store.get_by_key(key) is not None
        except Exception as exc:
            logger.warning("Reading store lookup failed for %s: %s", key, exc)
            return False

    async def get_by_id(self, reading_id: str) -> AnyReading | None:
        entry = await self.daily_store.get_by_key(reading_id)
        if entry is None:
            entry = await self.weekly_store.get_by_key(reading_id)
        return entry.reading if entry is not None else None

    async def cached_readings(self, sign: ZodiacSign) -> list[Reading]:
        readings = [entry.reading for entry in await self.daily_store.entries() if entry.reading.sign == sign]
        return sorted(readings, key=lambda r: r.date, reverse=True)

    def set_locale(self, locale: str) -> None:
        normalized = normalize_locale(locale)
        if normalized != self.locale:
            logger.info("Reading locale changed from %s to %s", self.locale, normalized)
            self.locale = normalized
            self.catalog.invalidate()

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)


async def terminal_state(stream: AsyncIterator[CacheState]) -> CacheState:
    """Drain a cache stream and return its final state."""
    last: CacheState = LOADING
    async for state in stream:
        last = state
    return last
