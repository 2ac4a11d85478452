"""Tests for read-through caching, single-flight generation and state streams."""

from __future__ import annotations

import asyncio
from datetime import date
import json
from pathlib import Path
import tempfile
import unittest
from unittest.mock import patch

from horoscope_engine.content_catalog import ContentCatalog
from horoscope_engine.errors import PersistenceFailure
from horoscope_engine.models import Error, Loading, Reading, Success, WeeklyReading
from horoscope_engine.reading_cache import ReadingCache, terminal_state
from horoscope_engine.signs import ZodiacSign
from horoscope_engine.store import CacheEntry, InMemoryReadingStore

SHIPPED_CONTENT = Path(__file__).resolve().parent / "content"
TODAY = date(2024, 5, 15)


class CountingCatalog(ContentCatalog):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.load_calls = 0

    async def load(self, locale=None):
        self.load_calls += 1
        return await super().load(locale)


class GatedCatalog(CountingCatalog):
    """Holds every load open until `release` is set."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def load(self, locale=None):
        self.started.set()
        await self.release.wait()
        return await super().load(locale)


class FailingWriteStore(InMemoryReadingStore):
    async def upsert(self, entry):
        raise PersistenceFailure("disk full")


class FailingReadStore(InMemoryReadingStore):
    async def get_by_key(self, key):
        raise PersistenceFailure("database locked")


async def _collect(stream) -> list:
    return [state async for state in stream]


class TestReadingCacheStreams(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.catalog = CountingCatalog(SHIPPED_CONTENT, default_locale="en")
        self.daily = InMemoryReadingStore()
        self.weekly = InMemoryReadingStore()
        self.cache = ReadingCache(self.catalog, self.daily, self.weekly, locale="en", today_provider=lambda: TODAY)

    async def test_miss_emits_loading_then_success_and_persists(self) -> None:
        states = await _collect(self.cache.get_daily(ZodiacSign.leo, TODAY))
        self.assertEqual(len(states), 2)
        self.assertIsInstance(states[0], Loading)
        self.assertIsInstance(states[1], Success)
        reading = states[1].data
        self.assertIsInstance(reading, Reading)
        self.assertEqual(reading.id, "leo_2024-05-15")
        self.assertEqual(await self.daily.count_all(), 1)

    async def test_hit_does_not_consult_the_catalog(self) -> None:
        first = await terminal_state(self.cache.get_daily(ZodiacSign.leo, TODAY))
        calls = self.catalog.load_calls
        second = await terminal_state(self.cache.get_daily(ZodiacSign.leo, TODAY))
        self.assertEqual(first, second)
        self.assertEqual(self.catalog.load_calls, calls)

    async def test_injected_empty_stores_are_used(self) -> None:
        self.assertIs(self.cache.daily_store, self.daily)
        self.assertIs(self.cache.weekly_store, self.weekly)
        await terminal_state(self.cache.get_daily(ZodiacSign.leo, TODAY))
        self.assertEqual(len(self.daily), 1)

    async def test_returned_reading_cannot_alter_the_cached_value(self) -> None:
        first = await terminal_state(self.cache.get_daily(ZodiacSign.leo, TODAY))
        tags = first.data.tags
        self.assertIsInstance(tags, tuple)
        with self.assertRaises(AttributeError):
            first.data.tags.append("tampered")
        weekly = await terminal_state(self.cache.get_weekly(ZodiacSign.leo, TODAY))
        self.assertIsInstance(weekly.data.lucky_days, tuple)
        self.assertIsInstance(weekly.data.challenging_days, tuple)
        second = await terminal_state(self.cache.get_daily(ZodiacSign.leo, TODAY))
        self.assertEqual(second.data.tags, tags)

    async def test_cached_value_survives_catalog_changes(self) -> None:
        first = await terminal_state(self.cache.get_daily(ZodiacSign.leo, TODAY))
        self.catalog.invalidate()
        self.catalog.content_root = Path("/nonexistent")
        second = await terminal_state(self.cache.get_daily(ZodiacSign.leo, TODAY))
        self.assertEqual(first.data, second.data)

    async def test_weekly_is_keyed_by_monday(self) -> None:
        state = await terminal_state(self.cache.get_weekly(ZodiacSign.virgo, date(2024, 5, 17)))
        self.assertIsInstance(state.data, WeeklyReading)
        self.assertEqual(state.data.id, "virgo_week_2024-05-13")
        again = await terminal_state(self.cache.get_weekly(ZodiacSign.virgo, date(2024, 5, 19)))
        self.assertEqual(again.data, state.data)
        self.assertEqual(await self.weekly.count_all(), 1)

    async def test_daily_and_weekly_keys_do_not_collide(self) -> None:
        await terminal_state(self.cache.get_daily(ZodiacSign.virgo, date(2024, 5, 13)))
        await terminal_state(self.cache.get_weekly(ZodiacSign.virgo, date(2024, 5, 13)))
        self.assertIsNotNone(await self.daily.get_by_key("virgo_2024-05-13"))
        self.assertIsNotNone(await self.weekly.get_by_key("virgo_week_2024-05-13"))

    async def test_locale_without_weekly_content_uses_generic_reading(self) -> None:
        self.cache.set_locale("es")
        state = await terminal_state(self.cache.get_weekly(ZodiacSign.aries, TODAY))
        self.assertIsInstance(state, Success)
        self.assertIn("growth", state.data.tags)


class TestSingleFlight(unittest.IsolatedAsyncioTestCase):
    async def test_concurrent_misses_share_one_generation(self) -> None:
        catalog = GatedCatalog(SHIPPED_CONTENT, default_locale="en")
        store = InMemoryReadingStore()
        cache = ReadingCache(catalog, store, InMemoryReadingStore(), locale="en")

        consumers = [
            asyncio.create_task(terminal_state(cache.get_daily(ZodiacSign.aries, TODAY))) for _ in range(20)
        ]
        await catalog.started.wait()
        await asyncio.sleep(0)
        self.assertEqual(cache.inflight_count, 1)

        catalog.release.set()
        results = await asyncio.gather(*consumers)

        self.assertTrue(all(isinstance(state, Success) for state in results))
        self.assertEqual(len({state.data.id for state in results}), 1)
        self.assertTrue(all(state.data == results[0].data for state in results))
        self.assertEqual(catalog.load_calls, 1)
        self.assertEqual(await store.count_all(), 1)
        self.assertEqual(cache.inflight_count, 0)

    async def test_different_keys_generate_independently(self) -> None:
        catalog = GatedCatalog(SHIPPED_CONTENT, default_locale="en")
        cache = ReadingCache(catalog, InMemoryReadingStore(), InMemoryReadingStore(), locale="en")
        consumers = [
            asyncio.create_task(terminal_state(cache.get_daily(sign, TODAY)))
            for sign in (ZodiacSign.aries, ZodiacSign.taurus)
        ]
        await catalog.started.wait()
        await asyncio.sleep(0)
        self.assertEqual(cache.inflight_count, 2)
        catalog.release.set()
        results = await asyncio.gather(*consumers)
        self.assertEqual({state.data.sign for state in results}, {ZodiacSign.aries, ZodiacSign.taurus})

    async def test_cancelled_waiter_does_not_abort_generation(self) -> None:
        catalog = GatedCatalog(SHIPPED_CONTENT, default_locale="en")
        store = InMemoryReadingStore()
        cache = ReadingCache(catalog, store, InMemoryReadingStore(), locale="en")

        consumer = asyncio.create_task(terminal_state(cache.get_daily(ZodiacSign.libra, TODAY)))
        await catalog.started.wait()
        consumer.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await consumer

        catalog.release.set()
        for _ in range(100):
            if cache.inflight_count == 0:
                break
            await asyncio.sleep(0.01)
        self.assertEqual(await store.count_all(), 1)

        state = await terminal_state(cache.get_daily(ZodiacSign.libra, TODAY))
        self.assertIsInstance(state, Success)
        self.assertEqual(catalog.load_calls, 1)


class TestReadingCacheFailures(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    async def test_unavailable_content_yields_error_and_is_not_cached(self) -> None:
        catalog = ContentCatalog(self.root, default_locale="en")
        store = InMemoryReadingStore()
        cache = ReadingCache(catalog, store, InMemoryReadingStore(), locale="en")

        states = await _collect(cache.get_daily(ZodiacSign.aries, TODAY))
        self.assertIsInstance(states[0], Loading)
        self.assertIsInstance(states[-1], Error)
        self.assertEqual(states[-1].kind, "content_unavailable")
        self.assertTrue(states[-1].reason.startswith("Failed to load daily horoscope"))
        self.assertEqual(await store.count_all(), 0)
        self.assertEqual(cache.inflight_count, 0)

        (self.root / "en").mkdir()
        (self.root / "en" / "zodiac.json").write_text(
            (SHIPPED_CONTENT / "en" / "zodiac.json").read_text(encoding="utf-8"), encoding="utf-8"
        )
        retry = await terminal_state(cache.get_daily(ZodiacSign.aries, TODAY))
        self.assertIsInstance(retry, Success)

    async def test_missing_sign_yields_malformed_error(self) -> None:
        (self.root / "en").mkdir()
        (self.root / "en" / "zodiac.json").write_text(
            json.dumps({"signs": [{"id": "aries", "predictions": {"daily": []}}]}), encoding="utf-8"
        )
        cache = ReadingCache(ContentCatalog(self.root, default_locale="en"), locale="en")
        leo = await terminal_state(cache.get_daily(ZodiacSign.leo, TODAY))
        aries = await terminal_state(cache.get_daily(ZodiacSign.aries, TODAY))
        self.assertEqual(leo.kind, "content_malformed")
        self.assertEqual(aries.kind, "content_malformed")

    async def test_unexpected_failure_is_logged_and_reported(self) -> None:
        cache = ReadingCache(ContentCatalog(SHIPPED_CONTENT, default_locale="en"), locale="en")
        with patch("horoscope_engine.reading_cache.select_daily", side_effect=RuntimeError("boom")):
            with self.assertLogs("reading_cache", level="ERROR"):
                state = await terminal_state(cache.get_daily(ZodiacSign.aries, TODAY))
        self.assertIsInstance(state, Error)
        self.assertEqual(state.kind, "unexpected")
        self.assertIn("boom", state.reason)

    async def test_write_failure_still_returns_reading(self) -> None:
        cache = ReadingCache(
            ContentCatalog(SHIPPED_CONTENT, default_locale="en"), FailingWriteStore(), InMemoryReadingStore(), locale="en"
        )
        with self.assertLogs("reading_cache", level="WARNING"):
            state = await terminal_state(cache.get_daily(ZodiacSign.gemini, TODAY))
        self.assertIsInstance(state, Success)

    async def test_read_failure_is_treated_as_miss(self) -> None:
        cache = ReadingCache(
            ContentCatalog(SHIPPED_CONTENT, default_locale="en"), FailingReadStore(), InMemoryReadingStore(), locale="en"
        )
        state = await terminal_state(cache.get_daily(ZodiacSign.gemini, TODAY))
        self.assertIsInstance(state, Success)
        self.assertFalse(await ReadingCache(cache.catalog, FailingReadStore(), locale="en").has_entry_for_today(ZodiacSign.gemini))


class TestReadingAudit(unittest.IsolatedAsyncioTestCase):
    @patch("horoscope_engine.reading_cache.reading_audit_logger.info")
    async def test_generation_emits_canonical_audit_line(self, mock_info) -> None:
        cache = ReadingCache(ContentCatalog(SHIPPED_CONTENT, default_locale="en"), locale="en")
        await terminal_state(cache.get_daily(ZodiacSign.cancer, TODAY))
        await terminal_state(cache.get_daily(ZodiacSign.cancer, TODAY))

        self.assertEqual(mock_info.call_count, 1)
        line = mock_info.call_args[0][0]
        event = json.loads(line)
        self.assertEqual(
            set(event), {"event", "key", "locale", "content_version", "template_id", "timestamp_utc"}
        )
        self.assertEqual(event["event"], "reading_generated")
        self.assertEqual(event["key"], "cancer_2024-05-15")
        self.assertEqual(event["locale"], "en")
        self.assertEqual(event["content_version"], "1.2.0")
        self.assertTrue(event["template_id"].startswith("cancer_d"))
        self.assertTrue(event["timestamp_utc"].endswith("Z"))
        self.assertEqual(line, json.dumps(event, ensure_ascii=False, sort_keys=True, separators=(",", ":")))


class TestDirectStoreAccess(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.catalog = CountingCatalog(SHIPPED_CONTENT, default_locale="en")
        self.cache = ReadingCache(
            self.catalog, InMemoryReadingStore(), InMemoryReadingStore(), locale="en", today_provider=lambda: TODAY
        )

    async def test_has_entry_for_today(self) -> None:
        self.assertFalse(await self.cache.has_entry_for_today(ZodiacSign.pisces))
        await terminal_state(self.cache.get_daily(ZodiacSign.pisces, TODAY))
        self.assertTrue(await self.cache.has_entry_for_today(ZodiacSign.pisces))

    async def test_get_by_id_checks_daily_then_weekly(self) -> None:
        daily = await terminal_state(self.cache.get_daily(ZodiacSign.pisces, TODAY))
        weekly = await terminal_state(self.cache.get_weekly(ZodiacSign.pisces, TODAY))
        self.assertEqual(await self.cache.get_by_id(daily.data.id), daily.data)
        self.assertEqual(await self.cache.get_by_id(weekly.data.id), weekly.data)
        self.assertIsNone(await self.cache.get_by_id("pisces_1999-01-01"))

    async def test_cache_horoscope_is_served_without_generation(self) -> None:
        reading = Reading(
            id="leo_2024-05-15",
            sign=ZodiacSign.leo,
            date=TODAY,
            general="Imported",
            love="l",
            career="c",
            health="h",
            lucky_number=5,
            lucky_color="Gold",
            compatibility=ZodiacSign.aries,
            mood="Warm",
        )
        await self.cache.cache_horoscope(reading)
        state = await terminal_state(self.cache.get_daily(ZodiacSign.leo, TODAY))
        self.assertEqual(state.data.general, "Imported")
        self.assertEqual(self.catalog.load_calls, 0)

    async def test_cached_readings_newest_first(self) -> None:
        for day in (date(2024, 5, 1), date(2024, 5, 3), date(2024, 5, 2)):
            await terminal_state(self.cache.get_daily(ZodiacSign.aries, day))
        await terminal_state(self.cache.get_daily(ZodiacSign.leo, TODAY))
        readings = await self.cache.cached_readings(ZodiacSign.aries)
        self.assertEqual([r.date.day for r in readings], [3, 2, 1])

    async def test_set_locale_invalidates_catalog_but_keeps_entries(self) -> None:
        before = await terminal_state(self.cache.get_daily(ZodiacSign.aries, TODAY))
        self.cache.set_locale("es-MX")
        self.assertEqual(self.cache.locale, "es")
        unchanged = await terminal_state(self.cache.get_daily(ZodiacSign.aries, TODAY))
        self.assertEqual(unchanged.data, before.data)
        fresh = await terminal_state(self.cache.get_daily(ZodiacSign.aries, date(2024, 5, 16)))
        self.assertTrue(fresh.data.mood in {"Enérgico", "Enfocado"})


if __name__ == "__main__":
    unittest.main()
