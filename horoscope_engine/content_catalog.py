"""Locale-scoped content bank loading with default-locale fallback."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from horoscope_engine import settings
from horoscope_engine.errors import ContentUnavailable
from horoscope_engine.signs import ZodiacSign

logger = logging.getLogger("content_catalog")

_LOCALE_PATTERN = re.compile(r"^[a-z]{2,3}$")


def _camel(snake: str, camel: str) -> AliasChoices:
    return AliasChoices(camel, snake)


class ContentMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")
    version: str = "unversioned"
    last_updated: Optional[str] = Field(None, validation_alias=_camel("last_updated", "lastUpdated"))
    language: Optional[str] = None
    item_count: int = Field(0, validation_alias=_camel("item_count", "itemCount"))


class DailyTemplate(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str
    seed: int = 0
    general: str
    love: str
    career: str
    health: str
    lucky_number: int = Field(..., validation_alias=_camel("lucky_number", "luckyNumber"))
    lucky_color: str = Field(..., validation_alias=_camel("lucky_color", "luckyColor"))
    compatibility: str
    mood: str
    tags: list[str] = Field(default_factory=list)


class WeeklyTemplate(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str
    week_number: int = Field(0, validation_alias=_camel("week_number", "weekNumber"))
    start_date: Optional[str] = Field(None, validation_alias=_camel("start_date", "startDate"))
    end_date: Optional[str] = Field(None, validation_alias=_camel("end_date", "endDate"))
    general: str
    love: str
    career: str
    health: str
    lucky_days: list[str] = Field(default_factory=list, validation_alias=_camel("lucky_days", "luckyDays"))
    challenging_days: list[str] = Field(
        default_factory=list, validation_alias=_camel("challenging_days", "challengingDays")
    )
    overall_trend: str = Field("Positive", validation_alias=_camel("overall_trend", "overallTrend"))
    tags: list[str] = Field(default_factory=list)


class Predictions(BaseModel):
    model_config = ConfigDict(extra="ignore")
    daily: list[DailyTemplate] = Field(default_factory=list)
    weekly: list[WeeklyTemplate] = Field(default_factory=list)


class SignContent(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: ZodiacSign
    date_range: Optional[str] = Field(None, validation_alias=_camel("date_range", "dateRange"))
    element: Optional[str] = None
    symbol: Optional[str] = None
    ruling_planet: Optional[str] = Field(None, validation_alias=_camel("ruling_planet", "rulingPlanet"))
    lucky_numbers: list[int] = Field(default_factory=list, validation_alias=_camel("lucky_numbers", "luckyNumbers"))
    lucky_colors: list[str] = Field(default_factory=list, validation_alias=_camel("lucky_colors", "luckyColors"))
    compatible_signs: list[str] = Field(
        default_factory=list, validation_alias=_camel("compatible_signs", "compatibleSigns")
    )
    qualities: list[str] = Field(default_factory=list)
    description: str = ""
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    predictions: Predictions = Field(default_factory=Predictions)

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class ContentDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")
    metadata: ContentMetadata = Field(default_factory=ContentMetadata)
    signs: list[SignContent]

    @field_validator("signs", mode="before")
    @classmethod
    def _drop_unknown_signs(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        known = {sign.value for sign in ZodiacSign}
        kept = []
        for entry in value:
            raw = entry.get("id") if isinstance(entry, dict) else None
            if isinstance(raw, str) and raw.strip().lower() not in known:
                logger.warning("Skipping content entry for unknown sign %r", raw)
                continue
            kept.append(entry)
        return kept


class ContentBank:
    """Immutable, parsed content for one locale."""

    def __init__(self, locale: str, document: ContentDocument):
        self.locale = locale
        self.metadata = document.metadata
        self._signs: dict[ZodiacSign, SignContent] = {}
        for entry in document.signs:
            if entry.id in self._signs:
                logger.warning("Duplicate sign entry '%s' in %s content; keeping the first", entry.id.value, locale)
                continue
            self._signs[entry.id] = entry

    @property
    def version(self) -> str:
        return self.metadata.version

    def sign(self, sign: ZodiacSign) -> SignContent | None:
        return self._signs.get(sign)

    def daily_templates(self, sign: ZodiacSign) -> list[DailyTemplate]:
        entry = self._signs.get(sign)
        return list(entry.predictions.daily) if entry else []

    def weekly_templates(self, sign: ZodiacSign) -> list[WeeklyTemplate]:
        entry = self._signs.get(sign)
        return list(entry.predictions.weekly) if entry else []

    def signs(self) -> list[ZodiacSign]:
        return list(self._signs)


class _LocaleLoadError(Exception):
    pass


def normalize_locale(locale: Any) -> str:
    """Reduce "en-US" / "en_us" / " EN " to "en"."""
    raw = str(locale or "").strip().lower().replace("_", "-")
    return raw.split("-", 1)[0]


def parse_document(raw: str | bytes | dict[str, Any], locale: str = "en") -> ContentBank:
    """Parse a content document; raises json/pydantic errors unchanged."""
    payload = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    document = ContentDocument.model_validate(payload)
    return ContentBank(locale, document)


class ContentCatalog:
    """Loads `<root>/<locale>/zodiac.json` and keeps parsed banks in memory.

    A failed locale falls back once to the default locale. Banks are cached
    per requested locale until `invalidate()` is called. Concurrent first
    loads of one locale share a single read; other locales never wait.
    """

    def __init__(
        self,
        content_root: Path | str | None = None,
        default_locale: str | None = None,
        file_name: str | None = None,
    ):
        self.content_root = Path(content_root or settings.CONTENT_ROOT)
        self.default_locale = normalize_locale(default_locale or settings.DEFAULT_LOCALE)
        self.file_name = file_name or settings.CONTENT_FILE_NAME
        self._banks: dict[str, ContentBank] = {}
        self._inflight: dict[str, asyncio.Task] = {}

    def _document_path(self, locale: str) -> Path:
        return self.content_root / locale / self.file_name

    def _read_bank(self, locale: str) -> ContentBank:
        if not _LOCALE_PATTERN.match(locale):
            raise _LocaleLoadError(f"invalid locale identifier {locale!r}")
        path = self._document_path(locale)
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise _LocaleLoadError(f"cannot read {path}: {exc}") from exc
        try:
            return parse_document(raw, locale)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise _LocaleLoadError(f"malformed content document {path}: {exc}") from exc

    async def load(self, locale: str | None = None) -> ContentBank:
        return await self._load_locale(normalize_locale(locale or self.default_locale))

    async def _load_locale(self, locale: str) -> ContentBank:
        cached = self._banks.get(locale)
        if cached is not None:
            return cached
        task = self._inflight.get(locale)
        if task is None:
            task = asyncio.ensure_future(self._resolve(locale))
            self._inflight[locale] = task
            task.add_done_callback(lambda done: self._finish_load(locale, done))
        return await asyncio.shield(task)

    def _finish_load(self, locale: str, task: asyncio.Task) -> None:
        if self._inflight.get(locale) is task:
            del self._inflight[locale]
        if not task.cancelled():
            task.exception()

    async def _resolve(self, requested: str) -> ContentBank:
        try:
            bank = await asyncio.to_thread(self._read_bank, requested)
        except _LocaleLoadError as exc:
            if requested == self.default_locale:
                logger.error("Default locale '%s' failed to load: %s", requested, exc)
                raise ContentUnavailable(f"Content for locale '{requested}' is unavailable") from exc
            logger.warning("Locale '%s' failed to load (%s); falling back to '%s'", requested, exc, self.default_locale)
            try:
                bank = await self._load_locale(self.default_locale)
            except ContentUnavailable as fallback_exc:
                raise ContentUnavailable(
                    f"Content for locale '{requested}' and fallback '{self.default_locale}' is unavailable"
                ) from fallback_exc
        self._banks[requested] = bank
        logger.info(
            "Content bank loaded: requested=%s resolved=%s version=%s signs=%d",
            requested,
            bank.locale,
            bank.version,
            len(bank.signs()),
        )
        return bank

    def invalidate(self) -> None:
        self._banks.clear()

    def content_exists(self, locale: str) -> bool:
        normalized = normalize_locale(locale)
        if not _LOCALE_PATTERN.match(normalized):
            return False
        return self._document_path(normalized).is_file()

    def available_locales(self) -> list[str]:
        if not self.content_root.is_dir():
            return []
        return sorted(
            child.name
            for child in self.content_root.iterdir()
            if child.is_dir() and self.content_exists(child.name)
        )
