"""Materialized readings and the Loading/Success/Error cache state."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Generic, Literal, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

from horoscope_engine.signs import SIGN_PROFILES, ZodiacSign


def daily_key(sign: ZodiacSign, day: date) -> str:
    return f"{sign.value}_{day.isoformat()}"


def weekly_key(sign: ZodiacSign, week_start: date) -> str:
    return f"{sign.value}_week_{week_start.isoformat()}"


class ReadingCategory(str, Enum):
    general = "general"
    love = "love"
    career = "career"
    health = "health"


class Reading(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    sign: ZodiacSign
    date: date
    general: str
    love: str
    career: str
    health: str
    lucky_number: int
    lucky_color: str
    compatibility: ZodiacSign
    mood: str
    tags: tuple[str, ...] = ()
    intensity: float = Field(0.5, ge=0.0, le=1.0)

    @property
    def subject_date(self) -> date:
        return self.date

    def summary(self) -> str:
        name = SIGN_PROFILES[self.sign].display_name
        return f"Today brings {self.mood.lower()} energy for {name}. {self.general}"

    def category_text(self, category: ReadingCategory) -> str:
        return getattr(self, ReadingCategory(category).value)

    def is_today(self, today: date | None = None) -> bool:
        return self.date == (today or date.today())


class WeeklyReading(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    sign: ZodiacSign
    week_start_date: date
    week_end_date: date
    general: str
    love: str
    career: str
    health: str
    lucky_days: tuple[str, ...] = ()
    challenging_days: tuple[str, ...] = ()
    overall_trend: str
    tags: tuple[str, ...] = ()
    intensity: float = Field(0.5, ge=0.0, le=1.0)

    @property
    def subject_date(self) -> date:
        return self.week_start_date

    def contains(self, day: date) -> bool:
        return self.week_start_date <= day <= self.week_end_date

    def is_current_week(self, today: date | None = None) -> bool:
        return self.contains(today or date.today())


def week_end_for(week_start: date) -> date:
    return week_start + timedelta(days=6)


T = TypeVar("T")


@dataclass(frozen=True)
class Loading:
    status: Literal["loading"] = "loading"


@dataclass(frozen=True)
class Success(Generic[T]):
    data: T
    status: Literal["success"] = "success"


@dataclass(frozen=True)
class Error:
    reason: str
    kind: str = "unexpected"
    status: Literal["error"] = "error"


CacheState = Union[Loading, Success[T], Error]

LOADING = Loading()
