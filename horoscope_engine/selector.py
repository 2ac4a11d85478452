"""Deterministic template selection for daily and weekly readings.

Selection never draws random numbers: the template index is a pure
function of the date, and every derived numeric field is a pure function
of that index, so regenerating a reading from the same content bank
always yields an identical value.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from horoscope_engine.content_catalog import ContentBank, WeeklyTemplate
from horoscope_engine.errors import ContentMalformed
from horoscope_engine.models import Reading, WeeklyReading, daily_key, week_end_for, weekly_key
from horoscope_engine.signs import SIGN_PROFILES, ZodiacSign, parse_sign

logger = logging.getLogger("selector")

_EPOCH = date(1970, 1, 1)

FALLBACK_WEEKLY = WeeklyTemplate(
    id="generic_weekly",
    general="This week brings opportunities for growth and self-reflection.",
    love="Relationships benefit from open communication and understanding.",
    career="Professional matters require patience and strategic thinking.",
    health="Focus on balance between activity and rest for optimal well-being.",
    lucky_days=["Tuesday", "Friday"],
    challenging_days=["Wednesday"],
    overall_trend="Positive",
    tags=["growth", "balance", "opportunity"],
)


def epoch_day(day: date) -> int:
    return (day - _EPOCH).days


def week_start_for(day: date) -> date:
    """Monday on or before `day` (ISO weeks)."""
    return day - timedelta(days=day.weekday())


def intensity_for_index(index: int) -> float:
    return round(0.5 + 0.1 * (index % 5), 2)


def daily_index(day: date, template_count: int) -> int:
    return epoch_day(day) % template_count


def weekly_index(week_start: date, template_count: int) -> int:
    return (epoch_day(week_start) // 7) % template_count


def _compatibility_sign(raw: str, sign: ZodiacSign, template_id: str) -> ZodiacSign:
    try:
        return parse_sign(raw)
    except ValueError:
        fallback = SIGN_PROFILES[sign].compatible_signs[0]
        logger.warning(
            "Template %s references unknown compatibility sign %r; using %s",
            template_id,
            raw,
            fallback.value,
        )
        return fallback


def select_daily(bank: ContentBank, sign: ZodiacSign, day: date) -> Reading:
    if bank.sign(sign) is None:
        raise ContentMalformed(f"Sign '{sign.value}' is missing from the {bank.locale} content bank")
    templates = bank.daily_templates(sign)
    if not templates:
        raise ContentMalformed(f"No daily templates for '{sign.value}' in the {bank.locale} content bank")

    index = daily_index(day, len(templates))
    template = templates[index]
    return Reading(
        id=daily_key(sign, day),
        sign=sign,
        date=day,
        general=template.general,
        love=template.love,
        career=template.career,
        health=template.health,
        lucky_number=template.lucky_number,
        lucky_color=template.lucky_color,
        compatibility=_compatibility_sign(template.compatibility, sign, template.id),
        mood=template.mood,
        tags=tuple(template.tags),
        intensity=intensity_for_index(index),
    )


def select_weekly(bank: ContentBank, sign: ZodiacSign, week_start: date) -> WeeklyReading:
    """Weekly reading for the ISO week containing `week_start`.

    Any date may be passed; it is normalized to the Monday of its week.
    An empty (or absent) weekly list yields the generic fallback reading.
    """
    if bank.sign(sign) is None:
        raise ContentMalformed(f"Sign '{sign.value}' is missing from the {bank.locale} content bank")
    start = week_start_for(week_start)
    templates = bank.weekly_templates(sign)
    if templates:
        index = weekly_index(start, len(templates))
        template = templates[index]
        intensity = intensity_for_index(index)
    else:
        template = FALLBACK_WEEKLY
        intensity = intensity_for_index(0)

    return WeeklyReading(
        id=weekly_key(sign, start),
        sign=sign,
        week_start_date=start,
        week_end_date=week_end_for(start),
        general=template.general,
        love=template.love,
        career=template.career,
        health=template.health,
        lucky_days=tuple(template.lucky_days),
        challenging_days=tuple(template.challenging_days),
        overall_trend=template.overall_trend,
        tags=tuple(template.tags),
        intensity=intensity,
    )


def template_id_for(bank: ContentBank, reading: Reading | WeeklyReading) -> str:
    """Template id a reading was derived from, for audit logging."""
    if isinstance(reading, Reading):
        templates = bank.daily_templates(reading.sign)
        if templates:
            return templates[daily_index(reading.date, len(templates))].id
        return ""
    templates = bank.weekly_templates(reading.sign)
    if templates:
        return templates[weekly_index(reading.week_start_date, len(templates))].id
    return FALLBACK_WEEKLY.id
