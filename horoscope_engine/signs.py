"""Static zodiac sign table and calendar-interval sign resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from horoscope_engine.errors import UnknownSign

logger = logging.getLogger("sign_resolver")


class ZodiacSign(str, Enum):
    aries = "aries"
    taurus = "taurus"
    gemini = "gemini"
    cancer = "cancer"
    leo = "leo"
    virgo = "virgo"
    libra = "libra"
    scorpio = "scorpio"
    sagittarius = "sagittarius"
    capricorn = "capricorn"
    aquarius = "aquarius"
    pisces = "pisces"


class Element(str, Enum):
    fire = "Fire"
    earth = "Earth"
    air = "Air"
    water = "Water"


class Quality(str, Enum):
    cardinal = "Cardinal"
    fixed = "Fixed"
    mutable = "Mutable"


@dataclass(frozen=True)
class SignProfile:
    display_name: str
    symbol: str
    element: Element
    quality: Quality
    ruling_planet: str
    start_month: int
    start_day: int
    end_month: int
    end_day: int
    date_range: str
    lucky_numbers: tuple[int, ...]
    lucky_colors: tuple[str, ...]
    compatible_signs: tuple[ZodiacSign, ...]
    description: str
    strengths: tuple[str, ...]
    challenges: tuple[str, ...]
    keywords: tuple[str, ...]

    @property
    def wraps_year(self) -> bool:
        return self.start_month > self.end_month


@dataclass(frozen=True)
class SignInfo:
    sign: ZodiacSign
    element: Element
    quality: Quality
    ruling_planet: str
    compatible_signs: tuple[ZodiacSign, ...]
    strengths: tuple[str, ...]
    challenges: tuple[str, ...]


S = ZodiacSign

SIGN_PROFILES: dict[ZodiacSign, SignProfile] = {
    S.aries: SignProfile(
        display_name="Aries",
        symbol="♈",
        element=Element.fire,
        quality=Quality.cardinal,
        ruling_planet="Mars",
        start_month=3, start_day=21, end_month=4, end_day=19,
        date_range="March 21 - April 19",
        lucky_numbers=(1, 8, 17),
        lucky_colors=("Red", "Orange", "Yellow"),
        compatible_signs=(S.leo, S.sagittarius, S.gemini, S.aquarius),
        description="Dynamic, energetic pioneers who love to be first in everything they do.",
        strengths=("Leadership", "Courage", "Independence", "Energy", "Initiative"),
        challenges=("Impatience", "Aggression", "Selfishness", "Impulsiveness"),
        keywords=("Pioneer", "Leader", "Warrior", "Initiator", "Trailblazer"),
    ),
    S.taurus: SignProfile(
        display_name="Taurus",
        symbol="♉",
        element=Element.earth,
        quality=Quality.fixed,
        ruling_planet="Venus",
        start_month=4, start_day=20, end_month=5, end_day=20,
        date_range="April 20 - May 20",
        lucky_numbers=(2, 6, 9, 12, 24),
        lucky_colors=("Green", "Pink", "Blue"),
        compatible_signs=(S.virgo, S.capricorn, S.cancer, S.pisces),
        description="Practical, reliable, and determined individuals who value security and comfort.",
        strengths=("Reliability", "Patience", "Loyalty", "Determination", "Practicality"),
        challenges=("Stubbornness", "Possessiveness", "Materialism", "Resistance to change"),
        keywords=("Builder", "Preserver", "Sensualist", "Provider", "Stabilizer"),
    ),
    S.gemini: SignProfile(
        display_name="Gemini",
        symbol="♊",
        element=Element.air,
        quality=Quality.mutable,
        ruling_planet="Mercury",
        start_month=5, start_day=21, end_month=6, end_day=20,
        date_range="May 21 - June 20",
        lucky_numbers=(5, 7, 14, 23),
        lucky_colors=("Yellow", "Silver", "Green"),
        compatible_signs=(S.libra, S.aquarius, S.aries, S.leo),
        description="Curious, adaptable communicators who thrive on variety and intellectual stimulation.",
        strengths=("Versatility", "Intelligence", "Communication", "Curiosity", "Adaptability"),
        challenges=("Inconsistency", "Superficiality", "Restlessness", "Indecisiveness"),
        keywords=("Communicator", "Messenger", "Thinker", "Adapter", "Networker"),
    ),
    S.cancer: SignProfile(
        display_name="Cancer",
        symbol="♋",
        element=Element.water,
        quality=Quality.cardinal,
        ruling_planet="Moon",
        start_month=6, start_day=21, end_month=7, end_day=22,
        date_range="June 21 - July 22",
        lucky_numbers=(2, 7, 11, 16, 20, 25),
        lucky_colors=("White", "Silver", "Sea Green"),
        compatible_signs=(S.scorpio, S.pisces, S.taurus, S.virgo),
        description="Nurturing, intuitive, and emotional beings who value home and family above all.",
        strengths=("Empathy", "Intuition", "Loyalty", "Protectiveness", "Imagination"),
        challenges=("Over-sensitivity", "Moodiness", "Clinginess", "Pessimism"),
        keywords=("Nurturer", "Protector", "Caregiver", "Empath", "Healer"),
    ),
    S.leo: SignProfile(
        display_name="Leo",
        symbol="♌",
        element=Element.fire,
        quality=Quality.fixed,
        ruling_planet="Sun",
        start_month=7, start_day=23, end_month=8, end_day=22,
        date_range="July 23 - August 22",
        lucky_numbers=(1, 3, 10, 19),
        lucky_colors=("Gold", "Orange", "Red"),
        compatible_signs=(S.aries, S.sagittarius, S.gemini, S.libra),
        description="Confident, generous, and creative leaders who love to shine and inspire others.",
        strengths=("Confidence", "Generosity", "Creativity", "Leadership", "Warmth"),
        challenges=("Arrogance", "Self-centeredness", "Stubbornness", "Inflexibility"),
        keywords=("Performer", "Creator", "Leader", "Entertainer", "Inspirer"),
    ),
    S.virgo: SignProfile(
        display_name="Virgo",
        symbol="♍",
        element=Element.earth,
        quality=Quality.mutable,
        ruling_planet="Mercury",
        start_month=8, start_day=23, end_month=9, end_day=22,
        date_range="August 23 - September 22",
        lucky_numbers=(3, 15, 20, 27),
        lucky_colors=("Navy Blue", "Grey", "Brown"),
        compatible_signs=(S.taurus, S.capricorn, S.cancer, S.scorpio),
        description="Analytical, practical perfectionists who serve others with dedication and precision.",
        strengths=("Attention to Detail", "Reliability", "Modesty", "Intelligence", "Practicality"),
        challenges=("Over-criticism", "Worry", "Perfectionism", "Conservative nature"),
        keywords=("Analyzer", "Perfecter", "Server", "Helper", "Organizer"),
    ),
    S.libra: SignProfile(
        display_name="Libra",
        symbol="♎",
        element=Element.air,
        quality=Quality.cardinal,
        ruling_planet="Venus",
        start_month=9, start_day=23, end_month=10, end_day=22,
        date_range="September 23 - October 22",
        lucky_numbers=(4, 6, 13, 15, 24),
        lucky_colors=("Pink", "Blue", "Green"),
        compatible_signs=(S.gemini, S.aquarius, S.leo, S.sagittarius),
        description="Diplomatic, fair-minded individuals who seek harmony and beauty in all aspects of life.",
        strengths=("Diplomacy", "Fairness", "Social Skills", "Artistic Sense", "Idealism"),
        challenges=("Indecisiveness", "Superficiality", "Detachment", "Self-pity"),
        keywords=("Diplomat", "Peacemaker", "Artist", "Harmonizer", "Mediator"),
    ),
    S.scorpio: SignProfile(
        display_name="Scorpio",
        symbol="♏",
        element=Element.water,
        quality=Quality.fixed,
        ruling_planet="Mars/Pluto",
        start_month=10, start_day=23, end_month=11, end_day=21,
        date_range="October 23 - November 21",
        lucky_numbers=(8, 11, 18, 22),
        lucky_colors=("Deep Red", "Black", "Maroon"),
        compatible_signs=(S.cancer, S.pisces, S.virgo, S.capricorn),
        description="Intense, passionate, and mysterious souls who transform themselves and others.",
        strengths=("Determination", "Passion", "Loyalty", "Resourcefulness", "Bravery"),
        challenges=("Jealousy", "Secretiveness", "Resentfulness", "Controlling nature"),
        keywords=("Transformer", "Investigator", "Healer", "Mystic", "Detective"),
    ),
    S.sagittarius: SignProfile(
        display_name="Sagittarius",
        symbol="♐",
        element=Element.fire,
        quality=Quality.mutable,
        ruling_planet="Jupiter",
        start_month=11, start_day=22, end_month=12, end_day=21,
        date_range="November 22 - December 21",
        lucky_numbers=(3, 9, 15, 21, 22),
        lucky_colors=("Purple", "Turquoise", "Orange"),
        compatible_signs=(S.aries, S.leo, S.libra, S.aquarius),
        description="Optimistic, freedom-loving adventurers who seek truth and meaning through exploration.",
        strengths=("Optimism", "Honesty", "Adventure", "Independence", "Humor"),
        challenges=("Over-confidence", "Carelessness", "Impatience", "Tactlessness"),
        keywords=("Explorer", "Philosopher", "Teacher", "Adventurer", "Seeker"),
    ),
    S.capricorn: SignProfile(
        display_name="Capricorn",
        symbol="♑",
        element=Element.earth,
        quality=Quality.cardinal,
        ruling_planet="Saturn",
        start_month=12, start_day=22, end_month=1, end_day=19,
        date_range="December 22 - January 19",
        lucky_numbers=(6, 8, 9, 10, 26),
        lucky_colors=("Brown", "Black", "Grey"),
        compatible_signs=(S.taurus, S.virgo, S.scorpio, S.pisces),
        description="Ambitious, disciplined achievers who work steadily toward their goals with patience.",
        strengths=("Ambition", "Discipline", "Responsibility", "Patience", "Practicality"),
        challenges=("Pessimism", "Fatalism", "Stubbornness", "Miserliness"),
        keywords=("Achiever", "Builder", "Leader", "Strategist", "Master"),
    ),
    S.aquarius: SignProfile(
        display_name="Aquarius",
        symbol="♒",
        element=Element.air,
        quality=Quality.fixed,
        ruling_planet="Saturn/Uranus",
        start_month=1, start_day=20, end_month=2, end_day=18,
        date_range="January 20 - February 18",
        lucky_numbers=(4, 7, 11, 22, 29),
        lucky_colors=("Blue", "Silver", "Aqua"),
        compatible_signs=(S.gemini, S.libra, S.aries, S.sagittarius),
        description="Independent, innovative humanitarians who work for the betterment of society.",
        strengths=("Independence", "Originality", "Humanitarianism", "Intelligence", "Progressiveness"),
        challenges=("Detachment", "Rebelliousness", "Unpredictability", "Extremism"),
        keywords=("Innovator", "Humanitarian", "Rebel", "Visionary", "Revolutionary"),
    ),
    S.pisces: SignProfile(
        display_name="Pisces",
        symbol="♓",
        element=Element.water,
        quality=Quality.mutable,
        ruling_planet="Jupiter/Neptune",
        start_month=2, start_day=19, end_month=3, end_day=20,
        date_range="February 19 - March 20",
        lucky_numbers=(3, 9, 12, 15, 18, 24),
        lucky_colors=("Sea Green", "Lavender", "Purple"),
        compatible_signs=(S.cancer, S.scorpio, S.taurus, S.capricorn),
        description="Compassionate, intuitive dreamers who navigate life through emotion and imagination.",
        strengths=("Compassion", "Intuition", "Creativity", "Gentleness", "Wisdom"),
        challenges=("Over-sensitivity", "Escapism", "Idealism", "Secretiveness"),
        keywords=("Dreamer", "Mystic", "Artist", "Healer", "Intuitive"),
    ),
}

# Returned only if the interval table ever stops covering a date.
DEFAULT_SIGN = ZodiacSign.aries


def profile(sign: ZodiacSign) -> SignProfile:
    return SIGN_PROFILES[sign]


def parse_sign(value: Any) -> ZodiacSign:
    """Accept a ZodiacSign, its id ("leo") or display name ("Leo")."""
    if isinstance(value, ZodiacSign):
        return value
    raw = str(value or "").strip().lower()
    try:
        return ZodiacSign(raw)
    except ValueError:
        raise UnknownSign(f"Unknown zodiac sign: {value!r}") from None


def _matches(p: SignProfile, month: int, day: int) -> bool:
    if p.wraps_year:
        return (month == p.start_month and day >= p.start_day) or (
            month == p.end_month and day <= p.end_day
        )
    return (
        (month == p.start_month and day >= p.start_day)
        or (month == p.end_month and day <= p.end_day)
        or (p.start_month < month < p.end_month)
    )


def resolve_sign(day: date) -> ZodiacSign:
    """Map a calendar date to its sign. Never raises."""
    for sign, p in SIGN_PROFILES.items():
        if _matches(p, day.month, day.day):
            return sign
    logger.warning("No sign interval matched %s; using default sign %s", day.isoformat(), DEFAULT_SIGN.value)
    return DEFAULT_SIGN


def sign_info(sign: ZodiacSign) -> SignInfo:
    p = SIGN_PROFILES[sign]
    return SignInfo(
        sign=sign,
        element=p.element,
        quality=p.quality,
        ruling_planet=p.ruling_planet,
        compatible_signs=p.compatible_signs,
        strengths=p.strengths,
        challenges=p.challenges,
    )


def sign_details(sign: ZodiacSign) -> dict[str, Any]:
    """Full JSON-friendly profile for display surfaces."""
    p = SIGN_PROFILES[sign]
    return {
        "id": sign.value,
        "name": p.display_name,
        "symbol": p.symbol,
        "date_range": p.date_range,
        "element": p.element.value,
        "quality": p.quality.value,
        "ruling_planet": p.ruling_planet,
        "description": p.description,
        "strengths": list(p.strengths),
        "challenges": list(p.challenges),
        "lucky_numbers": list(p.lucky_numbers),
        "lucky_colors": list(p.lucky_colors),
        "compatible_signs": [s.value for s in p.compatible_signs],
        "keywords": list(p.keywords),
    }
