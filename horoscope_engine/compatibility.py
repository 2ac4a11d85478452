from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from horoscope_engine.signs import SIGN_PROFILES, ZodiacSign


class CompatibilityLevel(str, Enum):
    high = "high"
    good = "good"
    moderate = "moderate"


@dataclass(frozen=True)
class CompatibilityReport:
    sign_a: ZodiacSign
    sign_b: ZodiacSign
    level: CompatibilityLevel
    description: str


def assess(sign_a: ZodiacSign, sign_b: ZodiacSign) -> CompatibilityReport:
    a = SIGN_PROFILES[sign_a]
    b = SIGN_PROFILES[sign_b]
    if sign_b in a.compatible_signs:
        level = CompatibilityLevel.high
        text = f"High compatibility! {a.display_name} and {b.display_name} share excellent harmony."
    elif a.element == b.element:
        level = CompatibilityLevel.good
        text = f"Good compatibility through shared {a.element.value} energy."
    else:
        level = CompatibilityLevel.moderate
        text = (
            f"Moderate compatibility. {a.display_name} and {b.display_name} "
            "can learn from each other's differences."
        )
    return CompatibilityReport(sign_a=sign_a, sign_b=sign_b, level=level, description=text)


def describe(sign_a: ZodiacSign, sign_b: ZodiacSign) -> str:
    return assess(sign_a, sign_b).description
