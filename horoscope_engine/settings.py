"""Environment-driven configuration for the horoscope engine."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

MODULE_DIR = Path(__file__).resolve().parent
REPO_ROOT = MODULE_DIR.parent

# Existing process variables win over the .env file.
load_dotenv(dotenv_path=REPO_ROOT / ".env", override=False)


def env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name, str(default)).strip()
    try:
        return max(minimum, int(raw))
    except ValueError:
        return default


def env_optional_int(name: str) -> int | None:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


CONTENT_ROOT = Path(os.getenv("HOROSCOPE_CONTENT_PATH", "").strip() or MODULE_DIR / "content").expanduser()
CONTENT_FILE_NAME = "zodiac.json"
DEFAULT_LOCALE = os.getenv("HOROSCOPE_DEFAULT_LOCALE", "en").strip() or "en"
LOCALE = os.getenv("HOROSCOPE_LOCALE", DEFAULT_LOCALE).strip() or DEFAULT_LOCALE

HOROSCOPE_CACHE_DAYS = env_int("HOROSCOPE_CACHE_DAYS", 30, minimum=0)
WEEKLY_HOROSCOPE_CACHE_WEEKS = env_int("WEEKLY_HOROSCOPE_CACHE_WEEKS", 8, minimum=0)
READING_STORE_MAX_ITEMS = env_optional_int("READING_STORE_MAX_ITEMS")
