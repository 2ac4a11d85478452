"""Uvicorn launcher with environment-driven concurrency controls."""

import os

import uvicorn

from horoscope_engine.settings import env_int, env_optional_int


def uvicorn_options() -> dict:
    return {
        "host": os.getenv("HOST", "0.0.0.0"),
        "port": env_int("PORT", 8000, minimum=1),
        "workers": env_int("WEB_CONCURRENCY", 1, minimum=1),
        "backlog": env_int("UVICORN_BACKLOG", 2048, minimum=16),
        "timeout_keep_alive": env_int("UVICORN_TIMEOUT_KEEP_ALIVE", 5, minimum=1),
        "limit_concurrency": env_optional_int("UVICORN_LIMIT_CONCURRENCY"),
        "log_level": os.getenv("UVICORN_LOG_LEVEL", "info").strip() or "info",
    }


def main() -> None:
    # Readings are cached per process; more than one worker means one cache each.
    uvicorn.run("horoscope_engine.main:app", **uvicorn_options())


if __name__ == "__main__":
    main()
