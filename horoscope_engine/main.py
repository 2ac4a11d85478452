#!/usr/bin/env python3
"""Horoscope engine HTTP surface (FastAPI).

- Sign resolution: fixed calendar intervals
- Readings: deterministic selection from the locale content bank
- Storage: read-through cache with per-key single-flight generation
"""

import logging
import os
from datetime import date
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from horoscope_engine.errors import UnknownSign
from horoscope_engine.models import Error, Success
from horoscope_engine.reading_cache import terminal_state
from horoscope_engine.service import HoroscopeService
from horoscope_engine.signs import SIGN_PROFILES, ZodiacSign, parse_sign

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s - %(message)s",
)

logger = logging.getLogger("horoscope_engine")

app = FastAPI(title="Horoscope Engine")

allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

service = HoroscopeService()

ERROR_STATUS_CODES = {
    "content_unavailable": 503,
    "content_malformed": 500,
    "unexpected": 500,
}

ERROR_DETAILS = {
    "content_unavailable": "Horoscope content is temporarily unavailable",
    "content_malformed": "Horoscope content is incomplete for this request",
    "unexpected": "Failed to load horoscope",
}


def _sign_or_404(raw: str) -> ZodiacSign:
    try:
        return parse_sign(raw)
    except UnknownSign as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from None


def _public_reason(state: Error) -> str:
    # Internal reasons may carry file paths or parser output.
    logger.warning("Reading request failed (%s): %s", state.kind, state.reason)
    return ERROR_DETAILS.get(state.kind, ERROR_DETAILS["unexpected"])


def _state_payload(state: Any) -> dict[str, Any]:
    if isinstance(state, Success):
        return {"status": "success", "reading": state.data.model_dump(mode="json")}
    if isinstance(state, Error):
        return {"status": "error", "kind": state.kind, "reason": _public_reason(state)}
    return {"status": "loading"}


def _success_or_raise(state: Any) -> dict[str, Any]:
    if isinstance(state, Error):
        raise HTTPException(status_code=ERROR_STATUS_CODES.get(state.kind, 500), detail=_public_reason(state))
    return _state_payload(state)


# ------------------------------------------------------------------------------
# API endpoints: Health Check
# ------------------------------------------------------------------------------
@app.get("/health")
async def health():
    return {"status": "ok", **(await service.stats())}


# ------------------------------------------------------------------------------
# API endpoints: Signs
# ------------------------------------------------------------------------------
@app.get("/signs")
def list_signs():
    return {"signs": [service.sign_details(sign) for sign in SIGN_PROFILES]}


@app.get("/signs/resolve")
def resolve_sign_endpoint(on: date = Query(..., alias="date", description="Calendar date (YYYY-MM-DD)")):
    sign = service.resolve_sign(on)
    return {"date": on.isoformat(), "sign": sign.value, "details": service.sign_details(sign)}


@app.get("/signs/{sign}")
def get_sign(sign: str):
    return service.sign_details(_sign_or_404(sign))


# ------------------------------------------------------------------------------
# API endpoints: Readings
# ------------------------------------------------------------------------------
@app.get("/horoscope/daily/{sign}")
async def get_daily_horoscope(
    sign: str,
    on: Optional[date] = Query(None, alias="date", description="Reading date, defaults to today"),
):
    state = await terminal_state(service.get_daily_horoscope(_sign_or_404(sign), on))
    return _success_or_raise(state)


@app.get("/horoscope/weekly/{sign}")
async def get_weekly_horoscope(
    sign: str,
    on: Optional[date] = Query(None, alias="date", description="Any date inside the requested week"),
):
    state = await terminal_state(service.get_weekly_horoscope(_sign_or_404(sign), on))
    return _success_or_raise(state)


@app.get("/horoscope/range/{sign}")
async def get_horoscope_range(
    sign: str,
    start: date = Query(..., description="First date (inclusive)"),
    end: date = Query(..., description="Last date (inclusive)"),
):
    parsed = _sign_or_404(sign)
    try:
        states = await service.get_horoscope_range(parsed, start, end)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None
    return {
        "sign": parsed.value,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "readings": [_state_payload(state) for state in states],
    }


@app.get("/horoscope/by-birthdate")
async def get_horoscope_by_birthdate(
    birthdate: date = Query(..., description="Birthdate (YYYY-MM-DD)"),
    on: Optional[date] = Query(None, alias="date", description="Reading date, defaults to today"),
):
    state = await terminal_state(service.get_user_daily_horoscope(birthdate, on))
    payload = _success_or_raise(state)
    payload["sign"] = service.resolve_sign(birthdate).value
    return payload


@app.get("/horoscope/{reading_id}")
async def get_horoscope_by_id(reading_id: str):
    reading = await service.get_horoscope_by_id(reading_id)
    if reading is None:
        raise HTTPException(status_code=404, detail=f"No cached reading with id '{reading_id}'")
    return {"reading": reading.model_dump(mode="json")}


# ------------------------------------------------------------------------------
# API endpoints: Compatibility
# ------------------------------------------------------------------------------
@app.get("/compatibility")
def get_compatibility(
    sign_a: str = Query(..., description="First sign"),
    sign_b: str = Query(..., description="Second sign"),
):
    report = service.get_compatibility(_sign_or_404(sign_a), _sign_or_404(sign_b))
    return {
        "sign_a": report.sign_a.value,
        "sign_b": report.sign_b.value,
        "level": report.level.value,
        "description": report.description,
    }


# ------------------------------------------------------------------------------
# API endpoints: Cache maintenance
# ------------------------------------------------------------------------------
@app.post("/cache/evict")
async def evict_cache(
    days_to_keep: Optional[int] = Query(None, ge=0, description="Daily retention in days"),
    weeks_to_keep: Optional[int] = Query(None, ge=0, description="Weekly retention in weeks"),
):
    result = await service.clear_old_cache(days_to_keep, weeks_to_keep)
    logger.info("Cache eviction requested: %s", result)
    return result
