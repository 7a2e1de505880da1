"""Rates read/write endpoint.

Serves the rates table when a database is configured. Otherwise falls
back to the legacy append-only history file.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from tasa.exceptions import ParseError, StoreError
from tasa.normalizer import normalize_price

log = structlog.get_logger(__name__)

router = APIRouter()

_INVALID_PAYLOAD = "Invalid payload, requires { base, rates }"


@router.get("/rates")
async def get_rates(request: Request, latest: str | None = None) -> Response:
    """All persisted rates, or the history file entries as a fallback.

    Query params:
        latest: "1" returns only the newest history entry (file fallback only).
    """
    store = request.app.state.rate_store
    if store is not None:
        order = request.app.state.settings.store.read_order
        try:
            records = await store.list_rates(order=order)
        except StoreError as e:
            log.error("rates_read_failed", error=str(e))
            return PlainTextResponse(str(e), status_code=500)
        return JSONResponse(content=[r.to_dict() for r in records])

    history = request.app.state.history_file
    if latest == "1":
        entry = await asyncio.to_thread(history.latest_entry)
        return JSONResponse(content=entry.to_dict() if entry else None)
    entries = await asyncio.to_thread(history.read_entries)
    return JSONResponse(content=[e.to_dict() for e in entries])


def _parse_rates(raw: Any) -> dict[str, Decimal] | None:
    """Validate a {code: price} mapping; prices are returned unrounded."""
    if not isinstance(raw, dict) or not raw:
        return None
    parsed: dict[str, Decimal] = {}
    for code, price in raw.items():
        if isinstance(price, bool) or not isinstance(price, (int, float, str)):
            return None
        try:
            value = Decimal(str(price).strip().replace(",", ".", 1))
        except InvalidOperation:
            return None
        if not value.is_finite():
            return None
        parsed[str(code)] = value
    return parsed


@router.post("/rates")
async def post_rates(request: Request) -> Response:
    """Record a set of rates: body {base, rates: {code: price}, source?}.

    Upserts one row per code when a database is configured, otherwise
    appends a history entry. Returns 201 with what was created.
    """
    try:
        body = await request.json()
    except ValueError:
        return PlainTextResponse(_INVALID_PAYLOAD, status_code=400)

    if not isinstance(body, dict) or not body.get("base"):
        return PlainTextResponse(_INVALID_PAYLOAD, status_code=400)
    rates = _parse_rates(body.get("rates"))
    if rates is None:
        return PlainTextResponse(_INVALID_PAYLOAD, status_code=400)

    store = request.app.state.rate_store
    if store is not None:
        try:
            rounded = {code: normalize_price(str(price)) for code, price in rates.items()}
        except ParseError:
            return PlainTextResponse(_INVALID_PAYLOAD, status_code=400)
        created = []
        try:
            for code, price in rounded.items():
                created.extend(await store.upsert_rate(code, code, price))
        except StoreError as e:
            log.error("rates_write_failed", error=str(e))
            return PlainTextResponse(str(e), status_code=500)
        return JSONResponse(content=[r.to_dict() for r in created], status_code=201)

    # History entries keep the submitted values unrounded
    submitted = body["rates"]
    entry = await asyncio.to_thread(
        request.app.state.history_file.add_entry,
        base=str(body["base"]),
        rates={
            code: submitted[code] if isinstance(submitted[code], (int, float)) else float(price)
            for code, price in rates.items()
        },
        source=body.get("source"),
    )
    return JSONResponse(content=entry.to_dict(), status_code=201)
