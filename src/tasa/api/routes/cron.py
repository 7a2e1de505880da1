"""Scheduled ingestion endpoints, authorised by a shared-secret bearer token.

All variants respond with the same shape and the same partial-failure
policy: every rate is attempted, the response lists what was written
and what failed, and the status is 500 if anything failed.
"""

from __future__ import annotations

import secrets

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from tasa.models import IngestionReport

log = structlog.get_logger(__name__)

router = APIRouter()


def _is_authorized(request: Request) -> bool:
    secret = request.app.state.settings.cron.secret.get_secret_value()
    if not secret:
        # Unconfigured secret must never authorise an empty header
        return False
    header = request.headers.get("authorization", "")
    return secrets.compare_digest(header.encode(), f"Bearer {secret}".encode())


def _unauthorized() -> Response:
    return PlainTextResponse("Unauthorized", status_code=401)


async def _ingest(request: Request, endpoint: str, run: str) -> Response:
    """Authorise, then run one ingestion variant and render its report."""
    if not _is_authorized(request):
        log.warning("cron_unauthorized", endpoint=endpoint)
        return _unauthorized()

    ingestor = request.app.state.ingestor
    if ingestor is None:
        return JSONResponse(
            content={"success": False, "error": "No rates database configured"},
            status_code=503,
        )

    report: IngestionReport = await getattr(ingestor, run)()
    return JSONResponse(
        content=report.to_dict(),
        status_code=200 if report.success else 500,
    )


@router.get("/update-bcv-rates")
async def update_bcv_rates(request: Request) -> Response:
    """Ingest the BCV official USD and EUR rates."""
    return await _ingest(request, "update-bcv-rates", "ingest_bcv")


@router.get("/update-binance-rates")
async def update_binance_rates(request: Request) -> Response:
    """Ingest the Binance P2P USDT rate."""
    return await _ingest(request, "update-binance-rates", "ingest_p2p")


@router.get("/update-rates")
async def update_rates(request: Request) -> Response:
    """Ingest every rate: BCV USD, BCV EUR and Binance USDT."""
    return await _ingest(request, "update-rates", "ingest_all")
