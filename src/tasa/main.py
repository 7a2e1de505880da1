"""Entry points for the rate service.

Wires all components together once at process start and hands them to
the FastAPI app through its lifespan. The same components back the
one-shot ``tasa-ingest`` command used by schedulers without HTTP.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. HttpFetchers (BCV with its TLS policy, P2P verified)
4. RatesDatabase + RateStore (only when STORE__DB_PATH is set)
5. RatesHistoryFile (legacy fallback for /api/rates)
6. RateIngestor
"""

import asyncio
import json
import sys
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from tasa.config import AppSettings, SourceSettings
from tasa.ingestion import RateIngestor
from tasa.logging import get_logger, setup_logging
from tasa.sources.fetcher import HttpFetcher
from tasa.store.database import RatesDatabase
from tasa.store.history import RatesHistoryFile
from tasa.store.rates import RateStore


def _bcv_verify(settings: SourceSettings) -> bool | str:
    """TLS verification for BCV: an explicit trust anchor wins over the flag."""
    if settings.bcv_ca_bundle:
        return settings.bcv_ca_bundle
    return settings.bcv_verify_tls


async def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build and connect all service components from settings.

    Returns:
        Dict mapping component names to instances. ``database`` and
        ``rate_store`` are None when no database path is configured.
    """
    logger = get_logger("tasa.main")

    bcv_fetcher = HttpFetcher(
        settings.sources.user_agent,
        verify=_bcv_verify(settings.sources),
        timeout=settings.sources.timeout,
        name="bcv",
    )
    p2p_fetcher = HttpFetcher(
        settings.sources.user_agent,
        verify=True,
        timeout=settings.sources.timeout,
        name="binance_p2p",
    )
    if _bcv_verify(settings.sources) is False:
        logger.warning("bcv_tls_verification_disabled", url=settings.sources.bcv_url)

    database: RatesDatabase | None = None
    rate_store: RateStore | None = None
    if settings.store.db_path:
        database = RatesDatabase(settings.store.db_path)
        await database.connect()
        rate_store = RateStore(database)
    else:
        logger.warning(
            "no_rates_database_configured",
            fallback=settings.store.history_file,
        )

    ingestor = None
    if rate_store is not None:
        ingestor = RateIngestor(bcv_fetcher, p2p_fetcher, rate_store, settings.sources)

    return {
        "bcv_fetcher": bcv_fetcher,
        "p2p_fetcher": p2p_fetcher,
        "database": database,
        "rate_store": rate_store,
        "history_file": RatesHistoryFile(settings.store.history_file),
        "ingestor": ingestor,
    }


async def _close_components(components: dict[str, Any]) -> None:
    await components["bcv_fetcher"].close()
    await components["p2p_fetcher"].close()
    if components["database"] is not None:
        await components["database"].close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build components on startup, expose them on app.state, close on shutdown."""
    logger = get_logger("tasa.main")
    settings = app.state.settings

    components = await _build_components(settings)
    app.state.ingestor = components["ingestor"]
    app.state.rate_store = components["rate_store"]
    app.state.history_file = components["history_file"]

    logger.info(
        "lifespan_started",
        database=bool(components["database"]),
        read_order=settings.store.read_order,
    )

    yield

    await _close_components(components)
    logger.info("tasa_stopped")


async def run() -> None:
    """Serve the API under uvicorn."""
    settings = AppSettings()
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("tasa.main")

    if not settings.store.db_path:
        # Ingestion needs somewhere to write; cron endpoints will 503
        logger.warning("ingestion_disabled_without_database")

    from tasa.api.app import create_app

    app = create_app(lifespan=lifespan)
    app.state.settings = settings

    logger.info("starting_server", host=settings.server.host, port=settings.server.port)

    config = uvicorn.Config(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level="warning",  # Suppress uvicorn access logs
        log_config=None,  # keep the handlers installed by setup_logging
    )
    server = uvicorn.Server(config)
    await server.serve()


async def run_ingestion() -> bool:
    """Run every source once and print the report. Returns overall success."""
    settings = AppSettings()
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("tasa.main")

    components = await _build_components(settings)
    try:
        ingestor = components["ingestor"]
        if ingestor is None:
            logger.error("ingestion_requires_database")
            return False
        report = await ingestor.ingest_all()
    finally:
        await _close_components(components)

    print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    return report.success


def main() -> None:
    """Synchronous entry point for the API server."""
    asyncio.run(run())


def ingest() -> None:
    """Synchronous entry point for one-shot ingestion."""
    sys.exit(0 if asyncio.run(run_ingestion()) else 1)


if __name__ == "__main__":
    main()
