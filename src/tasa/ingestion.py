"""Rate ingestion pipeline: FETCH -> EXTRACT -> PARSE/ROUND -> PERSIST.

Each configured rate runs through the pipeline independently and
sequentially. A failure at any stage is recorded on that rate's
SourceResult and never prevents the remaining rates from being persisted;
writes that already succeeded are kept. Nothing is retried.
"""

from tasa.config import SourceSettings
from tasa.exceptions import ExtractionError, FetchError, ParseError, StoreError, TasaError
from tasa.logging import get_logger
from tasa.models import (
    EUR_BCV,
    USD_BCV,
    USDT_BINANCE,
    Decoded,
    IngestionReport,
    RateSource,
    SourceResult,
    Stage,
)
from tasa.normalizer import normalize_price
from tasa.sources.decoders import decode_bcv_rates, decode_p2p_ads, p2p_search_payload
from tasa.sources.fetcher import HttpFetcher
from tasa.store.rates import RateStore

logger = get_logger(__name__)

_STAGE_BY_ERROR: dict[type[TasaError], Stage] = {
    FetchError: Stage.FETCH,
    ExtractionError: Stage.EXTRACT,
    ParseError: Stage.PARSE,
    StoreError: Stage.PERSIST,
}


class RateIngestor:
    """Orchestrates fetching, decoding, normalising and storing rates.

    Dependencies are constructed once at startup and injected here:
    one fetcher per upstream (they differ in TLS policy) and the shared
    rate store.

    Usage:
        ingestor = RateIngestor(bcv_fetcher, p2p_fetcher, store, settings.sources)
        report = await ingestor.ingest_all()
    """

    def __init__(
        self,
        bcv_fetcher: HttpFetcher,
        p2p_fetcher: HttpFetcher,
        store: RateStore,
        settings: SourceSettings,
    ) -> None:
        self._bcv_fetcher = bcv_fetcher
        self._p2p_fetcher = p2p_fetcher
        self._store = store
        self._settings = settings

    # ──────────────────────────────────────────────
    # Public entry points
    # ──────────────────────────────────────────────

    async def ingest_bcv(self) -> IngestionReport:
        """Ingest the official USD and EUR rates from one BCV page fetch."""
        report = IngestionReport(results=await self._run_bcv())
        self._log_report("bcv", report)
        return report

    async def ingest_p2p(self) -> IngestionReport:
        """Ingest the Binance P2P USDT rate."""
        report = IngestionReport(results=[await self._run_p2p()])
        self._log_report("p2p", report)
        return report

    async def ingest_all(self) -> IngestionReport:
        """Ingest every configured rate: BCV USD, BCV EUR, then USDT."""
        results = await self._run_bcv()
        results.append(await self._run_p2p())
        report = IngestionReport(results=results)
        self._log_report("all", report)
        return report

    # ──────────────────────────────────────────────
    # Per-source pipelines
    # ──────────────────────────────────────────────

    async def _run_bcv(self) -> list[SourceResult]:
        sources = [USD_BCV, EUR_BCV]
        html = await self._bcv_fetcher.get_text(self._settings.bcv_url)
        if html is None:
            error = FetchError("Failed to fetch BCV HTML")
            return [self._failed(source, error) for source in sources]

        decoded = decode_bcv_rates(html)
        return [await self._complete(source, decoded[source.name]) for source in sources]

    async def _run_p2p(self) -> SourceResult:
        payload = p2p_search_payload(
            self._settings.p2p_asset,
            self._settings.p2p_fiat,
            self._settings.p2p_trade_type,
        )
        response = await self._p2p_fetcher.post_json(self._settings.p2p_url, payload)
        if response is None:
            return self._failed(
                USDT_BINANCE, FetchError("Could not fetch Binance P2P advertisements")
            )
        return await self._complete(USDT_BINANCE, decode_p2p_ads(response))

    async def _complete(self, source: RateSource, decoded: Decoded) -> SourceResult:
        """Run the EXTRACT result through PARSE/ROUND and PERSIST."""
        try:
            if not decoded.ok:
                raise ExtractionError(decoded.error or "No price extracted")
            price = normalize_price(decoded.value or "")
            rows = await self._store.upsert_rate(source.name, source.display_name, price)
        except TasaError as e:
            return self._failed(source, e)
        return SourceResult(name=source.name, price=price, data=rows)

    def _failed(self, source: RateSource, error: TasaError) -> SourceResult:
        stage = _STAGE_BY_ERROR.get(type(error), Stage.PERSIST)
        logger.warning(
            "rate_ingestion_failed",
            name=source.name,
            stage=stage.value,
            error=str(error),
        )
        return SourceResult(name=source.name, stage=stage, error=str(error))

    @staticmethod
    def _log_report(run: str, report: IngestionReport) -> None:
        prices: dict[str, str] = {
            r.name: str(r.price) for r in report.results if r.price is not None
        }
        logger.info(
            "ingestion_complete",
            run=run,
            success=report.success,
            persisted=prices,
            failed=[r.name for r in report.failures],
        )

