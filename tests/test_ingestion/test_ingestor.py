"""Tests for RateIngestor: per-source pipelines and partial-failure policy.

Fetchers are mocked; the store is a real temporary SQLite database.
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from tasa.config import AppSettings
from tasa.exceptions import StoreError
from tasa.ingestion import RateIngestor
from tasa.models import Stage
from tasa.store.rates import RateStore
from tests.conftest import BCV_HTML, make_ad

MINIMAL_BCV_HTML = (
    '<div id="dolar"><strong>36,70</strong></div>'
    '<div id="euro"><strong>39,80</strong></div>'
)


@pytest.fixture
def bcv_fetcher() -> AsyncMock:
    fetcher = AsyncMock()
    fetcher.get_text = AsyncMock(return_value=MINIMAL_BCV_HTML)
    return fetcher


@pytest.fixture
def p2p_fetcher() -> AsyncMock:
    fetcher = AsyncMock()
    fetcher.post_json = AsyncMock(
        return_value={"data": [make_ad("99.99", promoted=True), make_ad("98,555")]}
    )
    return fetcher


@pytest.fixture
def ingestor(
    bcv_fetcher: AsyncMock,
    p2p_fetcher: AsyncMock,
    store: RateStore,
    mock_settings: AppSettings,
) -> RateIngestor:
    return RateIngestor(bcv_fetcher, p2p_fetcher, store, mock_settings.sources)


@pytest.mark.asyncio
async def test_bcv_end_to_end(
    ingestor: RateIngestor, bcv_fetcher: AsyncMock, store: RateStore
) -> None:
    report = await ingestor.ingest_bcv()

    assert report.success
    assert [(r.name, r.price) for r in report.results] == [
        ("USD_BCV", Decimal("36.70")),
        ("EUR_BCV", Decimal("39.80")),
    ]
    bcv_fetcher.get_text.assert_awaited_once_with("https://bcv.test/")

    usd = await store.get_rate("USD_BCV")
    eur = await store.get_rate("EUR_BCV")
    assert usd is not None and usd.price == Decimal("36.70")
    assert usd.display_name == "Dólar BCV"
    assert eur is not None and eur.price == Decimal("39.80")


@pytest.mark.asyncio
async def test_bcv_full_page_markup(
    ingestor: RateIngestor, bcv_fetcher: AsyncMock
) -> None:
    bcv_fetcher.get_text.return_value = BCV_HTML
    report = await ingestor.ingest_bcv()
    assert report.success


@pytest.mark.asyncio
async def test_bcv_fetch_failure_fails_both_rates(
    ingestor: RateIngestor, bcv_fetcher: AsyncMock, store: RateStore
) -> None:
    bcv_fetcher.get_text.return_value = None

    report = await ingestor.ingest_bcv()

    assert not report.success
    assert [(r.name, r.stage) for r in report.failures] == [
        ("USD_BCV", Stage.FETCH),
        ("EUR_BCV", Stage.FETCH),
    ]
    assert await store.list_rates() == []


@pytest.mark.asyncio
async def test_missing_euro_still_persists_dollar(
    ingestor: RateIngestor, bcv_fetcher: AsyncMock, store: RateStore
) -> None:
    bcv_fetcher.get_text.return_value = '<div id="dolar"><strong>36,70</strong></div>'

    report = await ingestor.ingest_bcv()

    assert not report.success
    assert report.failures[0].name == "EUR_BCV"
    assert report.failures[0].stage == Stage.EXTRACT
    assert [r.name for r in await store.list_rates()] == ["USD_BCV"]


@pytest.mark.asyncio
async def test_unparseable_rate_is_parse_failure(
    ingestor: RateIngestor, bcv_fetcher: AsyncMock
) -> None:
    bcv_fetcher.get_text.return_value = (
        '<div id="dolar"><strong>n/d</strong></div><div id="euro"><strong>39,80</strong></div>'
    )

    report = await ingestor.ingest_bcv()

    failure = report.failures[0]
    assert failure.name == "USD_BCV"
    assert failure.stage == Stage.PARSE
    assert "'n/d'" in failure.error


@pytest.mark.asyncio
async def test_persist_failure_keeps_earlier_write(
    ingestor: RateIngestor, store: RateStore
) -> None:
    real_upsert = store.upsert_rate

    async def flaky_upsert(name: str, display_name: str, price: Decimal):  # type: ignore[no-untyped-def]
        if name == "EUR_BCV":
            raise StoreError("permission denied for table rates")
        return await real_upsert(name, display_name, price)

    store.upsert_rate = flaky_upsert  # type: ignore[method-assign]

    report = await ingestor.ingest_bcv()

    assert not report.success
    body = report.to_dict()
    assert [r["name"] for r in body["rates"]] == ["USD_BCV"]
    assert body["failures"] == [
        {
            "name": "EUR_BCV",
            "stage": "persist",
            "error": "permission denied for table rates",
        }
    ]
    assert body["error"] == "permission denied for table rates"

    usd = await store.get_rate("USD_BCV")
    assert usd is not None and usd.price == Decimal("36.70")
    assert await store.get_rate("EUR_BCV") is None


@pytest.mark.asyncio
async def test_p2p_skips_promoted_and_rounds(
    ingestor: RateIngestor, p2p_fetcher: AsyncMock, store: RateStore
) -> None:
    report = await ingestor.ingest_p2p()

    assert report.success
    assert report.results[0].price == Decimal("98.56")
    payload = p2p_fetcher.post_json.await_args.args[1]
    assert payload["asset"] == "USDT"
    assert payload["fiat"] == "VES"
    assert payload["tradeType"] == "BUY"

    usdt = await store.get_rate("USDT_BINANCE")
    assert usdt is not None and usdt.display_name == "USDT Binance"


@pytest.mark.asyncio
async def test_p2p_all_promoted_is_extract_failure(
    ingestor: RateIngestor, p2p_fetcher: AsyncMock, store: RateStore
) -> None:
    p2p_fetcher.post_json.return_value = {"data": [make_ad("99.0", promoted=True)]}

    report = await ingestor.ingest_p2p()

    assert report.failures[0].stage == Stage.EXTRACT
    assert await store.list_rates() == []


@pytest.mark.asyncio
async def test_ingest_all_isolates_sources(
    ingestor: RateIngestor, bcv_fetcher: AsyncMock, store: RateStore
) -> None:
    bcv_fetcher.get_text.return_value = None

    report = await ingestor.ingest_all()

    assert [r.name for r in report.results] == ["USD_BCV", "EUR_BCV", "USDT_BINANCE"]
    assert [r.name for r in report.failures] == ["USD_BCV", "EUR_BCV"]
    assert [r.name for r in await store.list_rates()] == ["USDT_BINANCE"]
    assert report.to_dict()["error"] == "Failed to fetch BCV HTML"


@pytest.mark.asyncio
async def test_ingest_all_success_shape(ingestor: RateIngestor) -> None:
    body = (await ingestor.ingest_all()).to_dict()

    assert body["success"] is True
    assert body["error"] is None
    assert body["failures"] == []
    assert [(r["name"], r["price"]) for r in body["rates"]] == [
        ("USD_BCV", 36.7),
        ("EUR_BCV", 39.8),
        ("USDT_BINANCE", 98.56),
    ]
    assert body["rates"][0]["data"][0]["name"] == "USD_BCV"
