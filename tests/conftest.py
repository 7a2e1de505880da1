"""Shared test fixtures for the rate service."""

from pathlib import Path

import pytest
import pytest_asyncio

from tasa.config import AppSettings, CronSettings, SourceSettings, StoreSettings
from tasa.store.database import RatesDatabase
from tasa.store.rates import RateStore

CRON_SECRET = "test-cron-secret"

BCV_HTML = """
<html><body>
  <div id="dolar"><div class="field-content"><strong> 36,70 </strong></div></div>
  <div id="euro"><div class="field-content"><strong>39,80</strong></div></div>
</body></html>
"""


def make_ad(price: str, promoted: bool = False) -> dict:
    """A P2P advertisement as returned by the ad search endpoint."""
    return {
        "adv": {"price": price, "asset": "USDT", "fiatUnit": "VES"},
        "advertiser": {"nickName": "merchant"},
        "privilegeDesc": "Promoted" if promoted else None,
        "privilegeType": 1 if promoted else None,
        "privilegeTypeAdTotalCount": 3 if promoted else None,
    }


@pytest.fixture
def mock_settings(tmp_path: Path) -> AppSettings:
    """Return AppSettings pointing at temporary storage with a known cron secret."""
    return AppSettings(
        log_level="DEBUG",
        sources=SourceSettings(
            bcv_url="https://bcv.test/",
            p2p_url="https://p2p.test/search",
        ),
        store=StoreSettings(
            db_path=str(tmp_path / "rates.db"),
            history_file=str(tmp_path / "data" / "rates.json"),
        ),
        cron=CronSettings(secret=CRON_SECRET),  # type: ignore[arg-type]
    )


@pytest_asyncio.fixture
async def database(tmp_path: Path):
    """A connected rates database in a temporary directory."""
    async with RatesDatabase(str(tmp_path / "rates.db")) as db:
        yield db


@pytest.fixture
def store(database: RatesDatabase) -> RateStore:
    return RateStore(database)
