"""Typed decoders for upstream responses.

Each decoder is a pure function over fetched content and returns Decoded
values instead of raising, so a missing element or an empty ad list is
an ordinary result the ingestor can report per rate.
"""

from typing import Any

from bs4 import BeautifulSoup

from tasa.models import EUR_BCV, USD_BCV, Decoded

# CSS selectors of the official rate figures on the BCV home page
BCV_SELECTORS: dict[str, str] = {
    USD_BCV.name: "#dolar strong",
    EUR_BCV.name: "#euro strong",
}


def decode_bcv_rates(html: str) -> dict[str, Decoded]:
    """Extract the trimmed USD and EUR rate text from BCV markup.

    Returns a Decoded per rate name; a missing element or blank text is
    a failure for that rate only.
    """
    soup = BeautifulSoup(html, "html.parser")
    results: dict[str, Decoded] = {}
    for name, selector in BCV_SELECTORS.items():
        element = soup.select_one(selector)
        text = element.get_text(strip=True) if element is not None else ""
        if text:
            results[name] = Decoded.success(text)
        else:
            results[name] = Decoded.failure(f"No rate text found for selector {selector!r}")
    return results


def p2p_search_payload(asset: str, fiat: str, trade_type: str) -> dict[str, Any]:
    """Build the P2P ad search body: first page of five merchant ads, unshielded."""
    return {
        "asset": asset,
        "fiat": fiat,
        "tradeType": trade_type,
        "filterType": "tradable",
        "classifies": ["mass", "profession", "fiat_trade"],
        "countries": [],
        "page": 1,
        "rows": 5,
        "payTypes": [],
        "followed": False,
        "publisherType": "merchant",
        "proMerchantAds": False,
        "tradeWith": False,
        "shieldMerchantAds": False,
        "additionalKycVerifyFilter": 0,
    }


def decode_p2p_ads(payload: Any) -> Decoded:
    """Return the price of the first non-promoted ad in a P2P search response.

    Promoted ads carry a non-null ``privilegeDesc`` and are skipped, as are
    ads with no ``privilegeDesc`` key at all.
    """
    if not isinstance(payload, dict):
        return Decoded.failure("Unexpected ad search response shape")

    ads = payload.get("data")
    if not isinstance(ads, list):
        return Decoded.failure("Ad search response has no data list")
    if not ads:
        return Decoded.failure("Ad search returned no advertisements")

    for ad in ads:
        if not isinstance(ad, dict) or ad.get("privilegeDesc", True) is not None:
            continue
        price = (ad.get("adv") or {}).get("price")
        if price is None:
            return Decoded.failure("First non-promoted ad has no price")
        return Decoded.success(str(price))

    return Decoded.failure("All advertisements are promoted")
