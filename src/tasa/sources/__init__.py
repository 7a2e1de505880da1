"""Upstream rate sources: HTTP fetching and typed response decoders."""

from tasa.sources.decoders import decode_bcv_rates, decode_p2p_ads, p2p_search_payload
from tasa.sources.fetcher import HttpFetcher

__all__ = [
    "HttpFetcher",
    "decode_bcv_rates",
    "decode_p2p_ads",
    "p2p_search_payload",
]
