"""Async HTTP fetcher for upstream rate sources.

Wraps a single httpx.AsyncClient per source with a browser User-Agent.
Every failure (network, TLS, non-2xx, bad JSON) collapses to None and is
logged; callers decide how to report an unavailable source. No retries.
"""

import ssl
from typing import Any

import httpx

from tasa.logging import get_logger

logger = get_logger(__name__)


class HttpFetcher:
    """Fetches page markup or JSON from one upstream source.

    Args:
        user_agent: Value of the User-Agent header sent with every request.
        verify: TLS verification: True, False, or a path to a PEM CA bundle.
        timeout: Request timeout in seconds.
        name: Source label used in log events.

    Usage:
        fetcher = HttpFetcher(user_agent, verify=False, name="bcv")
        try:
            html = await fetcher.get_text("https://www.bcv.org.ve/")
        finally:
            await fetcher.close()
    """

    def __init__(
        self,
        user_agent: str,
        verify: bool | str = True,
        timeout: float = 10.0,
        name: str = "source",
    ) -> None:
        self._name = name
        tls: bool | ssl.SSLContext = (
            ssl.create_default_context(cafile=verify) if isinstance(verify, str) else verify
        )
        self._client = httpx.AsyncClient(
            headers={"User-Agent": user_agent},
            verify=tls,
            timeout=timeout,
            follow_redirects=True,
        )

    async def get_text(self, url: str) -> str | None:
        """GET a page and return its body, or None on any failure."""
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("source_fetch_failed", source=self._name, url=url, error=str(e))
            return None
        logger.debug(
            "source_fetched",
            source=self._name,
            url=url,
            status=response.status_code,
            size=len(response.content),
        )
        return response.text

    async def post_json(self, url: str, payload: dict[str, Any]) -> Any | None:
        """POST a JSON payload and return the decoded response, or None on any failure."""
        try:
            response = await self._client.post(url, json=payload)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("source_fetch_failed", source=self._name, url=url, error=str(e))
            return None
        logger.debug("source_fetched", source=self._name, url=url, status=response.status_code)
        return data

    async def close(self) -> None:
        """Release the underlying connection pool."""
        await self._client.aclose()
