# ABOUTME: Keyless DuckDuckGo backend scraping the HTML results page with BeautifulSoup
# ABOUTME: Spaces its own requests and backs off when DuckDuckGo serves its bot-detection page

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import parse_qs, urlsplit

import httpx
from bs4 import BeautifulSoup
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_chain, wait_fixed

from mining_intel.extraction.base import RateLimitError, SearchError, SearchResult
from mining_intel.extraction.http import create_client
from mining_intel.utils.logging import get_logger, log_api_call

DUCKDUCKGO_HTML_URL = "https://html.duckduckgo.com/html/"

MIN_REQUEST_SPACING_SECONDS = 3.0
ANOMALY_RETRY_DELAYS = [2.0, 5.0, 10.0]
ANOMALY_MARKERS = ("anomaly-modal", "bots use DuckDuckGo too")


class DuckDuckGoBlocked(RateLimitError):
    """DuckDuckGo answered with its anomaly (bot detection) page or HTTP 429."""

    pass


def unwrap_result_url(href: str) -> str | None:
    """Resolve DuckDuckGo redirect links (``/l/?uddg=...``) to the target URL."""
    if not href:
        return None
    if href.startswith("//"):
        href = f"https:{href}"
    parts = urlsplit(href)
    if parts.path.startswith("/l/"):
        target = parse_qs(parts.query).get("uddg")
        return target[0] if target else None
    if parts.scheme in ("http", "https"):
        return href
    return None


def parse_results_page(html: str) -> list[SearchResult]:
    """Extract organic results from a DuckDuckGo HTML results page, skipping ads."""
    soup = BeautifulSoup(html, "html.parser")
    results: list[SearchResult] = []
    for block in soup.select("div.result"):
        if "result--ad" in (block.get("class") or []):
            continue
        anchor = block.select_one("a.result__a")
        if anchor is None:
            continue
        url = unwrap_result_url(str(anchor.get("href") or ""))
        if not url:
            continue
        snippet = block.select_one(".result__snippet")
        results.append(
            SearchResult(
                url=url,
                title=anchor.get_text(" ", strip=True),
                snippet=snippet.get_text(" ", strip=True) if snippet else "",
            )
        )
    return results


class DuckDuckGoSearchProvider:
    """Search backend that needs no API key."""

    def __init__(
        self,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        *,
        min_spacing: float = MIN_REQUEST_SPACING_SECONDS,
        retry_delays: list[float] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.logger = get_logger(__name__)
        self.client = client or create_client(timeout)
        self.min_spacing = min_spacing
        self.retry_delays = ANOMALY_RETRY_DELAYS if retry_delays is None else retry_delays
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_request = 0.0

    @log_api_call("duckduckgo_search")
    async def search(self, query: str, max_results: int) -> list[SearchResult]:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(len(self.retry_delays) + 1),
                wait=wait_chain(*[wait_fixed(delay) for delay in self.retry_delays]),
                retry=retry_if_exception_type(DuckDuckGoBlocked),
                sleep=self._sleep,
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        self.logger.warning(
                            "DuckDuckGo rate limited, retrying", attempt=attempt.retry_state.attempt_number
                        )
                    html = await self._fetch(query)
        except DuckDuckGoBlocked as e:
            raise SearchError(f"DuckDuckGo kept rate limiting: {e}") from e

        results = parse_results_page(html)[:max_results]
        self.logger.debug("DuckDuckGo search complete", query=query, results=len(results))
        return results

    async def _fetch(self, query: str) -> str:
        async with self._lock:
            elapsed = time.monotonic() - self._last_request
            if elapsed < self.min_spacing:
                await self._sleep(self.min_spacing - elapsed)
            try:
                response = await self.client.post(DUCKDUCKGO_HTML_URL, data={"q": query, "kp": "-1"})
            except httpx.HTTPError as e:
                raise SearchError(f"DuckDuckGo request failed: {e}") from e
            finally:
                self._last_request = time.monotonic()

        if response.status_code in (202, 429) or any(marker in response.text for marker in ANOMALY_MARKERS):
            raise DuckDuckGoBlocked(f"DuckDuckGo anomaly response (HTTP {response.status_code})")
        if response.is_error:
            raise SearchError(f"DuckDuckGo returned HTTP {response.status_code}")
        return response.text

    async def close(self) -> None:
        await self.client.aclose()
